import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.invoices.repositories import SQLAlchemyInvoiceRepository
from devisfacture.pdf.config import PDFSettings
from devisfacture.pdf.content import build_document_content, build_filename
from devisfacture.pdf.exceptions import DocumentNotFoundException
from devisfacture.pdf.generator import AbstractPDFGenerator
from devisfacture.pdf.models import ClientData, DocumentData, LigneData, PDFDocumentPayload, ProfileData, SettingsData
from devisfacture.profiles.models import CompanySettings, Profile
from devisfacture.profiles.service import ProfileService
from devisfacture.quotes.repositories import SQLAlchemyQuoteRepository
from devisfacture.subscriptions.repositories import SQLAlchemySubscriptionRepository
from devisfacture.subscriptions.service import SubscriptionService

logger = logging.getLogger(__name__)


def profile_data(profile: Optional[Profile]) -> ProfileData:
    if profile is None:
        return ProfileData()
    return ProfileData(
        raison_sociale=profile.raison_sociale,
        adresse=profile.address,
        code_postal=profile.postal_code,
        ville=profile.city,
        pays=profile.country,
        telephone=profile.phone,
        email_contact=profile.email_contact,
        siret=profile.siret,
        code_ape=profile.code_ape,
        tva_applicable=profile.tva_applicable,
        taux_tva=profile.default_tax_rate,
        iban=profile.iban,
        bic=profile.bic,
    )


def settings_data(company_settings: Optional[CompanySettings]) -> Optional[SettingsData]:
    if company_settings is None:
        return None
    return SettingsData(
        taux_tva_defaut=company_settings.default_tax_rate,
        tva_intracommunautaire=company_settings.tva_intracommunautaire,
        conditions_paiement=company_settings.payment_terms,
        delai_paiement=company_settings.payment_delay,
        penalites_retard=company_settings.late_penalty_rate,
        indemnite_recouvrement_montant=company_settings.recovery_indemnity_amount,
        indemnite_recouvrement_texte=company_settings.recovery_indemnity_text,
        escompte=company_settings.early_payment_discount,
    )


def client_data(client) -> ClientData:
    if client is None:
        return ClientData()
    return ClientData(
        nom=client.name,
        societe=client.company_name,
        adresse=client.address,
        code_postal=client.postal_code,
        ville=client.city,
        email=client.email,
        telephone=client.phone,
    )


def lignes_data(lines) -> list:
    return [
        LigneData(
            designation=line.designation,
            quantite=line.quantity,
            prix_unitaire_ht=line.unit_price_ht,
            taux_tva=line.tax_rate,
            unite=line.unit,
        )
        for line in sorted(lines, key=lambda l: l.position)
    ]


class PDFService:
    """Assemble le contenu d'un document et délègue le rendu au générateur."""

    def __init__(self, pdf_generator: AbstractPDFGenerator, settings: PDFSettings, db: Optional[AsyncSession] = None):
        self.pdf_generator = pdf_generator
        self.settings = settings
        self.db = db

    async def render(self, payload: PDFDocumentPayload) -> Tuple[bytes, str]:
        content = build_document_content(payload, trial_notice=self.settings.TRIAL_NOTICE)
        pdf_bytes = await self.pdf_generator.generate_document_pdf(content)
        return pdf_bytes, build_filename(payload.type, payload.document.numero)

    async def build_stored_payload(self, doc_type: str, doc_id: int, user_id: int) -> PDFDocumentPayload:
        """Construit la requête de rendu d'un devis ou d'une facture enregistré."""
        if doc_type == "devis":
            quote = await SQLAlchemyQuoteRepository(self.db).get_by_id(quote_id=doc_id, user_id=user_id)
            if quote is None:
                raise DocumentNotFoundException(doc_type, doc_id)
            document = DocumentData(
                numero=quote.number,
                statut=quote.status,
                total_ht=quote.total_ht,
                total_tva=quote.total_tva,
                total_ttc=quote.total_ttc,
                notes=quote.notes,
                date_creation=quote.created_on,
                date_validite=quote.valid_until,
            )
            source = quote
        else:
            invoice = await SQLAlchemyInvoiceRepository(self.db).get_by_id(invoice_id=doc_id, user_id=user_id)
            if invoice is None:
                raise DocumentNotFoundException(doc_type, doc_id)
            document = DocumentData(
                numero=invoice.number,
                statut=invoice.status,
                total_ht=invoice.total_ht,
                total_tva=invoice.total_tva,
                total_ttc=invoice.total_ttc,
                notes=invoice.notes,
                date_emission=invoice.issued_on,
                date_echeance=invoice.due_on,
            )
            source = invoice

        profiles = ProfileService(self.db)
        entitlement = await SubscriptionService(SQLAlchemySubscriptionRepository(self.db)).get_entitlement(user_id)
        return PDFDocumentPayload(
            type=doc_type,
            document=document,
            client=client_data(source.client),
            profile=profile_data(await profiles.get_profile(user_id)),
            lignes=lignes_data(source.lines),
            settings=settings_data(await profiles.get_settings(user_id)),
            is_trial_mode=entitlement.trial_active,
        )

    async def render_stored(self, doc_type: str, doc_id: int, user_id: int) -> Tuple[bytes, str]:
        payload = await self.build_stored_payload(doc_type, doc_id, user_id)
        logger.info(f"[PDFService] Rendu {doc_type} {payload.document.numero} pour user {user_id}")
        return await self.render(payload)
