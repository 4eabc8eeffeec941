"""
Contenu d'un devis ou d'une facture, indépendant du moteur de rendu.

C'est ici que sont appliquées les règles d'inclusion : mentions légales avec
leurs valeurs par défaut, coordonnées bancaires si renseignées, mention
293 B si le taux par défaut résolu est nul, avertissement en période d'essai.
"""
import re
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from devisfacture.pdf.models import PDFDocumentPayload, ProfileData, SettingsData
from devisfacture.pricing.calculations import (
    format_amount,
    format_rate,
    line_total_ht,
    requires_vat_exemption_notice,
    resolve_default_tax_rate,
)
from devisfacture.pricing.constants import VAT_EXEMPTION_NOTICE
from devisfacture.profiles.constants import (
    DEFAULT_EARLY_PAYMENT_DISCOUNT,
    DEFAULT_LATE_PENALTY_RATE,
    DEFAULT_PAYMENT_DELAY,
    DEFAULT_PAYMENT_TERMS,
    DEFAULT_RECOVERY_INDEMNITY_AMOUNT,
    DEFAULT_RECOVERY_INDEMNITY_TEXT,
)

TABLE_HEADER = ("Désignation", "Qté", "P.U. HT (€)", "TVA (%)", "Total HT (€)")


@dataclass
class DocumentContent:
    title: str
    number: str
    dates: List[Tuple[str, str]] = field(default_factory=list)
    sender_lines: List[str] = field(default_factory=list)
    client_lines: List[str] = field(default_factory=list)
    rows: List[Tuple[str, str, str, str, str]] = field(default_factory=list)
    totals: List[Tuple[str, str]] = field(default_factory=list)
    notes: Optional[str] = None
    legal_mentions: List[str] = field(default_factory=list)
    bank_details: List[str] = field(default_factory=list)
    vat_exemption_notice: Optional[str] = None
    trial_notice: Optional[str] = None
    footer: str = ""


def format_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def sanitize_filename_part(value: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_-]+", "_", value or "").strip("_")
    return cleaned or "document"


def build_filename(doc_type: str, number: str) -> str:
    return f"{doc_type}-{sanitize_filename_part(number)}.pdf"


def build_document_footer(profile: Optional[ProfileData], settings: Optional[SettingsData] = None) -> str:
    """Ligne de pied de page : identité légale de l'entreprise, séparée par ' | '."""
    if profile is None:
        return ""
    city_line = " ".join(p for p in (profile.code_postal, profile.ville) if p).strip()
    address_parts = [p for p in (profile.adresse, city_line) if p]
    parts = [
        profile.raison_sociale or "",
        f"Adresse siège: {', '.join(address_parts)}" if address_parts else "",
        f"Tél: {profile.telephone}" if profile.telephone else "",
        f"Email: {profile.email_contact}" if profile.email_contact else "",
        f"SIRET: {profile.siret}" if profile.siret else "",
        f"TVA intracommunautaire: {settings.tva_intracommunautaire}"
        if settings and settings.tva_intracommunautaire else "",
        f"Code APE: {profile.code_ape}" if profile.code_ape else "",
    ]
    return " | ".join(p for p in parts if p)


def build_legal_mentions(settings: Optional[SettingsData]) -> List[str]:
    settings = settings or SettingsData()
    indemnity_amount = (
        settings.indemnite_recouvrement_montant
        if settings.indemnite_recouvrement_montant is not None
        else DEFAULT_RECOVERY_INDEMNITY_AMOUNT
    )
    mentions = [
        f"Conditions de paiement : {settings.conditions_paiement or DEFAULT_PAYMENT_TERMS}",
        f"Délai de paiement : {settings.delai_paiement or DEFAULT_PAYMENT_DELAY}",
        f"Pénalités de retard : {settings.penalites_retard or DEFAULT_LATE_PENALTY_RATE}",
        "Indemnité forfaitaire pour frais de recouvrement : "
        f"{format_amount(indemnity_amount)} {settings.indemnite_recouvrement_texte or DEFAULT_RECOVERY_INDEMNITY_TEXT}",
    ]
    discount = settings.escompte or DEFAULT_EARLY_PAYMENT_DISCOUNT
    if discount:
        mentions.append(f"Escompte pour paiement anticipé : {discount}")
    return mentions


def _party_lines(*values: Optional[str]) -> List[str]:
    return [v for v in values if v]


def build_document_content(payload: PDFDocumentPayload, trial_notice: str) -> DocumentContent:
    document = payload.document
    profile = payload.profile
    settings = payload.settings
    is_quote = payload.type == "devis"

    if is_quote:
        dates = [("Date", format_date(document.date_creation)), ("Valable jusqu'au", format_date(document.date_validite))]
    else:
        dates = [("Date d'émission", format_date(document.date_emission)), ("Date d'échéance", format_date(document.date_echeance))]

    client = payload.client
    client_city = " ".join(p for p in (client.code_postal, client.ville) if p)
    profile_city = " ".join(p for p in (profile.code_postal, profile.ville) if p)

    rows = [
        (
            line.designation,
            format_rate(line.quantite) + (f" {line.unite}" if line.unite else ""),
            format_amount(line.prix_unitaire_ht),
            format_rate(line.taux_tva),
            format_amount(line_total_ht(line.quantite, line.prix_unitaire_ht)),
        )
        for line in payload.lignes
    ]

    resolved_rate = resolve_default_tax_rate(
        settings.taux_tva_defaut if settings else None,
        profile.taux_tva,
        profile.tva_applicable,
    )

    bank_details = []
    if profile.iban:
        bank_details.append(f"IBAN : {profile.iban}")
    if profile.bic:
        bank_details.append(f"BIC : {profile.bic}")

    return DocumentContent(
        title="DEVIS" if is_quote else "FACTURE",
        number=document.numero,
        dates=[(label, value) for label, value in dates if value],
        sender_lines=_party_lines(
            profile.raison_sociale, profile.adresse, profile_city, profile.pays,
            profile.telephone, profile.email_contact,
            f"SIRET : {profile.siret}" if profile.siret else None,
        ),
        client_lines=_party_lines(client.societe, client.nom, client.adresse, client_city, client.email, client.telephone),
        rows=rows,
        totals=[
            ("Total HT", format_amount(document.total_ht)),
            ("Total TVA", format_amount(document.total_tva)),
            ("Total TTC", format_amount(document.total_ttc)),
        ],
        notes=document.notes or None,
        legal_mentions=build_legal_mentions(settings),
        bank_details=bank_details,
        vat_exemption_notice=VAT_EXEMPTION_NOTICE if requires_vat_exemption_notice(resolved_rate) else None,
        trial_notice=trial_notice if payload.is_trial_mode else None,
        footer=build_document_footer(profile, settings),
    )
