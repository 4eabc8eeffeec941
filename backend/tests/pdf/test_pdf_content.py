from datetime import date
from decimal import Decimal

import pytest

from devisfacture.pdf.config import PDFSettings
from devisfacture.pdf.content import (
    build_document_content,
    build_document_footer,
    build_filename,
    build_legal_mentions,
)
from devisfacture.pdf.models import PDFDocumentPayload, ProfileData, SettingsData
from devisfacture.pdf.reportlab_generator import ReportLabPDFGenerator
from devisfacture.pricing.constants import VAT_EXEMPTION_NOTICE

TRIAL_NOTICE = "Document généré avec la version d'essai."


def _payload(**overrides) -> PDFDocumentPayload:
    data = {
        "type": "facture",
        "document": {"numero": "FA-0001", "total_ht": "200", "total_tva": "40", "total_ttc": "240",
                     "date_emission": "2026-03-02", "date_echeance": "2026-04-01"},
        "client": {"nom": "Jean Dupont", "adresse": "12 rue des Lilas", "code_postal": "75011", "ville": "Paris"},
        "profile": {"raison_sociale": "Jardins Martin", "siret": "73282932000074", "iban": "FR7630006000011234567890189"},
        "lignes": [{"designation": "Taille de haie", "quantite": "2", "prix_unitaire_ht": "100", "taux_tva": "20",
                    "unite": "h"}],
    }
    data.update(overrides)
    return PDFDocumentPayload.model_validate(data)


def test_filename_is_sanitized():
    assert build_filename("facture", "FA-0001") == "facture-FA-0001.pdf"
    assert build_filename("devis", "DEV 01/2026") == "devis-DEV_01_2026.pdf"
    assert build_filename("devis", "///") == "devis-document.pdf"


def test_legal_mentions_defaults():
    mentions = build_legal_mentions(None)
    assert mentions == [
        "Conditions de paiement : Paiement à 30 jours",
        "Délai de paiement : Paiement à 30 jours",
        "Pénalités de retard : Taux BCE + 10 points",
        "Indemnité forfaitaire pour frais de recouvrement : 40.00 EUR (article L441-6 du Code de commerce)",
    ]


def test_legal_mentions_with_discount():
    mentions = build_legal_mentions(SettingsData(escompte="2 % sous 8 jours", indemnite_recouvrement_montant="50"))
    assert mentions[3].startswith("Indemnité forfaitaire pour frais de recouvrement : 50.00")
    assert mentions[-1] == "Escompte pour paiement anticipé : 2 % sous 8 jours"


def test_footer_joins_available_fields():
    profile = ProfileData(raison_sociale="Jardins Martin", adresse="3 place du Marché", code_postal="69001",
                          ville="Lyon", siret="73282932000074", code_ape="8130Z")
    footer = build_document_footer(profile, SettingsData(tva_intracommunautaire="FR12732829320"))
    assert footer == (
        "Jardins Martin | Adresse siège: 3 place du Marché, 69001 Lyon | SIRET: 73282932000074 | "
        "TVA intracommunautaire: FR12732829320 | Code APE: 8130Z"
    )
    assert build_document_footer(None) == ""


def test_invoice_content():
    content = build_document_content(_payload(), TRIAL_NOTICE)
    assert content.title == "FACTURE"
    assert content.dates == [("Date d'émission", "02/03/2026"), ("Date d'échéance", "01/04/2026")]
    assert content.rows == [("Taille de haie", "2 h", "100.00", "20", "200.00")]
    assert content.totals == [("Total HT", "200.00"), ("Total TVA", "40.00"), ("Total TTC", "240.00")]
    assert content.bank_details == ["IBAN : FR7630006000011234567890189"]
    assert content.vat_exemption_notice is None
    assert content.trial_notice is None
    assert "Jean Dupont" in content.client_lines


def test_quote_content_omits_missing_dates():
    payload = _payload(type="devis", document={"numero": "DEV-0001", "date_creation": "2026-03-02"})
    content = build_document_content(payload, TRIAL_NOTICE)
    assert content.title == "DEVIS"
    assert content.dates == [("Date", "02/03/2026")]


@pytest.mark.parametrize("profile,settings,expected", [
    ({"tva_applicable": False}, None, VAT_EXEMPTION_NOTICE),
    ({"tva_applicable": True}, None, None),
    ({}, None, None),
    ({"tva_applicable": False}, {"taux_tva_defaut": "20"}, None),
    ({"taux_tva": "0"}, None, VAT_EXEMPTION_NOTICE),
])
def test_vat_exemption_notice(profile, settings, expected):
    content = build_document_content(_payload(profile=profile, settings=settings), TRIAL_NOTICE)
    assert content.vat_exemption_notice == expected


def test_trial_notice_follows_flag():
    content = build_document_content(_payload(isTrialMode=True), TRIAL_NOTICE)
    assert content.trial_notice == TRIAL_NOTICE


@pytest.mark.asyncio
async def test_reportlab_renders_pdf_bytes():
    content = build_document_content(_payload(isTrialMode=True, profile={"tva_applicable": False}), TRIAL_NOTICE)
    pdf_bytes = await ReportLabPDFGenerator(settings=PDFSettings()).generate_document_pdf(content)
    assert pdf_bytes.startswith(b"%PDF")
