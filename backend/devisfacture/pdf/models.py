"""
Corps de la requête `POST /pdf/generate`.

Les noms de champs sont ceux envoyés par le front (devis, lignes, isTrialMode...).
"""
from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PDFModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DocumentData(PDFModel):
    numero: str = Field(..., min_length=1)
    statut: Optional[str] = None
    total_ht: Optional[Decimal] = None
    total_tva: Optional[Decimal] = None
    total_ttc: Optional[Decimal] = None
    notes: Optional[str] = None
    date_creation: Optional[date] = None
    date_validite: Optional[date] = None
    date_emission: Optional[date] = None
    date_echeance: Optional[date] = None


class ClientData(PDFModel):
    nom: Optional[str] = None
    societe: Optional[str] = None
    adresse: Optional[str] = None
    code_postal: Optional[str] = None
    ville: Optional[str] = None
    email: Optional[str] = None
    telephone: Optional[str] = None


class ProfileData(PDFModel):
    raison_sociale: Optional[str] = None
    adresse: Optional[str] = None
    code_postal: Optional[str] = None
    ville: Optional[str] = None
    pays: Optional[str] = None
    telephone: Optional[str] = None
    email_contact: Optional[str] = None
    siret: Optional[str] = None
    code_ape: Optional[str] = None
    tva_applicable: Optional[bool] = None
    taux_tva: Optional[Decimal] = None
    iban: Optional[str] = None
    bic: Optional[str] = None


class LigneData(PDFModel):
    designation: str
    quantite: Optional[Decimal] = None
    prix_unitaire_ht: Optional[Decimal] = None
    taux_tva: Optional[Decimal] = None
    unite: Optional[str] = None


class SettingsData(PDFModel):
    taux_tva_defaut: Optional[Decimal] = None
    tva_intracommunautaire: Optional[str] = None
    conditions_paiement: Optional[str] = None
    delai_paiement: Optional[str] = None
    penalites_retard: Optional[str] = None
    indemnite_recouvrement_montant: Optional[Decimal] = None
    indemnite_recouvrement_texte: Optional[str] = None
    escompte: Optional[str] = None


class PDFDocumentPayload(PDFModel):
    type: Literal["devis", "facture"]
    document: DocumentData
    client: ClientData
    profile: ProfileData = ProfileData()
    lignes: List[LigneData] = []
    settings: Optional[SettingsData] = None
    is_trial_mode: bool = Field(default=False, alias="isTrialMode")
