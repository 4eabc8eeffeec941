"""
Profil de l'entreprise et paramètres de facturation (une ligne de chaque par utilisateur).
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import EmailStr, field_validator
from sqlmodel import Field, SQLModel

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import utcnow
from devisfacture.pricing.calculations import is_allowed_tax_rate
from devisfacture.profiles.validation import is_valid_siret, sanitize_digits
from devisfacture.profiles.constants import SIRET_LENGTH


class ProfileBase(SQLModel):
    raison_sociale: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    address: Optional[str] = Field(default=None, max_length=255)
    postal_code: Optional[str] = Field(default=None, max_length=10)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default="France", max_length=100)
    siret: Optional[str] = Field(default=None, max_length=14)
    code_ape: Optional[str] = Field(default=None, max_length=10)
    # None = non renseigné, False = non assujetti (franchise en base)
    tva_applicable: Optional[bool] = None
    default_tax_rate: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    email_contact: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=30)
    iban: Optional[str] = Field(default=None, max_length=34)
    bic: Optional[str] = Field(default=None, max_length=11)


class Profile(ProfileBase, table=True):
    __tablename__ = "profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class ProfileRead(ProfileBase):
    id: int
    user_id: int


class ProfileUpdate(SQLModel):
    raison_sociale: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    siret: Optional[str] = None
    code_ape: Optional[str] = None
    tva_applicable: Optional[bool] = None
    default_tax_rate: Optional[Decimal] = None
    email_contact: Optional[EmailStr] = None
    phone: Optional[str] = None
    iban: Optional[str] = None
    bic: Optional[str] = None

    @field_validator("siret")
    @classmethod
    def check_siret(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        digits = sanitize_digits(value, SIRET_LENGTH)
        if not is_valid_siret(digits):
            raise ValueError("SIRET invalide (14 chiffres, clé de contrôle incorrecte).")
        return digits

    @field_validator("iban", "bic")
    @classmethod
    def compact_bank_field(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        compact = value.replace(" ", "").upper()
        return compact or None

    @field_validator("default_tax_rate")
    @classmethod
    def check_tax_rate(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        if value is not None and not is_allowed_tax_rate(value):
            raise ValueError("Taux de TVA non autorisé (0, 5.5, 10 ou 20).")
        return value


class CompanySettingsBase(SQLModel):
    default_tax_rate: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    default_margin: Optional[Decimal] = Field(default=None, max_digits=7, decimal_places=2)
    tva_intracommunautaire: Optional[str] = Field(default=None, max_length=20)
    payment_terms: Optional[str] = Field(default=None, max_length=255)
    payment_delay: Optional[str] = Field(default=None, max_length=255)
    late_penalty_rate: Optional[str] = Field(default=None, max_length=255)
    recovery_indemnity_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    recovery_indemnity_text: Optional[str] = Field(default=None, max_length=255)
    early_payment_discount: Optional[str] = Field(default=None, max_length=255)


class CompanySettings(CompanySettingsBase, table=True):
    __tablename__ = "company_settings"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class CompanySettingsRead(CompanySettingsBase):
    user_id: int


class CompanySettingsUpdate(CompanySettingsBase):
    @field_validator("default_tax_rate")
    @classmethod
    def check_tax_rate(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        if value is not None and not is_allowed_tax_rate(value):
            raise ValueError("Taux de TVA non autorisé (0, 5.5, 10 ou 20).")
        return value


class DefaultTaxRateRead(SQLModel):
    tax_rate: Decimal
    vat_exemption_notice: Optional[str] = None
