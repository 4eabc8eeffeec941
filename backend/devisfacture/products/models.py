from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import utcnow
from devisfacture.pricing.calculations import is_allowed_tax_rate


def normalize_reference(value: Optional[str]) -> Optional[str]:
    """Référence en majuscules sans espaces superflus ; une chaîne vide vaut absence de référence."""
    if value is None:
        return None
    value = value.strip().upper()
    return value or None


class ProductKind(str, Enum):
    STANDARD = "standard" # Catalogue fourni par la plateforme
    CUSTOM = "custom"


class ProductBase(SQLModel):
    designation: str = Field(..., min_length=1, max_length=255)
    reference: Optional[str] = Field(default=None, max_length=100)
    unit: Optional[str] = Field(default=None, max_length=20)
    category: Optional[str] = Field(default=None, max_length=100)
    default_price_ht: Decimal = Field(default=Decimal("0"), ge=0, max_digits=14, decimal_places=4)
    default_tax_rate: Decimal = Field(default=Decimal("20"), max_digits=5, decimal_places=2)
    default_margin: Decimal = Field(default=Decimal("0"), max_digits=7, decimal_places=2)
    default_supplier_id: Optional[int] = Field(default=None, foreign_key="suppliers.id")
    active: bool = True
    stock_tracked: bool = False
    minimum_stock: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=4)


class Product(ProductBase, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    # NULL pour les produits standards partagés
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    kind: str = Field(default=ProductKind.CUSTOM.value, max_length=20)
    current_stock: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=4)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class ProductCreate(ProductBase):
    initial_stock: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("reference")
    @classmethod
    def clean_reference(cls, value: Optional[str]) -> Optional[str]:
        return normalize_reference(value)

    @field_validator("default_tax_rate")
    @classmethod
    def check_tax_rate(cls, value: Decimal) -> Decimal:
        if not is_allowed_tax_rate(value):
            raise ValueError("Taux de TVA non autorisé (0, 5.5, 10 ou 20).")
        return value


class ProductUpdate(SQLModel):
    designation: Optional[str] = Field(default=None, min_length=1, max_length=255)
    reference: Optional[str] = Field(default=None, max_length=100)
    unit: Optional[str] = None
    category: Optional[str] = None
    default_price_ht: Optional[Decimal] = Field(default=None, ge=0)
    default_tax_rate: Optional[Decimal] = None
    default_margin: Optional[Decimal] = None
    default_supplier_id: Optional[int] = None
    active: Optional[bool] = None
    stock_tracked: Optional[bool] = None
    minimum_stock: Optional[Decimal] = Field(default=None, ge=0)

    @field_validator("reference")
    @classmethod
    def clean_reference(cls, value: Optional[str]) -> Optional[str]:
        return normalize_reference(value)

    @field_validator("default_tax_rate")
    @classmethod
    def check_tax_rate(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        if value is not None and not is_allowed_tax_rate(value):
            raise ValueError("Taux de TVA non autorisé (0, 5.5, 10 ou 20).")
        return value


class ProductRead(ProductBase):
    id: int
    user_id: Optional[int] = None
    kind: str
    current_stock: Decimal
    low_stock: bool = False


class ProductImportMode(str, Enum):
    CREATE = "create" # Toutes les lignes deviennent des produits
    IGNORE = "ignore" # Références déjà présentes ignorées
    UPDATE = "update" # Seules les références déjà présentes sont mises à jour


class ProductImportRowResult(SQLModel):
    line_number: int
    reference: Optional[str] = None
    outcome: str # imported | updated | ignored | error
    errors: List[str] = []
    warnings: List[str] = []


class ProductImportSummary(SQLModel):
    mode: ProductImportMode
    dry_run: bool = False
    imported: int = 0
    updated: int = 0
    ignored: int = 0
    errors: int = 0
    rows: List[ProductImportRowResult] = []
