from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import field_validator
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from devisfacture.clients.models import Client, ClientRead
from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import today, utcnow
from devisfacture.pricing.calculations import is_allowed_tax_rate
from devisfacture.quotes.constants import QuoteStatus

# --- Lignes de devis ---

class QuoteLineBase(SQLModel):
    designation: str = Field(..., min_length=1, max_length=500)
    reference: Optional[str] = Field(default=None, max_length=100)
    unit: Optional[str] = Field(default=None, max_length=20)
    quantity: Decimal = Field(..., ge=0, max_digits=14, decimal_places=4)
    unit_price_ht: Decimal = Field(..., ge=0, max_digits=14, decimal_places=4)
    tax_rate: Decimal = Field(default=Decimal("20"), max_digits=5, decimal_places=2)
    # Informatif, n'entre pas dans les totaux
    margin_percent: Decimal = Field(default=Decimal("0"), max_digits=7, decimal_places=2)
    supplier_id: Optional[int] = Field(default=None, foreign_key="suppliers.id")


class QuoteLine(QuoteLineBase, table=True):
    __tablename__ = "quote_lines"

    id: Optional[int] = Field(default=None, primary_key=True)
    quote_id: int = Field(foreign_key="quotes.id", index=True, ondelete="CASCADE")
    position: int = Field(default=0, nullable=False)
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")

    quote: Optional["Quote"] = Relationship(back_populates="lines")


class QuoteLineInput(QuoteLineBase):
    product_id: Optional[int] = None

    @field_validator("tax_rate")
    @classmethod
    def check_tax_rate(cls, value: Decimal) -> Decimal:
        if not is_allowed_tax_rate(value):
            raise ValueError("Taux de TVA non autorisé (0, 5.5, 10 ou 20).")
        return value


class QuoteLineRead(QuoteLineBase):
    id: int
    position: int
    product_id: Optional[int] = None
    total_ht: Decimal

# --- Devis ---

class QuoteBase(SQLModel):
    client_id: int = Field(foreign_key="clients.id", index=True)
    valid_until: Optional[date] = None
    notes: Optional[str] = None
    work_description: Optional[str] = None


class Quote(QuoteBase, table=True):
    __tablename__ = "quotes"
    __table_args__ = (UniqueConstraint("user_id", "number", name="uq_quotes_user_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    number: str = Field(max_length=30)
    created_on: date = Field(default_factory=today, nullable=False)
    status: str = Field(default=QuoteStatus.DRAFT.value, max_length=20)
    total_ht: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=4)
    total_tva: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=4)
    total_ttc: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=4)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)

    lines: List[QuoteLine] = Relationship(
        back_populates="quote",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "QuoteLine.position",
            "lazy": "selectin",
        },
    )
    client: Optional[Client] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})


class QuoteCreate(SQLModel):
    client_id: int
    valid_until: Optional[date] = None
    notes: Optional[str] = None
    work_description: Optional[str] = None
    lines: List[QuoteLineInput] = []


class QuoteUpdate(SQLModel):
    """Mise à jour de l'en-tête et/ou remplacement complet des lignes."""
    client_id: Optional[int] = None
    valid_until: Optional[date] = None
    notes: Optional[str] = None
    work_description: Optional[str] = None
    lines: Optional[List[QuoteLineInput]] = None


class QuoteStatusUpdate(SQLModel):
    status: QuoteStatus


class QuoteRead(QuoteBase):
    id: int
    user_id: int
    number: str
    created_on: date
    status: str
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    client: Optional[ClientRead] = None
    lines: List[QuoteLineRead] = []
    invoice_id: Optional[int] = None
    # Verrouillé dès qu'une facture a été générée
    locked: bool = False
