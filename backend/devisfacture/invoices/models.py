from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from devisfacture.clients.models import Client, ClientRead
from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import today, utcnow
from devisfacture.invoices.constants import InvoiceStatus
from devisfacture.payments.models import Payment, PaymentRead

# --- Lignes de facture ---

class InvoiceLineBase(SQLModel):
    designation: str = Field(..., max_length=500)
    reference: Optional[str] = Field(default=None, max_length=100)
    unit: Optional[str] = Field(default=None, max_length=20)
    quantity: Decimal = Field(..., max_digits=14, decimal_places=4)
    unit_price_ht: Decimal = Field(..., max_digits=14, decimal_places=4)
    tax_rate: Decimal = Field(default=Decimal("20"), max_digits=5, decimal_places=2)
    margin_percent: Decimal = Field(default=Decimal("0"), max_digits=7, decimal_places=2)
    position: int = Field(default=0, nullable=False)
    supplier_id: Optional[int] = Field(default=None, foreign_key="suppliers.id")


class InvoiceLine(InvoiceLineBase, table=True):
    """Copie figée d'une ligne de devis (sans lien produit)."""
    __tablename__ = "invoice_lines"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoices.id", index=True, ondelete="CASCADE")

    invoice: Optional["Invoice"] = Relationship(back_populates="lines")


class InvoiceLineRead(InvoiceLineBase):
    id: int
    total_ht: Decimal

# --- Factures ---

class Invoice(SQLModel, table=True):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("user_id", "number", name="uq_invoices_user_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    client_id: int = Field(foreign_key="clients.id", index=True)
    # Une seule facture par devis, garanti par la base
    quote_id: Optional[int] = Field(default=None, foreign_key="quotes.id", unique=True)
    number: str = Field(max_length=30)
    issued_on: date = Field(default_factory=today, nullable=False)
    due_on: Optional[date] = None
    status: str = Field(default=InvoiceStatus.UNPAID.value, max_length=20)
    total_ht: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=4)
    total_tva: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=4)
    total_ttc: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=4)
    notes: Optional[str] = None
    locked: bool = Field(default=True, nullable=False)
    cancelled_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)

    lines: List[InvoiceLine] = Relationship(
        back_populates="invoice",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "InvoiceLine.position",
            "lazy": "selectin",
        },
    )
    client: Optional[Client] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})
    payments: List[Payment] = Relationship(
        sa_relationship_kwargs={"order_by": "Payment.id", "lazy": "selectin"}
    )


class InvoiceFromQuote(SQLModel):
    quote_id: int = Field(..., ge=1)


class InvoiceRead(SQLModel):
    id: int
    user_id: int
    client_id: int
    quote_id: Optional[int] = None
    number: str
    issued_on: date
    due_on: Optional[date] = None
    status: InvoiceStatus
    total_ht: Decimal
    total_tva: Decimal
    total_ttc: Decimal
    paid_total: Decimal
    remaining_balance: Decimal
    notes: Optional[str] = None
    locked: bool
    cancelled_at: Optional[datetime] = None
    client: Optional[ClientRead] = None
    lines: List[InvoiceLineRead] = []
    payments: List[PaymentRead] = []
