from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import model_validator
from sqlmodel import Field, SQLModel

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import today, utcnow
from devisfacture.payments.constants import PAYMENT_MODE_LABELS, PaymentIntent, PaymentMode


class Payment(SQLModel, table=True):
    """Règlement d'une facture.

    Journal en ajout seul : une correction est une écriture de contrepassation
    (montant négatif) qui référence le paiement annulé.
    """
    __tablename__ = "payments"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoices.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    amount: Decimal = Field(max_digits=14, decimal_places=4)
    payment_date: date = Field(default_factory=today, nullable=False)
    mode: str = Field(max_length=20)
    reference: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None
    reverses_payment_id: Optional[int] = Field(default=None, foreign_key="payments.id", unique=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class PaymentCreate(SQLModel):
    amount: Decimal = Field(..., max_digits=14, decimal_places=4)
    mode: PaymentMode
    reference: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class PaymentReversalCreate(SQLModel):
    notes: Optional[str] = None


class PaymentRead(SQLModel):
    id: int
    invoice_id: int
    amount: Decimal
    payment_date: date
    mode: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    reverses_payment_id: Optional[int] = None
    mode_label: Optional[str] = None

    @model_validator(mode="after")
    def fill_mode_label(self) -> "PaymentRead":
        if self.mode_label is None:
            self.mode_label = PAYMENT_MODE_LABELS.get(self.mode)
        return self


class PaymentPrefillRead(SQLModel):
    intent: PaymentIntent
    amount: Optional[Decimal] = None
    remaining_balance: Decimal
