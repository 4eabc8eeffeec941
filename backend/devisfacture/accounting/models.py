from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from devisfacture.invoices.constants import InvoiceStatus


class PeriodType(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class AccountingInvoiceRow(BaseModel):
    id: int
    number: str
    issued_on: date
    status: InvoiceStatus
    total_ttc: Decimal
    paid_total: Decimal
    client_name: Optional[str] = None


class AccountingSummary(BaseModel):
    start: date
    end: date
    total_collected: Decimal
    total_outstanding: Decimal
    paid_count: int
    unpaid_count: int
    average_invoice: Decimal
    # Pourcentage encaissé sur le total facturé de la période
    collection_rate: Decimal
    invoices: List[AccountingInvoiceRow] = []
