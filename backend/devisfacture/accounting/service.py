import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from devisfacture.accounting.models import AccountingInvoiceRow, AccountingSummary, PeriodType
from devisfacture.accounting.periods import period_bounds
from devisfacture.core.exceptions import ValidationError
from devisfacture.core.utils import today
from devisfacture.invoices.constants import InvoiceStatus
from devisfacture.invoices.models import Invoice
from devisfacture.payments.ledger import derive_invoice_status, paid_total, remaining_balance
from devisfacture.pricing.calculations import round_amount

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def summarize_invoices(invoices: Iterable[Invoice], start: date, end: date) -> AccountingSummary:
    """Encaissé / à encaisser des factures non annulées de la période."""
    rows = []
    collected = ZERO
    outstanding = ZERO
    paid_count = 0
    unpaid_count = 0
    for invoice in invoices:
        paid = paid_total(invoice.payments)
        status = derive_invoice_status(invoice.total_ttc, paid, invoice.status)
        if status == InvoiceStatus.CANCELLED:
            continue
        collected += min(paid, invoice.total_ttc)
        outstanding += remaining_balance(invoice.total_ttc, paid)
        if status == InvoiceStatus.PAID:
            paid_count += 1
        else:
            unpaid_count += 1
        rows.append(AccountingInvoiceRow(
            id=invoice.id,
            number=invoice.number,
            issued_on=invoice.issued_on,
            status=status,
            total_ttc=invoice.total_ttc,
            paid_total=paid,
            client_name=(invoice.client.company_name or invoice.client.name) if invoice.client else None,
        ))

    invoiced = collected + outstanding
    return AccountingSummary(
        start=start,
        end=end,
        total_collected=round_amount(collected),
        total_outstanding=round_amount(outstanding),
        paid_count=paid_count,
        unpaid_count=unpaid_count,
        average_invoice=round_amount(invoiced / len(rows)) if rows else ZERO,
        collection_rate=round_amount(collected * 100 / invoiced) if invoiced > 0 else ZERO,
        invoices=rows,
    )


class AccountingService:
    """Statistiques d'encaissement (module premium)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_summary(self, user_id: int, period: PeriodType = PeriodType.MONTH,
                          start: Optional[date] = None, end: Optional[date] = None) -> AccountingSummary:
        default_start, default_end = period_bounds(period, today())
        start = start or default_start
        end = end or default_end
        if start > end:
            raise ValidationError("La date de début doit précéder la date de fin.")

        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.user_id == user_id, Invoice.issued_on >= start, Invoice.issued_on <= end)
            .order_by(Invoice.issued_on.desc(), Invoice.id.desc())
        )
        summary = summarize_invoices(result.scalars().all(), start, end)
        logger.debug(f"[AccountingService] Synthèse {start} -> {end} pour user {user_id}: {len(summary.invoices)} facture(s)")
        return summary
