"""
Règles du journal des paiements : montants payés, reste à payer et statut dérivé.

Le statut d'une facture n'est jamais recalculé à l'écriture : il se déduit
à la lecture du total TTC, de la somme des paiements et de l'annulation éventuelle.
"""
from decimal import Decimal
from typing import Any, Iterable, Optional

from devisfacture.invoices.constants import InvoiceStatus
from devisfacture.payments.constants import PaymentIntent
from devisfacture.payments.exceptions import InvalidPaymentAmountException, PaymentExceedsBalanceException

ZERO = Decimal("0")


def _amount_of(entry: Any) -> Decimal:
    value = getattr(entry, "amount", entry)
    return Decimal(value or 0)


def paid_total(payments: Iterable[Any]) -> Decimal:
    """Somme des paiements (contrepassations négatives incluses)."""
    return sum((_amount_of(p) for p in payments), ZERO)


def remaining_balance(total_ttc: Decimal, paid: Decimal) -> Decimal:
    return max(ZERO, Decimal(total_ttc or 0) - Decimal(paid or 0))


def derive_invoice_status(total_ttc: Decimal, paid: Decimal, stored_status: Optional[str] = None) -> InvoiceStatus:
    if stored_status == InvoiceStatus.CANCELLED:
        return InvoiceStatus.CANCELLED
    total_ttc = Decimal(total_ttc or 0)
    paid = Decimal(paid or 0)
    if paid >= total_ttc and (paid > 0 or total_ttc == 0):
        return InvoiceStatus.PAID
    if paid > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.UNPAID


def validate_payment_amount(amount: Decimal, remaining: Decimal) -> None:
    """Un paiement est accepté si et seulement si 0 < montant <= reste à payer."""
    amount = Decimal(amount)
    if not amount.is_finite() or amount <= 0:
        raise InvalidPaymentAmountException()
    if amount > remaining:
        raise PaymentExceedsBalanceException(remaining)


def prefill_amount(intent: PaymentIntent, remaining: Decimal) -> Optional[Decimal]:
    """Le solde pré-remplit le reste à payer ; l'acompte est saisi librement."""
    if PaymentIntent(intent) == PaymentIntent.BALANCE:
        return remaining
    return None
