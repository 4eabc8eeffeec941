"""Exceptions du journal des paiements."""
from decimal import Decimal

from devisfacture.core.exceptions import ConflictError, ExceedsBalanceError, InvalidAmountError, InvalidStateError, NotFoundError
from devisfacture.pricing.calculations import format_amount


class PaymentNotFoundException(NotFoundError):
    def __init__(self, payment_id: int):
        super().__init__(f"Paiement avec ID {payment_id} non trouvé.")
        self.payment_id = payment_id


class InvalidPaymentAmountException(InvalidAmountError):
    def __init__(self):
        super().__init__("Montant invalide.")


class PaymentExceedsBalanceException(ExceedsBalanceError):
    def __init__(self, remaining: Decimal):
        super().__init__(f"Le montant ne peut pas dépasser le reste à payer ({format_amount(remaining)} €).")
        self.remaining = remaining


class InvoiceNotPayableException(InvalidStateError):
    def __init__(self, invoice_id: int, status: str):
        super().__init__("Cette facture est annulée : aucun paiement ne peut être enregistré.")
        self.invoice_id = invoice_id
        self.status = status


class PaymentAlreadyReversedException(ConflictError):
    def __init__(self, payment_id: int):
        super().__init__("Ce paiement a déjà été contrepassé.")
        self.payment_id = payment_id


class ReversalNotReversibleException(InvalidStateError):
    def __init__(self, payment_id: int):
        super().__init__("Une écriture de contrepassation ne peut pas être elle-même contrepassée.")
        self.payment_id = payment_id
