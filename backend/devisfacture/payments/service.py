import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.core.utils import today
from devisfacture.invoices.constants import InvoiceStatus
from devisfacture.invoices.exceptions import InvoiceNotFoundException, InvoicePersistenceException
from devisfacture.invoices.models import Invoice
from devisfacture.invoices.repositories import SQLAlchemyInvoiceRepository
from devisfacture.payments.constants import PaymentIntent
from devisfacture.payments.exceptions import (
    InvoiceNotPayableException,
    PaymentAlreadyReversedException,
    PaymentNotFoundException,
    ReversalNotReversibleException,
)
from devisfacture.payments.ledger import (
    derive_invoice_status,
    paid_total,
    prefill_amount,
    remaining_balance,
    validate_payment_amount,
)
from devisfacture.payments.models import Payment, PaymentCreate, PaymentPrefillRead, PaymentRead

logger = logging.getLogger(__name__)


class PaymentService:
    """Journal des paiements d'une facture (ajout seul).

    Chaque écriture verrouille la ligne de la facture pour que le contrôle
    du reste à payer et l'insertion se fassent sans course.
    """

    def __init__(self, db: AsyncSession, invoice_repo: Optional[SQLAlchemyInvoiceRepository] = None):
        self.db = db
        self.invoice_repo = invoice_repo or SQLAlchemyInvoiceRepository(db_session=db)

    async def _load_invoice(self, invoice_id: int, user_id: int, for_update: bool = False) -> Invoice:
        invoice = await self.invoice_repo.get_by_id(invoice_id=invoice_id, user_id=user_id, for_update=for_update)
        if invoice is None:
            raise InvoiceNotFoundException(invoice_id)
        return invoice

    async def _commit(self, payment: Payment) -> Payment:
        self.db.add(payment)
        try:
            await self.db.flush()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"[PaymentService] Violation de contrainte: {e.orig}")
            if payment.reverses_payment_id is not None:
                raise PaymentAlreadyReversedException(payment.reverses_payment_id)
            raise InvoicePersistenceException("Erreur lors de l'enregistrement du paiement.")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[PaymentService] Erreur DB enregistrement paiement: {e}", exc_info=True)
            raise InvoicePersistenceException("Erreur lors de l'enregistrement du paiement.")
        await self.db.refresh(payment)
        return payment

    async def list_payments(self, invoice_id: int, user_id: int) -> List[PaymentRead]:
        invoice = await self._load_invoice(invoice_id, user_id)
        return [PaymentRead.model_validate(p, from_attributes=True) for p in invoice.payments]

    async def record_payment(self, invoice_id: int, data: PaymentCreate, user_id: int) -> PaymentRead:
        invoice = await self._load_invoice(invoice_id, user_id, for_update=True)
        paid = paid_total(invoice.payments)
        current_status = derive_invoice_status(invoice.total_ttc, paid, invoice.status)
        # Une facture soldée refuse tout montant positif via le contrôle du reste à payer
        if current_status == InvoiceStatus.CANCELLED:
            raise InvoiceNotPayableException(invoice.id, current_status.value)

        remaining = remaining_balance(invoice.total_ttc, paid)
        validate_payment_amount(data.amount, remaining)

        payment = Payment(
            **data.model_dump(exclude={"mode"}),
            mode=data.mode.value,
            invoice_id=invoice.id,
            user_id=user_id,
            payment_date=today(),
        )
        await self._commit(payment)
        logger.info(f"[PaymentService] Paiement de {data.amount} € enregistré sur la facture {invoice.number}.")
        return PaymentRead.model_validate(payment, from_attributes=True)

    async def reverse_payment(self, invoice_id: int, payment_id: int, user_id: int,
                              notes: Optional[str] = None) -> PaymentRead:
        """Contrepasse un paiement par une écriture de montant opposé."""
        invoice = await self._load_invoice(invoice_id, user_id, for_update=True)
        original = next((p for p in invoice.payments if p.id == payment_id), None)
        if original is None:
            raise PaymentNotFoundException(payment_id)
        if original.reverses_payment_id is not None:
            raise ReversalNotReversibleException(payment_id)
        if any(p.reverses_payment_id == payment_id for p in invoice.payments):
            raise PaymentAlreadyReversedException(payment_id)

        reversal = Payment(
            invoice_id=invoice.id,
            user_id=user_id,
            amount=-Decimal(original.amount),
            mode=original.mode,
            reference=original.reference,
            notes=notes or f"Contrepassation du paiement {original.id}",
            reverses_payment_id=original.id,
            payment_date=today(),
        )
        await self._commit(reversal)
        logger.info(f"[PaymentService] Paiement {original.id} contrepassé sur la facture {invoice.number}.")
        return PaymentRead.model_validate(reversal, from_attributes=True)

    async def prefill(self, invoice_id: int, intent: PaymentIntent, user_id: int) -> PaymentPrefillRead:
        invoice = await self._load_invoice(invoice_id, user_id)
        remaining = remaining_balance(invoice.total_ttc, paid_total(invoice.payments))
        return PaymentPrefillRead(intent=intent, amount=prefill_amount(intent, remaining), remaining_balance=remaining)
