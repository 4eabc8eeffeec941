import logging
from typing import Optional

from devisfacture.clients.models import ClientRead
from devisfacture.core.schemas import PaginatedResponse
from devisfacture.core.utils import utcnow
from devisfacture.invoices.constants import InvoiceStatus
from devisfacture.invoices.exceptions import (
    InvoiceAlreadyExistsException,
    InvoiceNotCancellableException,
    InvoiceNotFoundException,
    QuoteNotAcceptedException,
)
from devisfacture.invoices.models import Invoice, InvoiceLine, InvoiceLineRead, InvoiceRead
from devisfacture.invoices.repositories import SQLAlchemyInvoiceRepository
from devisfacture.payments.ledger import derive_invoice_status, paid_total, remaining_balance
from devisfacture.payments.models import PaymentRead
from devisfacture.pricing.calculations import line_total_ht
from devisfacture.quotes.constants import QuoteStatus
from devisfacture.quotes.exceptions import QuoteNotFoundException
from devisfacture.quotes.interfaces.repositories import AbstractQuoteRepository
from devisfacture.quotes.numbering import derive_invoice_number

logger = logging.getLogger(__name__)


def to_invoice_read(invoice: Invoice) -> InvoiceRead:
    """Mappe une facture vers InvoiceRead avec statut, total payé et reste à payer calculés."""
    paid = paid_total(invoice.payments)
    return InvoiceRead(
        **invoice.model_dump(exclude={"status"}),
        status=derive_invoice_status(invoice.total_ttc, paid, invoice.status),
        paid_total=paid,
        remaining_balance=remaining_balance(invoice.total_ttc, paid),
        client=ClientRead.model_validate(invoice.client, from_attributes=True) if invoice.client else None,
        lines=[
            InvoiceLineRead(**line.model_dump(exclude={"invoice_id"}), total_ht=line_total_ht(line.quantity, line.unit_price_ht))
            for line in sorted(invoice.lines, key=lambda l: l.position)
        ],
        payments=[PaymentRead.model_validate(p, from_attributes=True) for p in invoice.payments],
    )


class InvoiceService:
    """Factures : conversion depuis un devis accepté, consultation, annulation."""

    def __init__(self, invoice_repo: SQLAlchemyInvoiceRepository, quote_repo: AbstractQuoteRepository):
        self.invoice_repo = invoice_repo
        self.quote_repo = quote_repo

    async def _load(self, invoice_id: int, user_id: int, for_update: bool = False) -> Invoice:
        invoice = await self.invoice_repo.get_by_id(invoice_id=invoice_id, user_id=user_id, for_update=for_update)
        if invoice is None:
            logger.warning(f"[InvoiceService] Facture ID {invoice_id} non trouvée pour user {user_id}.")
            raise InvoiceNotFoundException(invoice_id)
        return invoice

    async def get_invoice(self, invoice_id: int, user_id: int) -> InvoiceRead:
        return to_invoice_read(await self._load(invoice_id, user_id))

    async def list_invoices(self, user_id: int, limit: int, offset: int,
                            status: Optional[InvoiceStatus] = None) -> PaginatedResponse[InvoiceRead]:
        # Le statut étant dérivé des paiements, le filtre s'applique après lecture
        invoices = [to_invoice_read(i) for i in await self.invoice_repo.list_by_user_id(user_id=user_id)]
        if status is not None:
            invoices = [i for i in invoices if i.status == status]
        return PaginatedResponse[InvoiceRead](items=invoices[offset:offset + limit], total=len(invoices))

    async def convert_quote_to_invoice(self, quote_id: int, user_id: int) -> InvoiceRead:
        """Crée la facture d'un devis accepté, dans une seule transaction.

        Contrôles, dans l'ordre : devis existant et possédé, statut accepté,
        aucune facture existante. La contrainte d'unicité sur `quote_id`
        couvre le cas de deux conversions simultanées.
        """
        logger.info(f"[InvoiceService] Conversion du devis {quote_id} pour user {user_id}")
        quote = await self.quote_repo.get_by_id(quote_id=quote_id, user_id=user_id, for_update=True)
        if quote is None:
            raise QuoteNotFoundException(quote_id)
        if quote.status != QuoteStatus.ACCEPTED:
            logger.info(f"[InvoiceService] Devis {quote_id} au statut '{quote.status}', conversion refusée.")
            raise QuoteNotAcceptedException(quote_id, quote.status)
        if await self.invoice_repo.get_by_quote_id(quote_id=quote_id) is not None:
            raise InvoiceAlreadyExistsException(quote_id)

        invoice = Invoice(
            user_id=user_id,
            client_id=quote.client_id,
            quote_id=quote.id,
            number=derive_invoice_number(quote.number, quote.id),
            total_ht=quote.total_ht,
            total_tva=quote.total_tva,
            total_ttc=quote.total_ttc,
            notes=quote.notes,
            status=InvoiceStatus.UNPAID.value,
            locked=True,
            lines=[
                InvoiceLine(**line.model_dump(exclude={"id", "quote_id", "product_id"}))
                for line in quote.lines
            ],
        )
        quote.status = QuoteStatus.ACCEPTED.value
        quote.updated_at = utcnow()
        await self.invoice_repo.add(invoice)
        logger.info(f"[InvoiceService] Facture {invoice.number} (ID {invoice.id}) créée depuis le devis {quote.number}.")
        return to_invoice_read(await self._load(invoice.id, user_id))

    async def cancel_invoice(self, invoice_id: int, user_id: int) -> InvoiceRead:
        invoice = await self._load(invoice_id, user_id, for_update=True)
        if invoice.status == InvoiceStatus.CANCELLED:
            return to_invoice_read(invoice)
        if paid_total(invoice.payments) > 0:
            raise InvoiceNotCancellableException(
                invoice.id, "Une facture réglée ne peut pas être annulée : contrepassez d'abord les paiements."
            )
        invoice.status = InvoiceStatus.CANCELLED.value
        invoice.cancelled_at = utcnow()
        await self.invoice_repo.save(invoice)
        logger.info(f"[InvoiceService] Facture {invoice.number} annulée.")
        return to_invoice_read(await self._load(invoice.id, user_id))
