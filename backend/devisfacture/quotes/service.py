import logging
from typing import Dict, List, Optional

from devisfacture.clients.models import ClientRead
from devisfacture.clients.service import ClientService
from devisfacture.core.schemas import PaginatedResponse
from devisfacture.core.utils import utcnow
from devisfacture.pricing.calculations import document_totals, line_total_ht
from devisfacture.products.service import ProductService
from devisfacture.quotes.constants import MAX_NUMBERING_ATTEMPTS, QuoteStatus
from devisfacture.quotes.exceptions import (
    InvoicedQuoteDeletionException,
    QuoteLockedException,
    QuoteNotFoundException,
    QuoteNumberConflictException,
)
from devisfacture.quotes.interfaces.repositories import AbstractQuoteRepository
from devisfacture.quotes.models import (
    Quote,
    QuoteCreate,
    QuoteLine,
    QuoteLineInput,
    QuoteLineRead,
    QuoteRead,
    QuoteUpdate,
)
from devisfacture.suppliers.service import SupplierService

logger = logging.getLogger(__name__)


def to_quote_read(quote: Quote, invoice_id: Optional[int] = None) -> QuoteRead:
    """Mappe un devis de la DB vers QuoteRead (total HT de chaque ligne inclus)."""
    lines = [
        QuoteLineRead(
            **line.model_dump(exclude={"quote_id"}),
            total_ht=line_total_ht(line.quantity, line.unit_price_ht),
        )
        for line in sorted(quote.lines, key=lambda l: l.position)
    ]
    return QuoteRead(
        **quote.model_dump(),
        client=ClientRead.model_validate(quote.client, from_attributes=True) if quote.client else None,
        lines=lines,
        invoice_id=invoice_id,
        locked=invoice_id is not None,
    )


class QuoteService:
    """Service applicatif des devis : création, édition, statut, suppression.

    La conversion en facture est portée par InvoiceService.
    """

    def __init__(self, quote_repo: AbstractQuoteRepository, client_service: ClientService,
                 product_service: ProductService, supplier_service: SupplierService):
        self.quote_repo = quote_repo
        self.client_service = client_service
        self.product_service = product_service
        self.supplier_service = supplier_service

    async def _build_lines(self, lines: List[QuoteLineInput], user_id: int) -> List[QuoteLine]:
        for product_id in {line.product_id for line in lines if line.product_id is not None}:
            await self.product_service.get_product(product_id, user_id)
        for supplier_id in {line.supplier_id for line in lines if line.supplier_id is not None}:
            await self.supplier_service.ensure_owned(supplier_id, user_id)
        return [QuoteLine(**line.model_dump(), position=index) for index, line in enumerate(lines)]

    @staticmethod
    def _apply_totals(quote: Quote) -> None:
        totals = document_totals(quote.lines)
        quote.total_ht = totals.total_ht
        quote.total_tva = totals.total_tva
        quote.total_ttc = totals.total_ttc

    async def _load(self, quote_id: int, user_id: int, for_update: bool = False) -> Quote:
        quote = await self.quote_repo.get_by_id(quote_id=quote_id, user_id=user_id, for_update=for_update)
        if not quote:
            logger.warning(f"[QuoteService] Devis ID {quote_id} non trouvé pour user {user_id}.")
            raise QuoteNotFoundException(quote_id)
        return quote

    async def _read(self, quote_id: int, user_id: int) -> QuoteRead:
        quote = await self._load(quote_id, user_id)
        invoice_id = await self.quote_repo.get_invoice_id(quote_id=quote.id)
        return to_quote_read(quote, invoice_id)

    async def get_quote(self, quote_id: int, user_id: int) -> QuoteRead:
        logger.debug(f"[QuoteService] Récupération devis ID: {quote_id} pour user: {user_id}")
        return await self._read(quote_id, user_id)

    async def list_user_quotes(self, user_id: int, limit: int, offset: int,
                               status: Optional[QuoteStatus] = None) -> PaginatedResponse[QuoteRead]:
        quotes, total = await self.quote_repo.list_by_user_id(
            user_id=user_id, limit=limit, offset=offset, status=status.value if status else None
        )
        invoice_ids: Dict[int, int] = await self.quote_repo.get_invoice_ids(quote_ids=[q.id for q in quotes])
        return PaginatedResponse[QuoteRead](
            items=[to_quote_read(q, invoice_ids.get(q.id)) for q in quotes],
            total=total,
        )

    async def create_quote(self, data: QuoteCreate, user_id: int) -> QuoteRead:
        logger.info(f"[QuoteService] Création devis pour user ID: {user_id} ({len(data.lines)} ligne(s))")
        await self.client_service.ensure_owned(data.client_id, user_id)

        for attempt in range(1, MAX_NUMBERING_ATTEMPTS + 1):
            lines = await self._build_lines(data.lines, user_id)
            number = await self.quote_repo.next_number(user_id=user_id)
            quote = Quote(
                **data.model_dump(exclude={"lines"}),
                user_id=user_id,
                number=number,
                status=QuoteStatus.DRAFT.value,
                lines=lines,
            )
            self._apply_totals(quote)
            try:
                await self.quote_repo.save(quote)
                break
            except QuoteNumberConflictException:
                if attempt == MAX_NUMBERING_ATTEMPTS:
                    raise
                logger.warning(f"[QuoteService] Numéro {number} pris par une requête concurrente, nouvelle tentative.")

        logger.info(f"[QuoteService] Devis {quote.number} (ID {quote.id}) créé pour user {user_id}.")
        return await self._read(quote.id, user_id)

    async def update_quote(self, quote_id: int, data: QuoteUpdate, user_id: int) -> QuoteRead:
        quote = await self._load(quote_id, user_id, for_update=True)
        if await self.quote_repo.get_invoice_id(quote_id=quote.id) is not None:
            raise QuoteLockedException(quote.id)

        changes = data.model_dump(exclude_unset=True, exclude={"lines"})
        if "client_id" in changes and changes["client_id"] is not None:
            await self.client_service.ensure_owned(changes["client_id"], user_id)
        for field, value in changes.items():
            if field == "client_id" and value is None:
                continue
            setattr(quote, field, value)

        if data.lines is not None:
            quote.lines = await self._build_lines(data.lines, user_id)
        # Les totaux reflètent toujours les lignes au dernier enregistrement
        self._apply_totals(quote)
        quote.updated_at = utcnow()
        await self.quote_repo.save(quote)
        logger.info(f"[QuoteService] Devis ID {quote.id} mis à jour.")
        return await self._read(quote.id, user_id)

    async def change_status(self, quote_id: int, new_status: QuoteStatus, user_id: int) -> QuoteRead:
        """Changement de statut libre ; autorisé même sur un devis facturé."""
        quote = await self._load(quote_id, user_id, for_update=True)
        if quote.status == new_status:
            logger.debug(f"[QuoteService] Devis {quote_id} déjà au statut '{new_status.value}'.")
            return await self._read(quote.id, user_id)
        logger.info(f"[QuoteService] Devis {quote_id}: '{quote.status}' -> '{new_status.value}'")
        quote.status = new_status.value
        quote.updated_at = utcnow()
        await self.quote_repo.save(quote)
        return await self._read(quote.id, user_id)

    async def delete_quote(self, quote_id: int, user_id: int) -> None:
        quote = await self._load(quote_id, user_id)
        if await self.quote_repo.get_invoice_id(quote_id=quote.id) is not None:
            raise InvoicedQuoteDeletionException(quote.id)
        await self.quote_repo.delete(quote)
        logger.info(f"[QuoteService] Devis ID {quote_id} supprimé.")
