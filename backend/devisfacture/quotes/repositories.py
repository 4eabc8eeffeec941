import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import func, select

from devisfacture.invoices.models import Invoice
from devisfacture.quotes.constants import QUOTE_NUMBER_PREFIX
from devisfacture.quotes.exceptions import QuoteNumberConflictException, QuotePersistenceException
from devisfacture.quotes.interfaces.repositories import AbstractQuoteRepository
from devisfacture.quotes.models import Quote
from devisfacture.quotes.numbering import next_quote_number

logger = logging.getLogger(__name__)


class SQLAlchemyQuoteRepository(AbstractQuoteRepository):
    """Implémentation SQLAlchemy du repository des devis."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_id(self, *, quote_id: int, user_id: int, for_update: bool = False) -> Optional[Quote]:
        statement = (
            select(Quote)
            .where(Quote.id == quote_id, Quote.user_id == user_id)
            .options(selectinload(Quote.lines), selectinload(Quote.client))
            .execution_options(populate_existing=True)
        )
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        return result.scalars().first()

    async def list_by_user_id(
        self, *, user_id: int, offset: int = 0, limit: int = 100, status: Optional[str] = None
    ) -> Tuple[List[Quote], int]:
        conditions = [Quote.user_id == user_id]
        if status:
            conditions.append(Quote.status == status)
        total = await self.db.scalar(select(func.count()).select_from(Quote).where(*conditions))
        result = await self.db.execute(
            select(Quote)
            .where(*conditions)
            .order_by(Quote.created_at.desc(), Quote.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def next_number(self, *, user_id: int) -> str:
        result = await self.db.execute(
            select(Quote.number).where(Quote.user_id == user_id, Quote.number.like(f"{QUOTE_NUMBER_PREFIX}%"))
        )
        return next_quote_number(result.scalars().all())

    async def save(self, quote: Quote) -> Quote:
        self.db.add(quote)
        try:
            await self.db.flush()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"[QuoteRepo] Violation de contrainte pour devis {quote.number}: {e.orig}")
            raise QuoteNumberConflictException(quote.number)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[QuoteRepo] Erreur DB enregistrement devis: {e}", exc_info=True)
            raise QuotePersistenceException()
        return quote

    async def delete(self, quote: Quote) -> None:
        try:
            await self.db.delete(quote)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[QuoteRepo] Erreur DB suppression devis {quote.id}: {e}", exc_info=True)
            raise QuotePersistenceException("Erreur lors de la suppression du devis.")

    async def get_invoice_id(self, *, quote_id: int) -> Optional[int]:
        result = await self.db.execute(select(Invoice.id).where(Invoice.quote_id == quote_id))
        return result.scalars().first()

    async def get_invoice_ids(self, *, quote_ids: List[int]) -> dict:
        if not quote_ids:
            return {}
        result = await self.db.execute(
            select(Invoice.quote_id, Invoice.id).where(Invoice.quote_id.in_(quote_ids))
        )
        return {quote_id: invoice_id for quote_id, invoice_id in result.all()}
