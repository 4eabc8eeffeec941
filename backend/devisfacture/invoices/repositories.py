import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import select

from devisfacture.invoices.exceptions import (
    InvoiceAlreadyExistsException,
    InvoiceNumberConflictException,
    InvoicePersistenceException,
)
from devisfacture.invoices.models import Invoice

logger = logging.getLogger(__name__)


class SQLAlchemyInvoiceRepository:
    """Accès aux factures. Toutes les requêtes sont filtrées par propriétaire."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_by_id(self, *, invoice_id: int, user_id: int, for_update: bool = False) -> Optional[Invoice]:
        statement = (
            select(Invoice)
            .where(Invoice.id == invoice_id, Invoice.user_id == user_id)
            .options(selectinload(Invoice.lines), selectinload(Invoice.client), selectinload(Invoice.payments))
            .execution_options(populate_existing=True)
        )
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        return result.scalars().first()

    async def get_by_quote_id(self, *, quote_id: int) -> Optional[Invoice]:
        result = await self.db.execute(select(Invoice).where(Invoice.quote_id == quote_id))
        return result.scalars().first()

    async def list_by_user_id(self, *, user_id: int) -> List[Invoice]:
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.user_id == user_id)
            .order_by(Invoice.issued_on.desc(), Invoice.id.desc())
        )
        return list(result.scalars().all())

    async def add(self, invoice: Invoice) -> Invoice:
        """Insère la facture et ses lignes, puis valide la transaction en cours."""
        quote_id, number = invoice.quote_id, invoice.number
        self.db.add(invoice)
        try:
            await self.db.flush()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"[InvoiceRepo] Violation de contrainte pour facture {number}: {e.orig}")
            if quote_id is not None and await self.get_by_quote_id(quote_id=quote_id) is not None:
                raise InvoiceAlreadyExistsException(quote_id)
            raise InvoiceNumberConflictException(number)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[InvoiceRepo] Erreur DB création facture {number}: {e}", exc_info=True)
            raise InvoicePersistenceException()
        return invoice

    async def save(self, invoice: Invoice) -> Invoice:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[InvoiceRepo] Erreur DB mise à jour facture {invoice.id}: {e}", exc_info=True)
            raise InvoicePersistenceException()
        return invoice
