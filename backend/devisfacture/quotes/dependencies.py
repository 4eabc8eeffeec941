import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.clients.service import ClientService
from devisfacture.database import get_db_session
from devisfacture.products.service import ProductService
from devisfacture.quotes.interfaces.repositories import AbstractQuoteRepository
from devisfacture.quotes.repositories import SQLAlchemyQuoteRepository
from devisfacture.quotes.service import QuoteService
from devisfacture.suppliers.service import SupplierService

logger = logging.getLogger(__name__)

DbSessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_quote_repository(session: DbSessionDep) -> AbstractQuoteRepository:
    """Fournit le repository de devis (implémentation SQLAlchemy)."""
    return SQLAlchemyQuoteRepository(db_session=session)


QuoteRepositoryDep = Annotated[AbstractQuoteRepository, Depends(get_quote_repository)]


def get_quote_service(quote_repo: QuoteRepositoryDep, session: DbSessionDep) -> QuoteService:
    logger.debug("Fourniture de QuoteService avec repositories")
    return QuoteService(
        quote_repo=quote_repo,
        client_service=ClientService(session),
        product_service=ProductService(session),
        supplier_service=SupplierService(session),
    )


QuoteServiceDep = Annotated[QuoteService, Depends(get_quote_service)]
