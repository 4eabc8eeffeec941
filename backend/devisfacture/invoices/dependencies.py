from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.database import get_db_session
from devisfacture.invoices.repositories import SQLAlchemyInvoiceRepository
from devisfacture.invoices.service import InvoiceService
from devisfacture.quotes.dependencies import QuoteRepositoryDep


def get_invoice_repository(session: Annotated[AsyncSession, Depends(get_db_session)]) -> SQLAlchemyInvoiceRepository:
    return SQLAlchemyInvoiceRepository(db_session=session)


InvoiceRepositoryDep = Annotated[SQLAlchemyInvoiceRepository, Depends(get_invoice_repository)]


def get_invoice_service(invoice_repo: InvoiceRepositoryDep, quote_repo: QuoteRepositoryDep) -> InvoiceService:
    return InvoiceService(invoice_repo=invoice_repo, quote_repo=quote_repo)


InvoiceServiceDep = Annotated[InvoiceService, Depends(get_invoice_service)]
