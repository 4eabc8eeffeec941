import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Response, status

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.core.pagination import PaginationParams
from devisfacture.core.schemas import PaginatedResponse
from devisfacture.invoices.dependencies import InvoiceServiceDep
from devisfacture.invoices.models import InvoiceRead
from devisfacture.quotes.constants import QuoteStatus
from devisfacture.quotes.dependencies import QuoteServiceDep
from devisfacture.quotes.models import QuoteCreate, QuoteRead, QuoteStatusUpdate, QuoteUpdate
from devisfacture.subscriptions.dependencies import require_active_subscription

logger = logging.getLogger(__name__)

quote_router = APIRouter(tags=["Devis"], dependencies=[Depends(require_active_subscription)])


@quote_router.post("/", response_model=QuoteRead, status_code=status.HTTP_201_CREATED)
async def create_new_quote(quote_service: QuoteServiceDep, current_user: CurrentUserDep, quote_request: QuoteCreate):
    """Crée un devis brouillon numéroté pour l'utilisateur authentifié."""
    logger.info(f"API create_quote pour user ID: {current_user.id}")
    try:
        return await quote_service.create_quote(quote_request, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@quote_router.get("/", response_model=PaginatedResponse[QuoteRead])
async def list_my_quotes(
    quote_service: QuoteServiceDep,
    current_user: CurrentUserDep,
    response: Response,
    pagination: PaginationParams,
    status_filter: Optional[QuoteStatus] = Query(None, alias="status"),
):
    limit, offset = pagination
    page = await quote_service.list_user_quotes(current_user.id, limit=limit, offset=offset, status=status_filter)
    end_range = offset + len(page.items) - 1 if page.items else offset
    response.headers["Content-Range"] = f"quotes {offset}-{end_range}/{page.total}"
    return page


@quote_router.get("/{quote_id}", response_model=QuoteRead)
async def read_quote(quote_service: QuoteServiceDep, current_user: CurrentUserDep, quote_id: int = Path(..., ge=1)):
    try:
        return await quote_service.get_quote(quote_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@quote_router.patch("/{quote_id}", response_model=QuoteRead)
async def update_quote(
    quote_service: QuoteServiceDep,
    current_user: CurrentUserDep,
    data: QuoteUpdate,
    quote_id: int = Path(..., ge=1),
):
    """Modifie l'en-tête ou remplace les lignes (refusé une fois le devis facturé)."""
    try:
        return await quote_service.update_quote(quote_id, data, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@quote_router.patch("/{quote_id}/status", response_model=QuoteRead)
async def update_quote_status(
    quote_service: QuoteServiceDep,
    current_user: CurrentUserDep,
    quote_id: int = Path(..., ge=1),
    status_update: QuoteStatusUpdate = Body(...),
):
    logger.info(f"API update_quote_status: ID={quote_id} à '{status_update.status.value}' par user {current_user.id}")
    try:
        return await quote_service.change_status(quote_id, status_update.status, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@quote_router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(quote_service: QuoteServiceDep, current_user: CurrentUserDep, quote_id: int = Path(..., ge=1)):
    try:
        await quote_service.delete_quote(quote_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@quote_router.post("/{quote_id}/invoice", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
async def convert_quote_to_invoice(
    invoice_service: InvoiceServiceDep,
    current_user: CurrentUserDep,
    quote_id: int = Path(..., ge=1),
):
    """Génère la facture d'un devis accepté (une seule facture par devis)."""
    logger.info(f"API convert_quote_to_invoice: devis {quote_id} par user {current_user.id}")
    try:
        return await invoice_service.convert_quote_to_invoice(quote_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)
