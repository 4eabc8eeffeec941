import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.core.pagination import PaginationParams
from devisfacture.core.schemas import PaginatedResponse
from devisfacture.invoices.constants import InvoiceStatus
from devisfacture.invoices.dependencies import InvoiceServiceDep
from devisfacture.invoices.models import InvoiceFromQuote, InvoiceRead
from devisfacture.subscriptions.dependencies import require_active_subscription

logger = logging.getLogger(__name__)

invoice_router = APIRouter(tags=["Factures"], dependencies=[Depends(require_active_subscription)])


@invoice_router.post("/from-quote", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
async def create_invoice_from_quote(invoice_service: InvoiceServiceDep, current_user: CurrentUserDep,
                                    request: InvoiceFromQuote):
    logger.info(f"API create_invoice_from_quote: devis {request.quote_id} par user {current_user.id}")
    try:
        return await invoice_service.convert_quote_to_invoice(request.quote_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@invoice_router.get("/", response_model=PaginatedResponse[InvoiceRead])
async def list_my_invoices(
    invoice_service: InvoiceServiceDep,
    current_user: CurrentUserDep,
    response: Response,
    pagination: PaginationParams,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
):
    limit, offset = pagination
    page = await invoice_service.list_invoices(current_user.id, limit=limit, offset=offset, status=status_filter)
    end_range = offset + len(page.items) - 1 if page.items else offset
    response.headers["Content-Range"] = f"invoices {offset}-{end_range}/{page.total}"
    return page


@invoice_router.get("/{invoice_id}", response_model=InvoiceRead)
async def read_invoice(invoice_service: InvoiceServiceDep, current_user: CurrentUserDep,
                       invoice_id: int = Path(..., ge=1)):
    try:
        return await invoice_service.get_invoice(invoice_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@invoice_router.post("/{invoice_id}/cancel", response_model=InvoiceRead)
async def cancel_invoice(invoice_service: InvoiceServiceDep, current_user: CurrentUserDep,
                         invoice_id: int = Path(..., ge=1)):
    """Annule une facture sans paiement net (le statut 'cancelled' est le seul stocké)."""
    try:
        return await invoice_service.cancel_invoice(invoice_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)
