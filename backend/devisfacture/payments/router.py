import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Query, status

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.payments.constants import PaymentIntent
from devisfacture.payments.dependencies import PaymentServiceDep
from devisfacture.payments.models import PaymentCreate, PaymentPrefillRead, PaymentRead, PaymentReversalCreate
from devisfacture.subscriptions.dependencies import require_active_subscription

logger = logging.getLogger(__name__)

payment_router = APIRouter(tags=["Paiements"], dependencies=[Depends(require_active_subscription)])


@payment_router.get("/{invoice_id}/payments", response_model=List[PaymentRead])
async def list_invoice_payments(payment_service: PaymentServiceDep, current_user: CurrentUserDep,
                                invoice_id: int = Path(..., ge=1)):
    try:
        return await payment_service.list_payments(invoice_id, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@payment_router.post("/{invoice_id}/payments", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
async def record_invoice_payment(payment_service: PaymentServiceDep, current_user: CurrentUserDep,
                                 data: PaymentCreate, invoice_id: int = Path(..., ge=1)):
    """Enregistre un paiement daté du jour (0 < montant <= reste à payer)."""
    logger.info(f"API record_payment: facture {invoice_id}, montant {data.amount} par user {current_user.id}")
    try:
        return await payment_service.record_payment(invoice_id, data, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@payment_router.get("/{invoice_id}/payments/prefill", response_model=PaymentPrefillRead)
async def prefill_invoice_payment(payment_service: PaymentServiceDep, current_user: CurrentUserDep,
                                  invoice_id: int = Path(..., ge=1),
                                  intent: PaymentIntent = Query(PaymentIntent.BALANCE)):
    try:
        return await payment_service.prefill(invoice_id, intent, current_user.id)
    except DomainException as e:
        raise to_http_exception(e)


@payment_router.post("/{invoice_id}/payments/{payment_id}/reverse", response_model=PaymentRead,
                     status_code=status.HTTP_201_CREATED)
async def reverse_invoice_payment(payment_service: PaymentServiceDep, current_user: CurrentUserDep,
                                  invoice_id: int = Path(..., ge=1), payment_id: int = Path(..., ge=1),
                                  data: PaymentReversalCreate = PaymentReversalCreate()):
    logger.info(f"API reverse_payment: paiement {payment_id} (facture {invoice_id}) par user {current_user.id}")
    try:
        return await payment_service.reverse_payment(invoice_id, payment_id, current_user.id, notes=data.notes)
    except DomainException as e:
        raise to_http_exception(e)
