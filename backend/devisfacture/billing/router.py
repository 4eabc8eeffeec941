import logging
from typing import Optional

from fastapi import APIRouter, Body, Header, Request

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.billing.dependencies import BillingGatewayDep, BillingProjectorDep, CheckoutServiceDep
from devisfacture.billing.events import BillingEvent
from devisfacture.billing.exceptions import WebhookSignatureException
from devisfacture.billing.models import CheckoutRequest, PortalRequest, SessionUrlResponse, WebhookAck
from devisfacture.core.exceptions import DomainException, to_http_exception

logger = logging.getLogger(__name__)

billing_router = APIRouter(tags=["Abonnement Stripe"])


@billing_router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    gateway: BillingGatewayDep,
    projector: BillingProjectorDep,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
):
    """Reçoit les événements Stripe. Tout événement vérifié est acquitté, même s'il est ignoré."""
    payload = await request.body()
    try:
        if not stripe_signature:
            raise WebhookSignatureException("En-tête Stripe-Signature manquant.")
        event = BillingEvent.from_payload(gateway.construct_event(payload, stripe_signature))
        logger.info(f"Webhook Stripe reçu: {event.type} ({event.id})")
        await projector.project(event)
    except DomainException as e:
        logger.warning(f"Webhook Stripe rejeté: {e.message}")
        raise to_http_exception(e)
    return WebhookAck(received=True)


@billing_router.post("/checkout", response_model=SessionUrlResponse)
async def create_checkout_session(checkout_service: CheckoutServiceDep, current_user: CurrentUserDep,
                                  data: CheckoutRequest):
    try:
        url = await checkout_service.create_checkout(current_user, data.plan)
    except DomainException as e:
        raise to_http_exception(e)
    return SessionUrlResponse(url=url)


@billing_router.post("/premium-checkout", response_model=SessionUrlResponse)
async def create_premium_checkout_session(checkout_service: CheckoutServiceDep, current_user: CurrentUserDep,
                                          data: CheckoutRequest):
    try:
        url = await checkout_service.create_premium_checkout(current_user, data.plan)
    except DomainException as e:
        raise to_http_exception(e)
    return SessionUrlResponse(url=url)


@billing_router.post("/portal", response_model=SessionUrlResponse)
async def create_billing_portal_session(checkout_service: CheckoutServiceDep, current_user: CurrentUserDep,
                                        data: Optional[PortalRequest] = Body(None)):
    try:
        url = await checkout_service.create_portal(current_user, data.return_url if data else None)
    except DomainException as e:
        raise to_http_exception(e)
    return SessionUrlResponse(url=url)
