"""
Passerelle vers le fournisseur de paiement.

Le SDK Stripe étant synchrone, chaque appel est exécuté dans le pool de
threads de Starlette pour ne pas bloquer la boucle d'événements.
"""
import abc
import json
import logging
from typing import Any, Dict, Optional

import stripe
from fastapi.concurrency import run_in_threadpool

from devisfacture.billing.exceptions import (
    BillingNotConfiguredException,
    BillingProviderException,
    WebhookSignatureException,
)
from devisfacture.config import Settings

logger = logging.getLogger(__name__)


class AbstractBillingGateway(abc.ABC):
    """Interface du fournisseur de paiement (sessions, clients, webhooks)."""

    @abc.abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Vérifie la signature du webhook et retourne l'événement décodé."""
        raise NotImplementedError

    @abc.abstractmethod
    async def create_customer(self, email: Optional[str], metadata: Dict[str, str]) -> str:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_customer_metadata(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """Métadonnées du client, None si le client est supprimé."""
        raise NotImplementedError

    @abc.abstractmethod
    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        subscription_metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Crée une session de paiement par abonnement et retourne son URL."""
        raise NotImplementedError

    @abc.abstractmethod
    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        raise NotImplementedError


class StripeBillingGateway(AbstractBillingGateway):

    def __init__(self, settings: Settings):
        self.settings = settings

    def _configure(self) -> None:
        if not self.settings.STRIPE_SECRET_KEY:
            raise BillingNotConfiguredException("STRIPE_SECRET_KEY")
        stripe.api_key = self.settings.STRIPE_SECRET_KEY
        stripe.api_version = self.settings.STRIPE_API_VERSION

    async def _call(self, operation: str, func, **kwargs) -> Any:
        self._configure()
        try:
            return await run_in_threadpool(func, **kwargs)
        except stripe.StripeError as e:
            logger.error(f"[StripeGateway] Échec {operation}: {e}", exc_info=True)
            raise BillingProviderException()

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        secret = self.settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            raise WebhookSignatureException("Secret du webhook non configuré.")
        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except ValueError:
            raise WebhookSignatureException("Corps du webhook invalide.")
        except stripe.SignatureVerificationError:
            raise WebhookSignatureException()
        return json.loads(payload)

    async def create_customer(self, email: Optional[str], metadata: Dict[str, str]) -> str:
        customer = await self._call("création client", stripe.Customer.create, email=email, metadata=metadata)
        logger.info(f"[StripeGateway] Client Stripe {customer.id} créé (user {metadata.get('user_id')}).")
        return customer.id

    async def get_customer_metadata(self, customer_id: str) -> Optional[Dict[str, Any]]:
        customer = await self._call("lecture client", stripe.Customer.retrieve, id=customer_id)
        if customer.get("deleted"):
            return None
        return dict(customer.get("metadata") or {})

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        subscription_metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        params: Dict[str, Any] = {
            "customer": customer_id,
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "mode": "subscription",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if subscription_metadata:
            params["subscription_data"] = {"metadata": subscription_metadata}
        session = await self._call("session de paiement", stripe.checkout.Session.create, **params)
        return session.url

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        session = await self._call(
            "portail client", stripe.billing_portal.Session.create, customer=customer_id, return_url=return_url
        )
        return session.url
