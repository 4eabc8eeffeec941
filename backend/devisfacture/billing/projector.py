"""
Projection des webhooks Stripe sur l'abonnement principal et l'option premium.

Les événements peuvent arriver en double ou dans le désordre. Chaque écriture
pose donc des valeurs issues de l'événement (jamais d'accumulation), datées
par `event.created` ; un événement déjà traité est ignoré, et une entité dont
`last_event_at` est plus récent que l'événement n'est pas modifiée,
sauf pour compléter des bornes de période encore vides du même abonnement.
"""
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.billing.constants import (
    CHECKOUT_COMPLETED,
    INVOICE_PAID,
    STRIPE_STATUS_MAP,
    SUBSCRIPTION_CREATED,
    SUBSCRIPTION_DELETED,
    SUBSCRIPTION_UPDATED,
)
from devisfacture.billing.events import BillingEvent
from devisfacture.billing.exceptions import BillingEntityNotFound
from devisfacture.billing.gateway import AbstractBillingGateway
from devisfacture.billing.repositories import SQLAlchemyProcessedEventRepository
from devisfacture.core.utils import as_utc
from devisfacture.subscriptions.constants import SubscriptionStatus
from devisfacture.subscriptions.models import MainPlan, PremiumOption
from devisfacture.subscriptions.repositories import SQLAlchemySubscriptionRepository

logger = logging.getLogger(__name__)


def _is_stale(entity, at: datetime) -> bool:
    return entity.last_event_at is not None and as_utc(at) < as_utc(entity.last_event_at)


def _fill_unset(entity, **values: Optional[datetime]) -> None:
    """Complète les champs encore vides, sans toucher au filigrane `last_event_at`."""
    for name, value in values.items():
        if getattr(entity, name) is None and value is not None:
            setattr(entity, name, value)


def _stamp(entity, at: datetime) -> None:
    entity.last_event_at = at
    entity.updated_at = at


class BillingEventProjector:

    def __init__(self, db: AsyncSession, gateway: AbstractBillingGateway,
                 subscription_repo: Optional[SQLAlchemySubscriptionRepository] = None,
                 event_repo: Optional[SQLAlchemyProcessedEventRepository] = None):
        self.db = db
        self.gateway = gateway
        self.subscriptions = subscription_repo or SQLAlchemySubscriptionRepository(db_session=db)
        self.events = event_repo or SQLAlchemyProcessedEventRepository(db_session=db)
        self._handlers: Dict[str, Callable[[BillingEvent], Awaitable[None]]] = {
            CHECKOUT_COMPLETED: self._on_checkout_completed,
            SUBSCRIPTION_CREATED: self._on_subscription_created,
            SUBSCRIPTION_UPDATED: self._on_subscription_updated,
            SUBSCRIPTION_DELETED: self._on_subscription_deleted,
            INVOICE_PAID: self._on_invoice_paid,
        }

    async def project(self, event: BillingEvent) -> bool:
        """Applique un événement vérifié. Retourne True si l'abonnement a été modifié."""
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.info(f"[BillingProjector] Événement non géré: {event.type}")
            return False
        if event.id and await self.events.is_processed(event.id):
            logger.info(f"[BillingProjector] Événement {event.id} déjà traité, ignoré.")
            return False

        applied = True
        try:
            await handler(event)
        except BillingEntityNotFound as e:
            # Pas de nouvel essai côté Stripe : l'événement est acquitté
            logger.warning(f"[BillingProjector] {event.type} ({event.id}) ignoré: {e}")
            applied = False

        if event.id:
            self.events.mark_processed(event.id, event.type)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"[BillingProjector] Événement {event.id} traité par une requête concurrente.")
            return False
        return applied

    # --- Résolution des entités ---

    async def _resolve_user_id(self, event: BillingEvent) -> int:
        raw_user_id = event.metadata.get("user_id")
        customer_id = event.customer_id
        if raw_user_id is None and customer_id:
            raw_user_id = await self.subscriptions.find_user_id_by_customer(customer_id)
        if raw_user_id is None and event.subscription_id:
            raw_user_id = await self.subscriptions.find_user_id_by_subscription(event.subscription_id)
        if raw_user_id is None and customer_id:
            metadata = await self.gateway.get_customer_metadata(customer_id)
            if metadata:
                raw_user_id = metadata.get("user_id")
        try:
            return int(raw_user_id)
        except (TypeError, ValueError):
            raise BillingEntityNotFound(f"aucun utilisateur pour le client {customer_id}")

    async def _main_plan(self, user_id: int) -> MainPlan:
        main_plan = await self.subscriptions.get_main_plan(user_id, for_update=True)
        if main_plan is None:
            raise BillingEntityNotFound(f"aucun abonnement pour l'utilisateur {user_id}")
        return main_plan

    async def _premium_option(self, user_id: int) -> PremiumOption:
        await self._main_plan(user_id)
        return await self.subscriptions.get_or_create_premium_option(user_id)

    # --- Projections ---

    async def _on_checkout_completed(self, event: BillingEvent) -> None:
        user_id = await self._resolve_user_id(event)
        at = event.created
        if event.is_premium:
            premium = await self._premium_option(user_id)
            if _is_stale(premium, at):
                return
            premium.active = True
            premium.stripe_subscription_id = event.subscription_id
            premium.plan = event.metadata.get("premium_plan") or premium.plan
            premium.period_start = at
            _stamp(premium, at)
            logger.info(f"[BillingProjector] Option premium activée pour user {user_id}.")
            return

        main_plan = await self._main_plan(user_id)
        if _is_stale(main_plan, at):
            return
        main_plan.stripe_customer_id = event.customer_id or main_plan.stripe_customer_id
        main_plan.stripe_subscription_id = event.subscription_id
        main_plan.plan = event.metadata.get("plan") or main_plan.plan
        main_plan.status = SubscriptionStatus.ACTIVE.value
        main_plan.current_period_start = at
        _stamp(main_plan, at)
        logger.info(f"[BillingProjector] Abonnement activé pour user {user_id}.")

    async def _on_subscription_created(self, event: BillingEvent) -> None:
        user_id = await self._resolve_user_id(event)
        at = event.created
        if event.is_premium:
            premium = await self._premium_option(user_id)
            if _is_stale(premium, at):
                # Un événement plus ancien apporte encore les bornes de période absentes
                if premium.stripe_subscription_id in (None, event.subscription_id):
                    _fill_unset(premium, period_start=event.period_bound("current_period_start"),
                                period_end=event.period_bound("current_period_end"))
                return
            premium.stripe_subscription_id = event.subscription_id
            premium.active = True
            premium.period_start = event.period_bound("current_period_start")
            premium.period_end = event.period_bound("current_period_end")
            _stamp(premium, at)
            logger.info(f"[BillingProjector] Abonnement premium créé pour user {user_id}.")
            return

        main_plan = await self._main_plan(user_id)
        if _is_stale(main_plan, at):
            if main_plan.stripe_subscription_id in (None, event.subscription_id):
                _fill_unset(main_plan, current_period_start=event.period_bound("current_period_start"),
                            current_period_end=event.period_bound("current_period_end"))
            return
        main_plan.stripe_subscription_id = event.subscription_id
        main_plan.stripe_customer_id = main_plan.stripe_customer_id or event.customer_id
        main_plan.status = SubscriptionStatus.ACTIVE.value
        main_plan.current_period_start = event.period_bound("current_period_start")
        main_plan.current_period_end = event.period_bound("current_period_end")
        _stamp(main_plan, at)
        logger.info(f"[BillingProjector] Abonnement créé pour user {user_id}.")

    async def _on_invoice_paid(self, event: BillingEvent) -> None:
        user_id = await self._resolve_user_id(event)
        main_plan = await self._main_plan(user_id)
        if _is_stale(main_plan, event.created):
            return
        main_plan.status = SubscriptionStatus.ACTIVE.value
        _stamp(main_plan, event.created)
        logger.info(f"[BillingProjector] Facture Stripe payée pour user {user_id}.")

    async def _on_subscription_deleted(self, event: BillingEvent) -> None:
        user_id = await self._resolve_user_id(event)
        at = event.created
        subscription_id = event.subscription_id
        main_plan = await self._main_plan(user_id)
        premium = await self.subscriptions.get_premium_option(user_id, for_update=True)

        if premium is not None and subscription_id and premium.stripe_subscription_id == subscription_id:
            if _is_stale(premium, at):
                return
            premium.active = False
            premium.stripe_subscription_id = None
            premium.period_end = at
            _stamp(premium, at)
            logger.info(f"[BillingProjector] Option premium résiliée pour user {user_id}.")
            return

        if not subscription_id or main_plan.stripe_subscription_id != subscription_id:
            raise BillingEntityNotFound(f"abonnement {subscription_id} inconnu pour l'utilisateur {user_id}")
        if _is_stale(main_plan, at):
            return
        main_plan.status = SubscriptionStatus.CANCELED.value
        main_plan.current_period_end = at
        _stamp(main_plan, at)
        # Sans abonnement principal, l'option premium tombe aussi
        if premium is not None and not _is_stale(premium, at):
            premium.active = False
            _stamp(premium, at)
        logger.info(f"[BillingProjector] Abonnement résilié pour user {user_id}.")

    async def _on_subscription_updated(self, event: BillingEvent) -> None:
        user_id = await self._resolve_user_id(event)
        at = event.created
        subscription_id = event.subscription_id
        stripe_status = event.data.get("status")
        main_plan = await self._main_plan(user_id)
        premium = await self.subscriptions.get_premium_option(user_id, for_update=True)

        if premium is not None and subscription_id and premium.stripe_subscription_id == subscription_id:
            if _is_stale(premium, at):
                return
            premium.active = stripe_status == "active"
            premium.period_end = event.period_bound("current_period_end")
            _stamp(premium, at)
            logger.info(f"[BillingProjector] Option premium mise à jour pour user {user_id} ({stripe_status}).")
            return

        if not subscription_id or main_plan.stripe_subscription_id != subscription_id:
            raise BillingEntityNotFound(f"abonnement {subscription_id} inconnu pour l'utilisateur {user_id}")
        if _is_stale(main_plan, at):
            return
        main_plan.status = STRIPE_STATUS_MAP.get(stripe_status, SubscriptionStatus.ACTIVE).value
        main_plan.current_period_end = event.period_bound("current_period_end")
        _stamp(main_plan, at)
        logger.info(f"[BillingProjector] Abonnement mis à jour pour user {user_id}: {main_plan.status}.")
