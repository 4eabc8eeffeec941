import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from devisfacture.config import settings
from devisfacture.core.utils import utcnow
from devisfacture.subscriptions.constants import SubscriptionStatus
from devisfacture.subscriptions.entitlements import Entitlement, evaluate_entitlement
from devisfacture.subscriptions.models import (
    EntitlementRead,
    MainPlan,
    MainPlanRead,
    PremiumOption,
    PremiumOptionRead,
    SubscriptionOverview,
)
from devisfacture.subscriptions.repositories import SQLAlchemySubscriptionRepository

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Service de lecture des abonnements et de démarrage de l'essai."""

    def __init__(self, repository: SQLAlchemySubscriptionRepository):
        self.repository = repository

    async def start_trial(self, user_id: int, now: Optional[datetime] = None) -> MainPlan:
        """Crée l'abonnement en essai (et l'option premium inactive) à l'inscription.

        Ne commite pas : l'appelant inclut cette création dans sa propre transaction.
        """
        now = now or utcnow()
        main_plan = MainPlan(
            user_id=user_id,
            status=SubscriptionStatus.TRIAL.value,
            trial_start=now,
            trial_end=now + timedelta(days=settings.TRIAL_PERIOD_DAYS),
        )
        premium = PremiumOption(user_id=user_id, active=False)
        await self.repository.add(main_plan, premium)
        logger.info(f"[SubscriptionService] Essai de {settings.TRIAL_PERIOD_DAYS} jours démarré pour user {user_id}.")
        return main_plan

    async def load(self, user_id: int) -> Tuple[Optional[MainPlan], Optional[PremiumOption]]:
        main_plan = await self.repository.get_main_plan(user_id)
        premium = await self.repository.get_premium_option(user_id)
        return main_plan, premium

    async def get_entitlement(self, user_id: int, now: Optional[datetime] = None) -> Entitlement:
        main_plan, premium = await self.load(user_id)
        return evaluate_entitlement(main_plan, premium, now)

    async def get_overview(self, user_id: int) -> SubscriptionOverview:
        main_plan, premium = await self.load(user_id)
        entitlement = evaluate_entitlement(main_plan, premium)
        return SubscriptionOverview(
            main_plan=MainPlanRead.model_validate(main_plan, from_attributes=True) if main_plan else None,
            premium_option=PremiumOptionRead.model_validate(premium, from_attributes=True) if premium else None,
            entitlement=EntitlementRead(
                main_subscription_active=entitlement.main_subscription_active,
                premium_active=entitlement.premium_active,
                is_premium=entitlement.is_premium,
                trial_active=entitlement.trial_active,
                has_access=entitlement.has_access,
            ),
        )
