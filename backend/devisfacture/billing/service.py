import logging
from typing import Optional

from devisfacture.billing.constants import (
    CUSTOMER_NOT_FOUND_MSG,
    INVALID_PLAN_MSG,
    NO_ACTIVE_PREMIUM_MSG,
    PORTAL_MAIN_INACTIVE_MSG,
    PORTAL_TRIAL_MSG,
    PREMIUM_MAIN_INACTIVE_CHECKOUT_MSG,
    PREMIUM_METADATA_FLAG,
    PREMIUM_TRIAL_CHECKOUT_MSG,
    SUBSCRIPTION_NOT_FOUND_MSG,
)
from devisfacture.billing.exceptions import BillingNotConfiguredException, BillingStateException, InvalidPlanException
from devisfacture.billing.gateway import AbstractBillingGateway
from devisfacture.config import Settings
from devisfacture.profiles.service import ProfileService
from devisfacture.subscriptions.constants import PlanType, SubscriptionStatus
from devisfacture.subscriptions.models import MainPlan
from devisfacture.subscriptions.repositories import SQLAlchemySubscriptionRepository
from devisfacture.users.models import User

logger = logging.getLogger(__name__)


def _parse_plan(plan: Optional[str]) -> PlanType:
    try:
        return PlanType(plan)
    except ValueError:
        raise InvalidPlanException(INVALID_PLAN_MSG)


class CheckoutService:
    """Sessions Stripe sortantes : abonnement principal, option premium, portail client."""

    def __init__(self, subscription_repo: SQLAlchemySubscriptionRepository, profile_service: ProfileService,
                 gateway: AbstractBillingGateway, settings: Settings):
        self.subscriptions = subscription_repo
        self.profiles = profile_service
        self.gateway = gateway
        self.settings = settings

    def _page_url(self, query: str = "") -> str:
        return f"{self.settings.SITE_URL.rstrip('/')}/abonnement{query}"

    async def _require_main_plan(self, user_id: int, for_update: bool = False) -> MainPlan:
        main_plan = await self.subscriptions.get_main_plan(user_id, for_update=for_update)
        if main_plan is None:
            raise BillingStateException(SUBSCRIPTION_NOT_FOUND_MSG)
        return main_plan

    async def _ensure_customer(self, user: User, main_plan: MainPlan) -> str:
        if main_plan.stripe_customer_id:
            return main_plan.stripe_customer_id
        profile = await self.profiles.get_profile(user.id)
        customer_id = await self.gateway.create_customer(
            email=(profile.email_contact if profile and profile.email_contact else user.email),
            metadata={
                "user_id": str(user.id),
                "raison_sociale": (profile.raison_sociale if profile else None) or "",
            },
        )
        main_plan.stripe_customer_id = customer_id
        await self.subscriptions.commit()
        return customer_id

    async def create_checkout(self, user: User, plan: Optional[str]) -> str:
        plan_type = _parse_plan(plan)
        price_id = (
            self.settings.STRIPE_PRICE_MONTHLY if plan_type == PlanType.MONTHLY else self.settings.STRIPE_PRICE_ANNUAL
        )
        if not price_id:
            raise BillingNotConfiguredException(f"STRIPE_PRICE_{'MONTHLY' if plan_type == PlanType.MONTHLY else 'ANNUAL'}")

        main_plan = await self._require_main_plan(user.id, for_update=True)
        customer_id = await self._ensure_customer(user, main_plan)
        url = await self.gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=self._page_url("?success=true"),
            cancel_url=self._page_url("?canceled=true"),
            metadata={"user_id": str(user.id), "plan": plan_type.value},
        )
        logger.info(f"[CheckoutService] Session d'abonnement {plan_type.value} créée pour user {user.id}.")
        return url

    async def create_premium_checkout(self, user: User, plan: Optional[str]) -> str:
        plan_type = _parse_plan(plan)
        main_plan = await self._require_main_plan(user.id)
        if main_plan.status == SubscriptionStatus.TRIAL:
            raise BillingStateException(PREMIUM_TRIAL_CHECKOUT_MSG)
        if main_plan.status != SubscriptionStatus.ACTIVE:
            raise BillingStateException(PREMIUM_MAIN_INACTIVE_CHECKOUT_MSG)
        if not main_plan.stripe_customer_id:
            raise BillingStateException(CUSTOMER_NOT_FOUND_MSG)

        price_id = (
            self.settings.STRIPE_PREMIUM_PRICE_MONTHLY
            if plan_type == PlanType.MONTHLY
            else self.settings.STRIPE_PREMIUM_PRICE_ANNUAL
        )
        if not price_id:
            raise BillingNotConfiguredException("STRIPE_PREMIUM_PRICE_MONTHLY / STRIPE_PREMIUM_PRICE_ANNUAL")

        metadata = {"user_id": str(user.id), PREMIUM_METADATA_FLAG: "true", "premium_plan": plan_type.value}
        url = await self.gateway.create_checkout_session(
            customer_id=main_plan.stripe_customer_id,
            price_id=price_id,
            success_url=self._page_url("?premium_success=true"),
            cancel_url=self._page_url("?premium_canceled=true"),
            metadata=metadata,
            subscription_metadata=metadata,
        )
        logger.info(f"[CheckoutService] Session premium {plan_type.value} créée pour user {user.id}.")
        return url

    async def create_portal(self, user: User, return_url: Optional[str] = None) -> str:
        main_plan = await self._require_main_plan(user.id)
        if main_plan.status == SubscriptionStatus.TRIAL:
            raise BillingStateException(PORTAL_TRIAL_MSG)
        if main_plan.status != SubscriptionStatus.ACTIVE:
            raise BillingStateException(PORTAL_MAIN_INACTIVE_MSG)
        premium = await self.subscriptions.get_premium_option(user.id)
        if premium is None or not premium.active or not premium.stripe_subscription_id:
            raise BillingStateException(NO_ACTIVE_PREMIUM_MSG)
        if not main_plan.stripe_customer_id:
            raise BillingStateException(CUSTOMER_NOT_FOUND_MSG)

        return await self.gateway.create_portal_session(
            customer_id=main_plan.stripe_customer_id,
            return_url=return_url or self._page_url(),
        )
