"""
Dépendances FastAPI de contrôle d'accès par abonnement.

`require_active_subscription` protège les fonctionnalités de base (essai ou
abonnement actif), `require_premium` les modules comptabilité et stocks.
"""
import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.database import get_db_session
from devisfacture.subscriptions.entitlements import Entitlement, evaluate_entitlement, premium_denial_reason
from devisfacture.subscriptions.exceptions import PremiumRequiredException, SubscriptionRequiredException
from devisfacture.subscriptions.repositories import SQLAlchemySubscriptionRepository
from devisfacture.subscriptions.service import SubscriptionService

logger = logging.getLogger(__name__)


def get_subscription_service(db: Annotated[AsyncSession, Depends(get_db_session)]) -> SubscriptionService:
    return SubscriptionService(SQLAlchemySubscriptionRepository(db_session=db))


SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]


async def get_current_entitlement(
    current_user: CurrentUserDep,
    service: SubscriptionServiceDep,
) -> Entitlement:
    return await service.get_entitlement(current_user.id)


EntitlementDep = Annotated[Entitlement, Depends(get_current_entitlement)]


async def require_active_subscription(entitlement: EntitlementDep) -> Entitlement:
    if not entitlement.has_access:
        raise SubscriptionRequiredException()
    return entitlement


async def require_premium(
    current_user: CurrentUserDep,
    service: SubscriptionServiceDep,
) -> Entitlement:
    main_plan, premium = await service.load(current_user.id)
    entitlement = evaluate_entitlement(main_plan, premium)
    reason = premium_denial_reason(main_plan, entitlement)
    if reason is not None:
        logger.info(f"Accès premium refusé pour user {current_user.id}: {reason}")
        raise PremiumRequiredException(reason)
    return entitlement


ActiveSubscriptionDep = Annotated[Entitlement, Depends(require_active_subscription)]
PremiumDep = Annotated[Entitlement, Depends(require_premium)]
