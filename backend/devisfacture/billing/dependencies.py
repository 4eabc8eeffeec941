from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.billing.gateway import AbstractBillingGateway, StripeBillingGateway
from devisfacture.billing.projector import BillingEventProjector
from devisfacture.billing.service import CheckoutService
from devisfacture.config import settings
from devisfacture.database import get_db_session
from devisfacture.profiles.service import ProfileService
from devisfacture.subscriptions.repositories import SQLAlchemySubscriptionRepository

DbSessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def get_billing_gateway() -> AbstractBillingGateway:
    return StripeBillingGateway(settings)


BillingGatewayDep = Annotated[AbstractBillingGateway, Depends(get_billing_gateway)]


def get_checkout_service(db: DbSessionDep, gateway: BillingGatewayDep) -> CheckoutService:
    return CheckoutService(
        subscription_repo=SQLAlchemySubscriptionRepository(db_session=db),
        profile_service=ProfileService(db),
        gateway=gateway,
        settings=settings,
    )


CheckoutServiceDep = Annotated[CheckoutService, Depends(get_checkout_service)]


def get_billing_projector(db: DbSessionDep, gateway: BillingGatewayDep) -> BillingEventProjector:
    return BillingEventProjector(db=db, gateway=gateway)


BillingProjectorDep = Annotated[BillingEventProjector, Depends(get_billing_projector)]
