import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import or_, select

from devisfacture.subscriptions.models import MainPlan, PremiumOption

logger = logging.getLogger(__name__)


class SQLAlchemySubscriptionRepository:
    """Accès aux deux entités d'abonnement (principal et premium)."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get_main_plan(self, user_id: int, for_update: bool = False) -> Optional[MainPlan]:
        statement = select(MainPlan).where(MainPlan.user_id == user_id)
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        return result.scalars().first()

    async def get_premium_option(self, user_id: int, for_update: bool = False) -> Optional[PremiumOption]:
        statement = select(PremiumOption).where(PremiumOption.user_id == user_id)
        if for_update:
            statement = statement.with_for_update()
        result = await self.db.execute(statement)
        return result.scalars().first()

    async def find_user_id_by_customer(self, stripe_customer_id: str) -> Optional[int]:
        result = await self.db.execute(
            select(MainPlan.user_id).where(MainPlan.stripe_customer_id == stripe_customer_id)
        )
        return result.scalars().first()

    async def find_user_id_by_subscription(self, stripe_subscription_id: str) -> Optional[int]:
        """Retrouve le propriétaire d'un abonnement Stripe (principal ou premium)."""
        result = await self.db.execute(
            select(MainPlan.user_id).where(MainPlan.stripe_subscription_id == stripe_subscription_id)
        )
        user_id = result.scalars().first()
        if user_id is not None:
            return user_id
        result = await self.db.execute(
            select(PremiumOption.user_id).where(PremiumOption.stripe_subscription_id == stripe_subscription_id)
        )
        return result.scalars().first()

    async def add(self, *entities) -> None:
        self.db.add_all(entities)
        await self.db.flush()

    async def get_or_create_premium_option(self, user_id: int) -> PremiumOption:
        option = await self.get_premium_option(user_id, for_update=True)
        if option is None:
            option = PremiumOption(user_id=user_id)
            self.db.add(option)
            await self.db.flush()
        return option

    async def commit(self) -> None:
        await self.db.commit()
