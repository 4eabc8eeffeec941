from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from devisfacture.billing.models import ProcessedBillingEvent


class SQLAlchemyProcessedEventRepository:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def is_processed(self, event_id: str) -> bool:
        result = await self.db.execute(
            select(ProcessedBillingEvent.id).where(ProcessedBillingEvent.event_id == event_id)
        )
        return result.scalars().first() is not None

    def mark_processed(self, event_id: str, event_type: str) -> None:
        self.db.add(ProcessedBillingEvent(event_id=event_id, event_type=event_type))
