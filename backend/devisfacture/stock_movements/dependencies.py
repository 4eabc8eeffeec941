import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.database import get_db_session
from devisfacture.stock_movements.config import StockSettings, stock_settings
from devisfacture.stock_movements.ledger import forbid_negative_stock
from devisfacture.stock_movements.service import StockMovementService

logger = logging.getLogger(__name__)


def get_stock_settings() -> StockSettings:
    return stock_settings


def get_stock_movement_service(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[StockSettings, Depends(get_stock_settings)],
) -> StockMovementService:
    validators = [forbid_negative_stock] if settings.FORBID_NEGATIVE else []
    return StockMovementService(db=db, validators=validators)


StockMovementServiceDep = Annotated[StockMovementService, Depends(get_stock_movement_service)]
