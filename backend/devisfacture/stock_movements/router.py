import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from devisfacture.auth.dependencies import CurrentUserDep
from devisfacture.core.exceptions import DomainException, to_http_exception
from devisfacture.core.pagination import PaginationParams
from devisfacture.core.schemas import PaginatedResponse
from devisfacture.stock_movements.dependencies import StockMovementServiceDep
from devisfacture.stock_movements.models import LowStockProductRead, StockMovementCreate, StockMovementRead
from devisfacture.subscriptions.dependencies import require_premium

logger = logging.getLogger(__name__)

# Module stocks réservé à l'option premium
router = APIRouter(tags=["Stock Movements"], dependencies=[Depends(require_premium)])


@router.post("/", response_model=StockMovementRead, status_code=status.HTTP_201_CREATED)
async def record_stock_movement(
    service: StockMovementServiceDep,
    current_user: CurrentUserDep,
    data: StockMovementCreate,
):
    """Enregistre une entrée ou une sortie de stock."""
    logger.info(f"API record_stock_movement: produit {data.product_id}, user {current_user.id}")
    try:
        return await service.record_movement(current_user.id, data)
    except DomainException as e:
        raise to_http_exception(e)


@router.get("/", response_model=PaginatedResponse[StockMovementRead])
async def list_stock_movements(
    service: StockMovementServiceDep,
    current_user: CurrentUserDep,
    pagination: PaginationParams,
    product_id: Optional[int] = Query(None, ge=1, description="Filtrer par produit"),
):
    limit, offset = pagination
    items, total = await service.list_movements(current_user.id, product_id=product_id, limit=limit, offset=offset)
    return PaginatedResponse[StockMovementRead](items=items, total=total)


@router.get("/alerts", response_model=List[LowStockProductRead])
async def list_low_stock_alerts(service: StockMovementServiceDep, current_user: CurrentUserDep):
    """Produits dont le stock est passé sous le minimum."""
    return await service.list_low_stock(current_user.id)
