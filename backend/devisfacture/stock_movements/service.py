import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from fastcrud import FastCRUD
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from devisfacture.core.exceptions import UpstreamError
from devisfacture.core.utils import utcnow
from devisfacture.products.exceptions import ProductNotFoundException
from devisfacture.products.models import Product
from devisfacture.stock_movements.exceptions import InvalidStockMovementException, StockNotTrackedException
from devisfacture.stock_movements.ledger import StockMovementType, StockValidator, compute_stock_after
from devisfacture.stock_movements.models import StockMovement, StockMovementCreate
from devisfacture.suppliers.service import SupplierService

logger = logging.getLogger(__name__)


class StockMovementService:
    """Journal des entrées / sorties de stock.

    Chaque mouvement est inséré dans la même transaction que la mise à jour du
    stock courant du produit, dont la ligne est verrouillée pendant l'opération.
    """

    def __init__(self, db: AsyncSession, validators: Optional[Sequence[StockValidator]] = None):
        self.db = db
        self.validators = list(validators or [])
        self.movement_crud = FastCRUD(StockMovement)

    async def _lock_product(self, product_id: int, user_id: int) -> Product:
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id, Product.user_id == user_id)
            .with_for_update()
        )
        product = result.scalars().first()
        if product is None:
            raise ProductNotFoundException(product_id)
        return product

    async def record_movement(
        self,
        user_id: int,
        data: StockMovementCreate,
        extra_validators: Optional[Sequence[StockValidator]] = None,
        commit: bool = True,
    ) -> StockMovement:
        quantity = Decimal(data.quantity)
        if quantity <= 0:
            raise InvalidStockMovementException("La quantité doit être strictement positive.")
        movement_type = StockMovementType(data.movement_type)
        logger.info(f"[StockMovementService] Mouvement {movement_type.value} de {quantity} sur produit {data.product_id} (user {user_id})")

        product = await self._lock_product(data.product_id, user_id)
        if not product.stock_tracked:
            raise StockNotTrackedException(product.id)
        await SupplierService(self.db).ensure_owned(data.supplier_id, user_id)

        stock_before = Decimal(product.current_stock or 0)
        stock_after = compute_stock_after(stock_before, movement_type, quantity)
        for validator in [*self.validators, *(extra_validators or [])]:
            validator(product, movement_type, quantity, stock_after)

        movement = StockMovement(
            user_id=user_id,
            product_id=product.id,
            movement_type=movement_type.value,
            quantity=quantity,
            stock_before=stock_before,
            stock_after=stock_after,
            unit_price=data.unit_price,
            document_reference=data.document_reference,
            supplier_id=data.supplier_id,
            notes=data.notes,
        )
        product.current_stock = stock_after
        product.updated_at = utcnow()
        self.db.add(movement)
        try:
            await self.db.flush()
            if commit:
                await self.db.commit()
                await self.db.refresh(movement)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[StockMovementService] Erreur DB mouvement produit {data.product_id}: {e}", exc_info=True)
            raise UpstreamError("Impossible d'enregistrer le mouvement de stock.")
        if stock_after < 0:
            logger.warning(f"[StockMovementService] Stock négatif ({stock_after}) pour produit {product.id}.")
        return movement

    async def list_movements(
        self,
        user_id: int,
        product_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[dict], int]:
        filters = {"user_id": user_id}
        if product_id is not None:
            filters["product_id"] = product_id
        result = await self.movement_crud.get_multi(
            db=self.db,
            offset=offset,
            limit=limit,
            sort_columns=["created_at", "id"],
            sort_orders=["desc", "desc"],
            **filters,
        )
        return result["data"], result["total_count"]

    async def list_low_stock(self, user_id: int) -> List[Product]:
        result = await self.db.execute(
            select(Product)
            .where(
                Product.user_id == user_id,
                Product.stock_tracked.is_(True),
                Product.active.is_(True),
                Product.minimum_stock > 0,
                Product.current_stock <= Product.minimum_stock,
            )
            .order_by(Product.current_stock.asc())
        )
        return list(result.scalars().all())
