import logging
from typing import List, Optional, Tuple

from fastcrud import FastCRUD
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from devisfacture.suppliers.exceptions import SupplierInUseException, SupplierNotFoundException
from devisfacture.suppliers.models import Supplier, SupplierCreate, SupplierUpdate

logger = logging.getLogger(__name__)


class SupplierService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.crud = FastCRUD(Supplier)

    async def list_suppliers(self, user_id: int, limit: int, offset: int) -> Tuple[List[dict], int]:
        result = await self.crud.get_multi(
            db=self.db, offset=offset, limit=limit,
            sort_columns=["name"], sort_orders=["asc"], user_id=user_id,
        )
        return result["data"], result["total_count"]

    async def get_supplier(self, supplier_id: int, user_id: int) -> Supplier:
        result = await self.db.execute(
            select(Supplier).where(Supplier.id == supplier_id, Supplier.user_id == user_id)
        )
        supplier = result.scalars().first()
        if supplier is None:
            raise SupplierNotFoundException(supplier_id)
        return supplier

    async def ensure_owned(self, supplier_id: Optional[int], user_id: int) -> None:
        """Vérifie qu'un lien fournisseur optionnel pointe vers un fournisseur de l'utilisateur."""
        if supplier_id is None:
            return
        if not await self.crud.exists(self.db, id=supplier_id, user_id=user_id):
            raise SupplierNotFoundException(supplier_id)

    async def create_supplier(self, data: SupplierCreate, user_id: int) -> Supplier:
        supplier = Supplier(**data.model_dump(), user_id=user_id)
        self.db.add(supplier)
        await self.db.commit()
        await self.db.refresh(supplier)
        logger.info(f"[SupplierService] Fournisseur ID {supplier.id} créé pour user {user_id}.")
        return supplier

    async def update_supplier(self, supplier_id: int, data: SupplierUpdate, user_id: int) -> Supplier:
        supplier = await self.get_supplier(supplier_id, user_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(supplier, field, value)
        await self.db.commit()
        await self.db.refresh(supplier)
        return supplier

    async def delete_supplier(self, supplier_id: int, user_id: int) -> None:
        supplier = await self.get_supplier(supplier_id, user_id)
        try:
            await self.db.delete(supplier)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(f"[SupplierService] Fournisseur ID {supplier_id} encore référencé, suppression refusée.")
            raise SupplierInUseException(supplier_id)
        logger.info(f"[SupplierService] Fournisseur ID {supplier_id} supprimé.")
