import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import func, or_, select

from devisfacture.core.exceptions import DomainException
from devisfacture.core.utils import utcnow
from devisfacture.products.exceptions import (
    DuplicateProductReferenceException,
    ProductNotFoundException,
    StandardProductReadOnlyException,
)
from devisfacture.products.importer import ParsedProductFile, build_create, build_update
from devisfacture.products.models import (
    Product,
    ProductCreate,
    ProductImportMode,
    ProductImportRowResult,
    ProductImportSummary,
    ProductKind,
    ProductRead,
    ProductUpdate,
)
from devisfacture.stock_movements.ledger import StockMovementType, is_low_stock
from devisfacture.stock_movements.models import StockMovementCreate
from devisfacture.stock_movements.service import StockMovementService
from devisfacture.suppliers.models import Supplier
from devisfacture.suppliers.service import SupplierService

logger = logging.getLogger(__name__)


def to_product_read(product: Product) -> ProductRead:
    read = ProductRead.model_validate(product, from_attributes=True)
    read.low_stock = product.stock_tracked and is_low_stock(product.current_stock, product.minimum_stock)
    return read


class ProductService:
    """Catalogue : produits standards (partagés) et produits personnels."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _visible_to(self, user_id: int):
        return or_(Product.user_id == user_id, Product.kind == ProductKind.STANDARD.value)

    async def list_products(
        self,
        user_id: int,
        limit: int,
        offset: int,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> Tuple[List[Product], int]:
        conditions = [self._visible_to(user_id)]
        if not include_inactive:
            conditions.append(Product.active.is_(True))
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(Product.designation.ilike(pattern), Product.reference.ilike(pattern)))

        total = await self.db.scalar(select(func.count()).select_from(Product).where(*conditions))
        result = await self.db.execute(
            select(Product).where(*conditions).order_by(Product.designation).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_product(self, product_id: int, user_id: int) -> Product:
        result = await self.db.execute(
            select(Product).where(Product.id == product_id, self._visible_to(user_id))
        )
        product = result.scalars().first()
        if product is None:
            raise ProductNotFoundException(product_id)
        return product

    async def _get_own_product(self, product_id: int, user_id: int) -> Product:
        product = await self.get_product(product_id, user_id)
        if product.user_id != user_id:
            raise StandardProductReadOnlyException(product_id)
        return product

    async def _ensure_reference_available(self, reference: Optional[str], user_id: int, exclude_id: Optional[int] = None) -> None:
        """Une référence ne peut désigner qu'un seul produit personnel (comparaison insensible à la casse)."""
        if not reference:
            return
        conditions = [Product.user_id == user_id, func.upper(Product.reference) == reference.upper()]
        if exclude_id is not None:
            conditions.append(Product.id != exclude_id)
        existing_id = await self.db.scalar(select(Product.id).where(*conditions).limit(1))
        if existing_id is not None:
            raise DuplicateProductReferenceException(reference)

    async def create_product(self, data: ProductCreate, user_id: int) -> Product:
        await self._ensure_reference_available(data.reference, user_id)
        await SupplierService(self.db).ensure_owned(data.default_supplier_id, user_id)
        product = Product(
            **data.model_dump(exclude={"initial_stock"}),
            user_id=user_id,
            kind=ProductKind.CUSTOM.value,
            current_stock=Decimal("0"),
        )
        self.db.add(product)
        await self.db.flush()

        if product.stock_tracked and data.initial_stock > 0:
            # Le stock initial passe par le journal pour conserver la traçabilité
            await StockMovementService(self.db).record_movement(
                user_id,
                StockMovementCreate(
                    product_id=product.id,
                    movement_type=StockMovementType.IN,
                    quantity=data.initial_stock,
                    notes="Stock initial",
                ),
                commit=False,
            )
        await self.db.commit()
        await self.db.refresh(product)
        logger.info(f"[ProductService] Produit ID {product.id} créé pour user {user_id}.")
        return product

    async def update_product(self, product_id: int, data: ProductUpdate, user_id: int) -> Product:
        product = await self._get_own_product(product_id, user_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("reference"):
            await self._ensure_reference_available(changes["reference"], user_id, exclude_id=product.id)
        if "default_supplier_id" in changes:
            await SupplierService(self.db).ensure_owned(changes["default_supplier_id"], user_id)
        for field, value in changes.items():
            setattr(product, field, value)
        product.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def deactivate_product(self, product_id: int, user_id: int) -> Product:
        """Les produits sont désactivés plutôt que supprimés (historique des devis et du stock)."""
        product = await self._get_own_product(product_id, user_id)
        product.active = False
        product.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def _sync_stock(self, product: Product, target: Decimal, user_id: int) -> None:
        """Aligne le stock courant sur la valeur importée via une écriture du journal."""
        difference = Decimal(target) - Decimal(product.current_stock or 0)
        if difference == 0:
            return
        await StockMovementService(self.db).record_movement(
            user_id,
            StockMovementCreate(
                product_id=product.id,
                movement_type=StockMovementType.IN if difference > 0 else StockMovementType.OUT,
                quantity=abs(difference),
                notes="Import CSV",
            ),
        )

    async def import_products(
        self,
        user_id: int,
        parsed: ParsedProductFile,
        mode: ProductImportMode = ProductImportMode.CREATE,
        dry_run: bool = False,
    ) -> ProductImportSummary:
        """Importe les lignes valides d'un fichier CSV déjà analysé.

        Les références existantes sont rapprochées des produits personnels de
        l'utilisateur. Avec `dry_run`, rien n'est écrit : le résumé indique ce que
        l'import produirait.
        """
        logger.info(f"[ProductService] Import CSV ({mode.value}, dry_run={dry_run}) de {len(parsed.rows)} ligne(s) pour user {user_id}")
        suppliers = await self.db.execute(select(Supplier.id, Supplier.name).where(Supplier.user_id == user_id))
        supplier_ids = {name.strip().lower(): supplier_id for supplier_id, name in suppliers.all()}
        products = await self.db.execute(
            select(Product.id, Product.reference)
            .where(Product.user_id == user_id, Product.reference.is_not(None))
            .order_by(Product.created_at)
        )
        # Le produit le plus récent l'emporte en cas de doublon historique
        existing_ids = {reference.upper(): product_id for product_id, reference in products.all()}
        created_references = set()

        summary = ProductImportSummary(mode=mode, dry_run=dry_run)
        for row in parsed.rows:
            supplier_id = None
            if row.supplier_name:
                supplier_id = supplier_ids.get(row.supplier_name.lower())
                if supplier_id is None:
                    row.warnings.append(f"fournisseur: introuvable ({row.supplier_name})")

            outcome = "error"
            current_id = existing_ids.get(row.reference)
            if row.is_valid:
                if mode == ProductImportMode.UPDATE:
                    outcome = "updated" if current_id is not None else "ignored"
                elif current_id is not None or row.reference in created_references:
                    if mode == ProductImportMode.IGNORE:
                        outcome = "ignored"
                    else:
                        row.errors.append(f"reference: {DuplicateProductReferenceException(row.reference).message}")
                else:
                    outcome = "imported"
                    created_references.add(row.reference)

            if not dry_run and outcome in ("imported", "updated"):
                try:
                    if outcome == "imported":
                        product = await self.create_product(build_create(row, supplier_id), user_id)
                        existing_ids[row.reference] = product.id
                    else:
                        product = await self.update_product(current_id, build_update(row, parsed, supplier_id), user_id)
                        if parsed.has_column("stock"):
                            await self._sync_stock(product, row.stock, user_id)
                except DomainException as e:
                    await self.db.rollback()
                    logger.warning(f"[ProductService] Ligne {row.line_number} non importée : {e.message}")
                    row.errors.append(e.message)
                    outcome = "error"

            if outcome == "imported":
                summary.imported += 1
            elif outcome == "updated":
                summary.updated += 1
            elif outcome == "ignored":
                summary.ignored += 1
            else:
                summary.errors += 1
            summary.rows.append(ProductImportRowResult(
                line_number=row.line_number,
                reference=row.reference,
                outcome=outcome,
                errors=row.errors,
                warnings=row.warnings,
            ))

        logger.info(
            f"[ProductService] Import CSV user {user_id} : {summary.imported} créé(s), {summary.updated} mis à jour, "
            f"{summary.ignored} ignoré(s), {summary.errors} en erreur."
        )
        return summary
