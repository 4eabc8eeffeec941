from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import utcnow
from devisfacture.stock_movements.ledger import StockMovementType


class StockMovementBase(SQLModel):
    product_id: int = Field(foreign_key="products.id", index=True)
    movement_type: StockMovementType
    quantity: Decimal = Field(..., gt=0, max_digits=14, decimal_places=4)
    unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=14, decimal_places=4)
    document_reference: Optional[str] = Field(default=None, max_length=100)
    supplier_id: Optional[int] = Field(default=None, foreign_key="suppliers.id")
    notes: Optional[str] = None


class StockMovement(SQLModel, table=True):
    """Écriture du journal de stock (jamais modifiée après insertion)."""
    __tablename__ = "stock_movements"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    movement_type: str = Field(max_length=10)
    quantity: Decimal = Field(max_digits=14, decimal_places=4)
    stock_before: Decimal = Field(max_digits=14, decimal_places=4)
    stock_after: Decimal = Field(max_digits=14, decimal_places=4)
    unit_price: Optional[Decimal] = Field(default=None, max_digits=14, decimal_places=4)
    document_reference: Optional[str] = Field(default=None, max_length=100)
    supplier_id: Optional[int] = Field(default=None, foreign_key="suppliers.id")
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False, index=True)


class StockMovementCreate(StockMovementBase):
    pass


class StockMovementRead(SQLModel):
    id: int
    product_id: int
    movement_type: str
    quantity: Decimal
    stock_before: Decimal
    stock_after: Decimal
    unit_price: Optional[Decimal] = None
    document_reference: Optional[str] = None
    supplier_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime


class LowStockProductRead(SQLModel):
    id: int
    designation: str
    reference: Optional[str] = None
    unit: Optional[str] = None
    current_stock: Decimal
    minimum_stock: Decimal
