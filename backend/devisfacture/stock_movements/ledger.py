"""
Règles de calcul du journal de stock.

`stock_after` dérive de `stock_before` et du type de mouvement ; les validateurs
optionnels reçoivent le produit, le type, la quantité et le stock résultant, et
lèvent une exception pour refuser le mouvement.
"""
from decimal import Decimal
from enum import Enum
from typing import Any, Callable

from devisfacture.stock_movements.exceptions import InsufficientStockException


class StockMovementType(str, Enum):
    IN = "in"
    OUT = "out"


StockValidator = Callable[[Any, StockMovementType, Decimal, Decimal], None]


def compute_stock_after(stock_before: Decimal, movement_type: StockMovementType, quantity: Decimal) -> Decimal:
    if StockMovementType(movement_type) == StockMovementType.IN:
        return stock_before + quantity
    return stock_before - quantity


def is_low_stock(current_stock: Decimal, minimum_stock: Decimal) -> bool:
    """Alerte de stock bas (un minimum à 0 désactive l'alerte)."""
    minimum = Decimal(minimum_stock or 0)
    return Decimal(current_stock or 0) <= minimum and minimum > 0


def forbid_negative_stock(product: Any, movement_type: StockMovementType, quantity: Decimal, stock_after: Decimal) -> None:
    if stock_after < 0:
        raise InsufficientStockException(product.id, requested=quantity, available=product.current_stock)
