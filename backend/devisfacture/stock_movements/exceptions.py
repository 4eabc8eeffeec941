"""Exceptions du journal de stock."""
from decimal import Decimal

from devisfacture.core.exceptions import InvalidStateError, ValidationError


class InvalidStockMovementException(ValidationError):
    pass


class StockNotTrackedException(InvalidStateError):
    def __init__(self, product_id: int):
        super().__init__("Ce produit n'a pas de suivi de stock.")
        self.product_id = product_id


class InsufficientStockException(InvalidStateError):
    def __init__(self, product_id: int, requested: Decimal, available: Decimal):
        super().__init__(f"Stock insuffisant: {requested} demandé(s), {available} disponible(s).")
        self.product_id = product_id
        self.requested = requested
        self.available = available
