"""
Inventory Guard

Reserves stock for an order inside the order's own transaction. The reservation
is a single conditional UPDATE, so concurrent orders for the same product are
serialized by the row lock and stock never goes negative.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from app.core.exceptions import OutOfStockError, ProductNotFoundError
from app.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    """Result of a successful stock reservation"""
    product_id: int
    unit_price: Decimal
    remaining_stock: int


class InventoryGuard:
    """Checks availability and decrements stock atomically"""

    def __init__(self, repository: ProductRepository = None):
        self.repository = repository or ProductRepository()

    def reserve(self, product_id: int, quantity: int, conn) -> Reservation:
        """
        Take `quantity` units of a product within the caller's transaction

        Nothing is committed here; the caller commits the reservation together
        with the order row or rolls both back.

        Raises:
            ProductNotFoundError: product missing or inactive
            OutOfStockError: fewer than `quantity` units left
        """
        row = self.repository.decrement_stock(product_id, quantity, conn)
        if row:
            return Reservation(
                product_id=row['id'],
                unit_price=Decimal(row['price']),
                remaining_stock=row['stock']
            )

        # Nothing updated: tell a missing product apart from a short one
        snapshot = self.repository.find_stock(product_id, conn)
        if not snapshot or not snapshot['is_active']:
            raise ProductNotFoundError()

        logger.info(
            f"Out of stock: product={product_id} requested={quantity} available={snapshot['stock']}"
        )
        raise OutOfStockError()
