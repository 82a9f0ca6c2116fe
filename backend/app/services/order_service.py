"""
Order Service
Order intake and the administrative views over the order ledger

Intake flow (accept_order):
1. Load shedding gate admits or rejects the request
2. Inventory guard reserves stock        }  one database
3. Order row is appended as pending      }  transaction
4. Fulfillment is scheduled in the background

Stock and the order row commit together, so a failed insert never leaks
reserved stock.
"""
import time
import logging
import math
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import psycopg2

from app.core.database import get_db_connection_dict
from app.core.exceptions import OrderNotFoundError, PersistenceError
from app.core.load_shedding import LoadSheddingGate
from app.core.metrics import db_operation_duration
from app.domain.order import AcceptedOrder, Order, OrderCreate, OrderStats, OrderStatus
from app.repositories.order_repository import OrderRepository
from app.services.fulfillment_service import FulfillmentScheduler
from app.services.inventory_service import InventoryGuard

logger = logging.getLogger(__name__)


class OrderService:
    """Coordinates the gate, the inventory guard, the ledger and the scheduler"""

    def __init__(
        self,
        repository: OrderRepository,
        inventory: InventoryGuard,
        gate: LoadSheddingGate,
        scheduler: FulfillmentScheduler,
        estimated_processing_time: str = "2-3 minutes",
    ):
        self.repository = repository
        self.inventory = inventory
        self.gate = gate
        self.scheduler = scheduler
        self.estimated_processing_time = estimated_processing_time

    def accept_order(self, order: OrderCreate) -> AcceptedOrder:
        """
        Accept a new order

        Returns once the order is durably recorded as pending; fulfillment
        continues after the response.

        Raises:
            OverloadedError: rejected by the load shedding gate
            ProductNotFoundError: product missing or inactive
            OutOfStockError: not enough stock
            PersistenceError: database unavailable or write failed
        """
        self.gate.admit()

        try:
            conn = get_db_connection_dict()
        except psycopg2.Error as e:
            logger.error(f"Order intake: database unavailable: {e}")
            raise PersistenceError()

        started = time.perf_counter()
        success = False
        try:
            reservation = self.inventory.reserve(order.product_id, order.quantity, conn)
            total_amount = (reservation.unit_price * order.quantity).quantize(Decimal("0.01"))
            created = self.repository.create(order, total_amount, conn=conn)
            conn.commit()
            success = True
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Order intake failed for product {order.product_id}: {e}")
            raise PersistenceError()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
            db_operation_duration.labels(
                operation="create_order", table="orders", success=str(success).lower()
            ).observe(time.perf_counter() - started)

        logger.info(
            f"Order {created.id} accepted: product={order.product_id} "
            f"quantity={order.quantity} total={total_amount} remaining_stock={reservation.remaining_stock}"
        )

        self.scheduler.schedule(created.id)

        return AcceptedOrder(
            order_id=created.id,
            status=created.status,
            total_amount=created.total_amount,
            estimated_processing_time=self.estimated_processing_time
        )

    def get_order(self, order_id) -> Order:
        """
        Raises:
            OrderNotFoundError: no order with this ID
        """
        try:
            order = self.repository.find_by_id(order_id)
        except psycopg2.Error as e:
            logger.error(f"Error fetching order {order_id}: {e}")
            raise PersistenceError("Failed to fetch order")

        if not order:
            raise OrderNotFoundError()
        return order

    def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Order], Dict]:
        """
        Page through orders, newest first

        Returns:
            Tuple of (orders, pagination dict with page, limit, total, pages)
        """
        try:
            orders, total = self.repository.find_all(
                status=status.value if status else None,
                limit=limit,
                offset=(page - 1) * limit
            )
        except psycopg2.Error as e:
            logger.error(f"Error listing orders: {e}")
            raise PersistenceError("Failed to fetch orders")

        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if total else 0,
        }
        return orders, pagination

    def set_order_status(self, order_id, status: OrderStatus) -> Order:
        """
        Administrative status override; still bound by the transition table

        Raises:
            OrderNotFoundError: no order with this ID
            InvalidTransitionError: transition not allowed
        """
        try:
            order = self.repository.update_status(order_id, status)
        except psycopg2.Error as e:
            logger.error(f"Error updating order {order_id}: {e}")
            raise PersistenceError("Failed to update order")

        logger.info(f"Order {order_id} status set to {order.status.value}")
        return order

    def get_order_stats(self) -> OrderStats:
        try:
            return self.repository.get_stats()
        except psycopg2.Error as e:
            logger.error(f"Error computing order stats: {e}")
            raise PersistenceError("Failed to fetch order statistics")
