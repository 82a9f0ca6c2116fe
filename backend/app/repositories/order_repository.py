"""
Order Repository - Data Access Layer for Orders (the order ledger)

Handles all database queries for orders and returns Order domain models.
update_status is the only path that mutates an order's status; it locks the
row and checks the transition table before writing.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from psycopg2.extras import Json

from app.core.database import get_db_connection_dict
from app.core.exceptions import OrderNotFoundError
from app.domain.order import (
    Order,
    OrderCreate,
    OrderStats,
    OrderStatus,
    OrderStatusSummary,
    UNFINISHED_STATUSES,
    validate_transition,
)


ORDER_COLUMNS = """
    o.id, o.name, o.email, o.product_id, o.quantity, o.address,
    o.phone_number, o.notes, o.total_amount, o.status,
    o.created_at, o.updated_at, o.processed_at, o.completed_at
"""

# Advisory lock key of the startup recovery sweep
RECOVERY_LOCK_KEY = 728401


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Methods taking `conn` run inside the caller's transaction and only commit
    when they opened the connection themselves.
    """

    @staticmethod
    def _map_row_to_order(row: dict) -> Order:
        """Helper method to map database row to Order domain model."""
        return Order(
            id=row['id'],
            name=row['name'],
            email=row['email'],
            product_id=row['product_id'],
            quantity=row['quantity'],
            address=row.get('address'),
            phone_number=row.get('phone_number'),
            notes=row.get('notes'),
            total_amount=row['total_amount'],
            status=row['status'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
            processed_at=row.get('processed_at'),
            completed_at=row.get('completed_at'),
            product_name=row.get('product_name')
        )

    def create(self, order: OrderCreate, total_amount: Decimal, conn=None) -> Order:
        """
        Append a new order with status pending

        Args:
            order: Validated intake data
            total_amount: unit price x quantity, computed once by the caller
            conn: Transaction to join (the stock reservation's)

        Returns:
            The created Order
        """
        should_close = conn is None
        if conn is None:
            conn = get_db_connection_dict()

        cursor = conn.cursor()

        try:
            now = datetime.now(timezone.utc)
            cursor.execute(f"""
                INSERT INTO orders AS o (
                    id, name, email, product_id, quantity, address,
                    phone_number, notes, total_amount, status,
                    created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
                )
                RETURNING {ORDER_COLUMNS}
            """, (
                str(uuid.uuid4()),
                order.name,
                order.email,
                order.product_id,
                order.quantity,
                Json(order.address.model_dump()) if order.address else None,
                order.phone_number,
                order.notes,
                total_amount,
                OrderStatus.PENDING.value,
                now,
                now
            ))

            created = self._map_row_to_order(cursor.fetchone())
            if should_close:
                conn.commit()
            return created

        except Exception:
            if should_close:
                conn.rollback()
            raise
        finally:
            cursor.close()
            if should_close:
                conn.close()

    def find_by_id(self, order_id) -> Optional[Order]:
        """
        Find order by ID with the product name

        Args:
            order_id: Order UUID

        Returns:
            Order or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}, p.name as product_name
                FROM orders o
                LEFT JOIN products p ON o.product_id = p.id
                WHERE o.id = %s
            """, (str(order_id),))

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row_to_order(row)

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders, newest first

        The count and the page are read in one transaction so the total
        matches the filter used for the page.

        Returns:
            Tuple of (list of orders, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if status:
                conditions.append("o.status = %s")
                params.append(OrderStatus(status).value)

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM orders o
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}, p.name as product_name
                FROM orders o
                LEFT JOIN products p ON o.product_id = p.id
                WHERE {where_clause}
                ORDER BY o.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            rows = cursor.fetchall()
            conn.commit()

            return [self._map_row_to_order(row) for row in rows], total

        finally:
            cursor.close()
            conn.close()

    def find_unfinished(self) -> List[Order]:
        """Orders still pending or processing, oldest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE o.status = ANY(%s)
                ORDER BY o.created_at ASC
            """, ([status.value for status in UNFINISHED_STATUSES],))

            return [self._map_row_to_order(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def acquire_recovery_lock(self):
        """
        Try to become the process that runs the recovery sweep

        Takes a session-level advisory lock; the returned connection holds it
        until closed. Workers started while the holder is alive skip the
        sweep, so an unfinished order is driven by one process only.

        Returns:
            Connection holding the lock, or None when another process has it
        """
        conn = get_db_connection_dict()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT pg_try_advisory_lock(%s) AS acquired", (RECOVERY_LOCK_KEY,))
            acquired = cursor.fetchone()['acquired']
            cursor.close()
            conn.commit()
        except Exception:
            conn.close()
            raise

        if not acquired:
            conn.close()
            return None
        return conn

    def update_status(self, order_id, new_status: OrderStatus, conn=None) -> Order:
        """
        Move an order to a new status

        Locks the row, checks the transition table and stamps timestamps:
        processed_at on entering processing, completed_at on entering
        completed, updated_at on every change (never moved backwards).

        Raises:
            OrderNotFoundError: no order with this ID
            InvalidTransitionError: transition not allowed from current status
        """
        new_status = OrderStatus(new_status)
        should_close = conn is None
        if conn is None:
            conn = get_db_connection_dict()

        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, status FROM orders WHERE id = %s FOR UPDATE
            """, (str(order_id),))
            current = cursor.fetchone()
            if not current:
                raise OrderNotFoundError(f"Order {order_id} not found")

            validate_transition(order_id, OrderStatus(current['status']), new_status)

            now = datetime.now(timezone.utc)
            cursor.execute(f"""
                UPDATE orders AS o
                SET status = %s,
                    updated_at = GREATEST(o.updated_at, %s),
                    processed_at = CASE WHEN %s THEN %s ELSE o.processed_at END,
                    completed_at = CASE WHEN %s THEN %s ELSE o.completed_at END
                WHERE o.id = %s
                RETURNING {ORDER_COLUMNS}
            """, (
                new_status.value,
                now,
                new_status == OrderStatus.PROCESSING, now,
                new_status == OrderStatus.COMPLETED, now,
                str(order_id)
            ))

            updated = self._map_row_to_order(cursor.fetchone())
            if should_close:
                conn.commit()
            return updated

        except Exception:
            if should_close:
                conn.rollback()
            raise
        finally:
            cursor.close()
            if should_close:
                conn.close()

    def get_stats(self) -> OrderStats:
        """
        Get order statistics

        Returns:
            OrderStats with count and revenue per status, total orders and
            orders created in the last 24 hours
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT status, COUNT(*) as count, COALESCE(SUM(total_amount), 0) as total_amount
                FROM orders
                GROUP BY status
                ORDER BY count DESC
            """)
            by_status = [
                OrderStatusSummary(
                    status=row['status'],
                    count=row['count'],
                    total_amount=row['total_amount']
                )
                for row in cursor.fetchall()
            ]

            cursor.execute("""
                SELECT
                    COUNT(*) as total,
                    COUNT(*) FILTER (WHERE created_at >= NOW() - INTERVAL '24 hours') as last_24h
                FROM orders
            """)
            totals = cursor.fetchone()

            return OrderStats(
                by_status=by_status,
                total_orders=totals['total'],
                last_24h=totals['last_24h']
            )

        finally:
            cursor.close()
            conn.close()
