"""
Unit tests for OrderRepository

Mocked connections; no database required.
"""
import pytest
from unittest.mock import patch, MagicMock
from decimal import Decimal

from app.core.exceptions import InvalidTransitionError, OrderNotFoundError
from app.domain.order import Order, OrderCreate, OrderStatus
from app.repositories.order_repository import RECOVERY_LOCK_KEY, OrderRepository


def _mock_connection(mock_get_conn):
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_get_conn.return_value = mock_conn
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


class TestOrderRepositoryCreate:

    def test_create_joins_caller_transaction(self, order_row, sample_order_data):
        """With a conn, create neither commits nor closes"""
        conn = MagicMock()
        cursor = MagicMock()
        conn.cursor.return_value = cursor
        cursor.fetchone.return_value = order_row

        order = OrderRepository().create(OrderCreate(**sample_order_data), Decimal('30.00'), conn=conn)

        assert isinstance(order, Order)
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal('30.00')

        params = cursor.execute.call_args[0][1]
        assert params[2] == 'jane@example.com'  # email lowercased at intake
        assert params[8] == Decimal('30.00')
        assert params[9] == 'pending'

        conn.commit.assert_not_called()
        conn.close.assert_not_called()

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_create_without_conn_commits(self, mock_get_conn, order_row, sample_order_data):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = order_row

        OrderRepository().create(OrderCreate(**sample_order_data), Decimal('30.00'))

        mock_conn.commit.assert_called_once()
        mock_conn.close.assert_called_once()


class TestOrderRepositoryQueries:

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_includes_product_name(self, mock_get_conn, order_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = order_row

        order = OrderRepository().find_by_id(order_row['id'])

        assert order.product_name == 'EcoBottle Classic 500ml'
        assert order.address.city == 'Springfield'
        assert "LEFT JOIN products" in mock_cursor.execute.call_args[0][0]
        mock_conn.close.assert_called_once()

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_find_by_id_missing_returns_none(self, mock_get_conn):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert OrderRepository().find_by_id('00000000-0000-0000-0000-000000000000') is None

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_find_all_filters_by_status(self, mock_get_conn, order_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {'total': 41}
        mock_cursor.fetchall.return_value = [order_row]

        orders, total = OrderRepository().find_all(status='pending', limit=20, offset=20)

        assert total == 41
        assert len(orders) == 1
        page_query, page_params = mock_cursor.execute.call_args[0]
        assert "ORDER BY o.created_at DESC" in page_query
        assert page_params == ['pending', 20, 20]

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_find_unfinished_queries_pending_and_processing(self, mock_get_conn, order_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [order_row]

        orders = OrderRepository().find_unfinished()

        statuses = mock_cursor.execute.call_args[0][1][0]
        assert sorted(statuses) == ['pending', 'processing']
        assert orders[0].status == OrderStatus.PENDING

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_get_stats(self, mock_get_conn):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [
            {'status': 'completed', 'count': 3, 'total_amount': Decimal('90.00')},
            {'status': 'pending', 'count': 1, 'total_amount': Decimal('24.99')},
        ]
        mock_cursor.fetchone.return_value = {'total': 4, 'last_24h': 2}

        stats = OrderRepository().get_stats()

        assert stats.total_orders == 4
        assert stats.last_24h == 2
        assert stats.by_status[0].status == OrderStatus.COMPLETED
        assert stats.to_dict()['by_status'][0]['total_amount'] == 90.0

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_recovery_lock_keeps_connection_open(self, mock_get_conn):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {'acquired': True}

        lock = OrderRepository().acquire_recovery_lock()

        assert lock is mock_conn
        assert mock_cursor.execute.call_args[0][1] == (RECOVERY_LOCK_KEY,)
        mock_conn.close.assert_not_called()

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_recovery_lock_held_elsewhere(self, mock_get_conn):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {'acquired': False}

        assert OrderRepository().acquire_recovery_lock() is None
        mock_conn.close.assert_called_once()


class TestOrderRepositoryUpdateStatus:

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_pending_to_processing(self, mock_get_conn, order_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        updated_row = {**order_row, 'status': 'processing', 'processed_at': order_row['updated_at']}
        mock_cursor.fetchone.side_effect = [
            {'id': order_row['id'], 'status': 'pending'},
            updated_row,
        ]

        order = OrderRepository().update_status(order_row['id'], OrderStatus.PROCESSING)

        assert order.status == OrderStatus.PROCESSING
        lock_query = mock_cursor.execute.call_args_list[0][0][0]
        assert "FOR UPDATE" in lock_query
        update_params = mock_cursor.execute.call_args_list[1][0][1]
        assert update_params[0] == 'processing'
        assert update_params[2] is True   # stamp processed_at
        assert update_params[4] is False  # leave completed_at
        mock_conn.commit.assert_called_once()

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_completed_to_pending_is_rejected(self, mock_get_conn, order_row):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = {'id': order_row['id'], 'status': 'completed'}

        with pytest.raises(InvalidTransitionError):
            OrderRepository().update_status(order_row['id'], OrderStatus.PENDING)

        # Only the lock query ran; nothing was written
        assert mock_cursor.execute.call_count == 1
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_conn.close.assert_called_once()

    @patch('app.repositories.order_repository.get_db_connection_dict')
    def test_missing_order_raises_not_found(self, mock_get_conn):
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(OrderNotFoundError):
            OrderRepository().update_status('00000000-0000-0000-0000-000000000000', OrderStatus.CANCELLED)
