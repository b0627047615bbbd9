"""
Unit tests for OrderRepository
"""
import pytest
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone

from app.repositories.order_repository import OrderRepository
from app.domain.order import Order, OrderItem


def order_row(**overrides):
    row = {
        'id': '1700000000000',
        'order_number': 'TT-1700000000000-42',
        'email': 'parent@example.com',
        'user_id': None,
        'items': [{'productId': 'romper', 'name': 'Romper', 'price': 19.99, 'quantity': 2,
                   'size': '0-3m', 'color': 'Cream', 'image': ''}],
        'shipping': {'method': 'Standard Shipping', 'cost': 100},
        'payment': {'method': 'Cash on Delivery'},
        'address': {'streetAddress': '12 Lake Road', 'regionState': 'Dhaka', 'cityArea': 'Mirpur'},
        'status': 'pending',
        'admin_status': None,
        'shipper_name': None,
        'cancelled_at': None,
        'cancelled_by': None,
        'cancel_reason': None,
        'created_at': datetime(2025, 1, 1, tzinfo=timezone.utc),
        'updated_at': datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


@pytest.fixture
def mock_db():
    with patch('app.repositories.order_repository.get_db_connection_dict_with_retry') as mock_get_conn:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        yield mock_conn, mock_cursor


class TestOrderRepository:
    """Test OrderRepository methods"""

    def test_find_by_id_maps_jsonb_columns(self, mock_db):
        """Test camelCase JSONB content becomes nested models"""
        _, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = order_row()

        order = OrderRepository().find_by_id('1700000000000')

        assert isinstance(order, Order)
        assert order.items[0].product_id == 'romper'
        assert order.address.city_area == 'Mirpur'
        assert order.total == 139.98

    def test_find_by_email_is_case_insensitive(self, mock_db):
        """Test find_by_email compares lower-cased emails"""
        _, mock_cursor = mock_db
        mock_cursor.fetchall.return_value = [order_row()]

        orders = OrderRepository().find_by_email('Parent@Example.com')

        assert len(orders) == 1
        sql, params = mock_cursor.execute.call_args[0]
        assert 'LOWER(email) = LOWER(%s)' in sql
        assert params == ('Parent@Example.com',)

    def test_save_serializes_nested_models(self, mock_db):
        """Test save writes JSON for items and checkout details"""
        mock_conn, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = order_row(status='approved')
        now = datetime.now(timezone.utc)
        order = Order(
            id='1700000000000',
            order_number='TT-1700000000000-42',
            email='parent@example.com',
            items=[OrderItem(product_id='romper', name='Romper', price=19.99, quantity=2)],
            status='approved',
            created_at=now,
            updated_at=now,
        )

        saved = OrderRepository().save(order)

        assert saved.status == 'approved'
        params = mock_cursor.execute.call_args[0][1]
        assert params[4].adapted[0]['product_id'] == 'romper'
        assert params[8] == 'approved'
        mock_conn.commit.assert_called_once()
