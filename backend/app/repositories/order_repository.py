"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models.
"""
from typing import List, Optional

from psycopg2.extras import Json

from app.domain.order import Order
from app.core.database import get_db_connection_dict_with_retry

ORDER_COLUMNS = """
    id, order_number, email, user_id,
    items, shipping, payment, address,
    status, admin_status, shipper_name,
    cancelled_at, cancelled_by, cancel_reason,
    created_at, updated_at
"""


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Line items and checkout details live in JSONB columns on the order row.
    """

    @staticmethod
    def _map_row_to_order(row: dict) -> Order:
        return Order.model_validate(dict(row))

    def find_by_id(self, order_id: str) -> Optional[Order]:
        """
        Find order by ID

        Returns:
            Order or None if not found
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders
                WHERE id = %s
            """, (order_id,))

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row_to_order(row)

        finally:
            cursor.close()
            conn.close()

    def find_all(self) -> List[Order]:
        """Get all orders, newest first"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders
                ORDER BY created_at DESC
            """)
            return [self._map_row_to_order(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_by_email(self, email: str) -> List[Order]:
        """
        Get orders placed with an email address (case-insensitive), newest first
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders
                WHERE LOWER(email) = LOWER(%s)
                ORDER BY created_at DESC
            """, (email,))
            return [self._map_row_to_order(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def save(self, order: Order) -> Order:
        """
        Insert or update an order (upsert on id)
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()
        data = order.model_dump(mode="json")

        try:
            cursor.execute(f"""
                INSERT INTO orders (
                    id, order_number, email, user_id,
                    items, shipping, payment, address,
                    status, admin_status, shipper_name,
                    cancelled_at, cancelled_by, cancel_reason,
                    created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE SET
                    items = EXCLUDED.items,
                    status = EXCLUDED.status,
                    admin_status = EXCLUDED.admin_status,
                    shipper_name = EXCLUDED.shipper_name,
                    cancelled_at = EXCLUDED.cancelled_at,
                    cancelled_by = EXCLUDED.cancelled_by,
                    cancel_reason = EXCLUDED.cancel_reason,
                    updated_at = EXCLUDED.updated_at
                RETURNING {ORDER_COLUMNS}
            """, (
                order.id,
                order.order_number,
                order.email,
                order.user_id,
                Json(data['items']),
                Json(data['shipping']),
                Json(data['payment']),
                Json(data['address']),
                order.status,
                order.admin_status,
                order.shipper_name,
                order.cancelled_at,
                order.cancelled_by,
                order.cancel_reason,
                order.created_at,
                order.updated_at,
            ))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_order(row)

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
