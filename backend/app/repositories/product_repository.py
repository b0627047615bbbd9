"""
Product Repository - Data Access Layer for Products

Handles all database queries for products and returns Product domain models.
"""
from typing import Dict, List, Optional

from psycopg2.extras import Json

from app.domain.product import Product
from app.core.database import get_db_connection_dict_with_retry

PRODUCT_COLUMNS = """
    id, name, price, category, description,
    colors, sizes, stock, badges, sort_order,
    image, created_at, updated_at
"""


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        """
        Helper method to map database row to Product domain model.

        The display position is stored as sort_order (ORDER is reserved in SQL).
        """
        return Product(
            id=row['id'],
            name=row['name'],
            price=float(row['price']),
            category=row['category'],
            description=row['description'] or "",
            colors=row['colors'] or [],
            sizes=row['sizes'] or [],
            stock=row['stock'] or {},
            badges=row['badges'] or [],
            order=row.get('sort_order'),
            image=row['image'] or "",
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def find_all(self) -> List[Product]:
        """
        Get every product in display order

        Ordered by sort_order (unordered products last), then by creation date.
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products
            """)
            rows = cursor.fetchall()
            products = [self._map_row_to_product(row) for row in rows]
            return sorted(products, key=lambda p: p.sort_key)

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, product_id: str) -> Optional[Product]:
        """
        Find product by ID

        Returns:
            Product or None if not found
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products
                WHERE id = %s
            """, (product_id,))

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row_to_product(row)

        finally:
            cursor.close()
            conn.close()

    def save(self, product: Product) -> Product:
        """
        Insert or update a product (upsert on id)

        created_at is kept on update; updated_at is always refreshed.
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO products (
                    id, name, price, category, description,
                    colors, sizes, stock, badges, sort_order,
                    image, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW(), NOW())
                ON CONFLICT (id) DO UPDATE SET
                    name = EXCLUDED.name,
                    price = EXCLUDED.price,
                    category = EXCLUDED.category,
                    description = EXCLUDED.description,
                    colors = EXCLUDED.colors,
                    sizes = EXCLUDED.sizes,
                    stock = EXCLUDED.stock,
                    badges = EXCLUDED.badges,
                    sort_order = EXCLUDED.sort_order,
                    image = EXCLUDED.image,
                    updated_at = NOW()
                RETURNING {PRODUCT_COLUMNS}
            """, (
                product.id,
                product.name,
                product.price,
                product.category,
                product.description,
                Json([color.model_dump() for color in product.colors]),
                Json(product.sizes),
                Json(product.stock),
                Json(product.badges),
                product.order,
                product.image,
            ))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_product(row)

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def delete(self, product_id: str) -> bool:
        """
        Delete a product

        Returns:
            True if a row was deleted
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM products WHERE id = %s", (product_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
            return deleted

        finally:
            cursor.close()
            conn.close()

    def reorder(self, orders: Dict[str, int]) -> List[Product]:
        """
        Apply display positions to the given product ids

        Unknown ids are ignored. Returns the full catalog in its new order.
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            for product_id, position in orders.items():
                cursor.execute("""
                    UPDATE products
                    SET sort_order = %s,
                        updated_at = NOW()
                    WHERE id = %s
                """, (position, product_id))
            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

        return self.find_all()

    def update_stock(self, product_id: str, stock: Dict[str, int]) -> None:
        """Replace the stock map of one product"""
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE products
                SET stock = %s,
                    updated_at = NOW()
                WHERE id = %s
            """, (Json(stock), product_id))
            conn.commit()

        finally:
            cursor.close()
            conn.close()
