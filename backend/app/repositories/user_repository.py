"""
User Repository - Data Access Layer for accounts, saved carts and wishlists
"""
from typing import List, Optional

from psycopg2.extras import Json

from app.domain.user import CartItem, User
from app.core.database import get_db_connection_dict_with_retry

USER_COLUMNS = """
    id, email, password_hash, verified, role,
    otp, otp_expiry, failed_login_attempts, locked_until,
    refresh_token, password_reset_token, password_reset_expiry,
    saved_cart, wishlist, created_at, updated_at
"""


class UserRepository:
    """
    Repository for User data access

    Returns User domain models. Saved carts and wishlists are stored as JSONB
    on the user row and survive logout.
    """

    @staticmethod
    def _map_row_to_user(row: dict) -> User:
        data = dict(row)
        data['wishlist'] = data.get('wishlist') or []
        return User.model_validate(data)

    def _find_one(self, where: str, params: tuple) -> Optional[User]:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE {where}
            """, params)

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row_to_user(row)

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self._find_one("id = %s", (user_id,))

    def find_by_email(self, email: str) -> Optional[User]:
        return self._find_one("email = %s", (email.lower(),))

    def find_by_reset_token(self, token: str) -> Optional[User]:
        """Find the user owning a password reset token that has not expired"""
        return self._find_one(
            "password_reset_token = %s AND password_reset_expiry > NOW()",
            (token,),
        )

    def save(self, user: User) -> User:
        """
        Insert or update a user (upsert on id)
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()
        saved_cart = None
        if user.saved_cart is not None:
            saved_cart = Json([item.model_dump(mode="json") for item in user.saved_cart])

        try:
            cursor.execute(f"""
                INSERT INTO users (
                    id, email, password_hash, verified, role,
                    otp, otp_expiry, failed_login_attempts, locked_until,
                    refresh_token, password_reset_token, password_reset_expiry,
                    saved_cart, wishlist, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s, NOW()), NOW())
                ON CONFLICT (id) DO UPDATE SET
                    email = EXCLUDED.email,
                    password_hash = EXCLUDED.password_hash,
                    verified = EXCLUDED.verified,
                    role = EXCLUDED.role,
                    otp = EXCLUDED.otp,
                    otp_expiry = EXCLUDED.otp_expiry,
                    failed_login_attempts = EXCLUDED.failed_login_attempts,
                    locked_until = EXCLUDED.locked_until,
                    refresh_token = EXCLUDED.refresh_token,
                    password_reset_token = EXCLUDED.password_reset_token,
                    password_reset_expiry = EXCLUDED.password_reset_expiry,
                    saved_cart = EXCLUDED.saved_cart,
                    wishlist = EXCLUDED.wishlist,
                    updated_at = NOW()
                RETURNING {USER_COLUMNS}
            """, (
                user.id,
                user.email.lower(),
                user.password_hash,
                user.verified,
                user.role,
                user.otp,
                user.otp_expiry,
                user.failed_login_attempts,
                user.locked_until,
                user.refresh_token,
                user.password_reset_token,
                user.password_reset_expiry,
                saved_cart,
                Json(user.wishlist),
                user.created_at,
            ))

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_user(row)

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def save_cart(self, user_id: str, items: List[CartItem]) -> Optional[List[CartItem]]:
        """
        Persist a user's cart

        Returns:
            The saved cart, or None if the user does not exist
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE users
                SET saved_cart = %s,
                    updated_at = NOW()
                WHERE id = %s
                RETURNING saved_cart
            """, (Json([item.model_dump(mode="json") for item in items]), user_id))

            row = cursor.fetchone()
            conn.commit()
            if not row:
                return None
            return [CartItem.model_validate(item) for item in row['saved_cart'] or []]

        finally:
            cursor.close()
            conn.close()

    def set_wishlist(self, user_id: str, wishlist: List[str]) -> Optional[List[str]]:
        """
        Replace a user's wishlist

        Returns:
            The stored wishlist, or None if the user does not exist
        """
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE users
                SET wishlist = %s,
                    updated_at = NOW()
                WHERE id = %s
                RETURNING wishlist
            """, (Json(wishlist), user_id))

            row = cursor.fetchone()
            conn.commit()
            if not row:
                return None
            return row['wishlist'] or []

        finally:
            cursor.close()
            conn.close()
