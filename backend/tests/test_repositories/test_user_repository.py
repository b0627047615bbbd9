"""
Unit tests for UserRepository
"""
import pytest
from unittest.mock import patch, MagicMock

from app.repositories.user_repository import UserRepository
from app.domain.user import CartItem, User


def user_row(**overrides):
    row = {
        'id': '42',
        'email': 'parent@example.com',
        'password_hash': 'hash',
        'verified': True,
        'role': 'user',
        'otp': None,
        'otp_expiry': None,
        'failed_login_attempts': 0,
        'locked_until': None,
        'refresh_token': None,
        'password_reset_token': None,
        'password_reset_expiry': None,
        'saved_cart': None,
        'wishlist': None,
        'created_at': None,
        'updated_at': None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def mock_db():
    with patch('app.repositories.user_repository.get_db_connection_dict_with_retry') as mock_get_conn:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        yield mock_conn, mock_cursor


class TestUserRepository:
    """Test UserRepository methods"""

    def test_find_by_email_lowercases(self, mock_db):
        """Test emails are looked up lower-cased"""
        _, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = user_row()

        user = UserRepository().find_by_email('Parent@Example.COM')

        assert isinstance(user, User)
        assert user.wishlist == []
        assert user.saved_cart is None
        assert mock_cursor.execute.call_args[0][1] == ('parent@example.com',)

    def test_find_by_reset_token_checks_expiry(self, mock_db):
        """Test reset tokens are only found while valid"""
        _, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = None

        assert UserRepository().find_by_reset_token('abc') is None
        assert 'password_reset_expiry > NOW()' in mock_cursor.execute.call_args[0][0]

    def test_save_cart_returns_items(self, mock_db):
        """Test save_cart stores and returns cart items"""
        mock_conn, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = {
            'saved_cart': [{'id': 'romper', 'name': 'Romper', 'price': 19.99, 'image': '', 'size': '0-3m', 'quantity': 2}]
        }

        cart = UserRepository().save_cart('42', [CartItem(id='romper', name='Romper', price=19.99, size='0-3m', quantity=2)])

        assert cart[0].quantity == 2
        mock_conn.commit.assert_called_once()

    def test_save_cart_unknown_user(self, mock_db):
        """Test save_cart returns None when no row was updated"""
        _, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = None

        assert UserRepository().save_cart('missing', []) is None

    def test_set_wishlist(self, mock_db):
        """Test set_wishlist returns the stored list"""
        _, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = {'wishlist': ['romper']}

        assert UserRepository().set_wishlist('42', ['romper']) == ['romper']
