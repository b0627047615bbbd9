"""
Tests for cart reconciliation at login
"""
from unittest.mock import MagicMock

import httpx
import pytest

from app.client.api import StorefrontClient
from app.client.cart_sync import (
    CartMergeDecision,
    clear_local_cart,
    load_cart_from_server,
    resolve_cart_merge,
    save_cart_to_server,
    sync_cart_on_login,
)
from app.client.errors import ApiError, NetworkError
from app.client.storage import CART_KEY, MemoryStore
from app.domain.user import CartItem

LOCAL = [CartItem(id="romper", name="Romper", price=19.99, size="0-3m", quantity=1)]
SERVER = [CartItem(id="hat", name="Bunny Hat", price=9.5, quantity=2)]


def make_client(past_orders: bool, server_cart):
    client = MagicMock(spec=StorefrontClient)
    client.get_orders_by_email.return_value = [MagicMock()] if past_orders else []
    client.get_saved_cart.return_value = server_cart
    return client


class TestSyncCartOnLogin:
    """Test the merge decision table"""

    @pytest.mark.parametrize("server_cart", [None, [], SERVER])
    def test_no_past_orders_with_local_cart_saves_local(self, server_cart):
        client = make_client(past_orders=False, server_cart=server_cart)

        decision = sync_cart_on_login(client, "1", "parent@example.com", LOCAL)

        assert decision == CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=True)
        client.save_cart.assert_called_once_with("1", LOCAL)

    def test_past_orders_with_both_carts_asks_user(self):
        client = make_client(past_orders=True, server_cart=SERVER)

        decision = sync_cart_on_login(client, "1", "parent@example.com", LOCAL)

        assert decision == CartMergeDecision(needs_decision=True, has_server_cart=True, has_local_cart=True)
        client.save_cart.assert_not_called()

    @pytest.mark.parametrize("past_orders", [True, False])
    def test_only_server_cart_uses_server(self, past_orders):
        client = make_client(past_orders=past_orders, server_cart=SERVER)

        decision = sync_cart_on_login(client, "1", "parent@example.com", [])

        assert decision == CartMergeDecision(needs_decision=False, has_server_cart=True, has_local_cart=False)
        client.save_cart.assert_not_called()

    @pytest.mark.parametrize("server_cart", [None, []])
    def test_past_orders_with_only_local_cart_saves_local(self, server_cart):
        client = make_client(past_orders=True, server_cart=server_cart)

        decision = sync_cart_on_login(client, "1", "parent@example.com", LOCAL)

        assert decision == CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=True)
        client.save_cart.assert_called_once_with("1", LOCAL)

    @pytest.mark.parametrize("past_orders", [True, False])
    def test_no_carts_does_nothing(self, past_orders):
        client = make_client(past_orders=past_orders, server_cart=None)

        decision = sync_cart_on_login(client, "1", "parent@example.com", [])

        assert decision == CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=False)
        client.save_cart.assert_not_called()

    def test_failure_is_logged_and_ignored(self, caplog):
        client = make_client(past_orders=True, server_cart=SERVER)
        client.get_saved_cart.side_effect = NetworkError("Network error: Unable to connect to server.")

        decision = sync_cart_on_login(client, "1", "parent@example.com", LOCAL)

        assert decision == CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=False)
        assert "Error syncing cart on login" in caplog.text

    def test_non_json_response_is_ignored(self, api, backend, caplog):
        backend.route(
            "GET", "/api/orders/email/parent@example.com",
            handler=lambda request: httpx.Response(200, text="<html>proxy</html>"),
        )

        decision = sync_cart_on_login(api, "1", "parent@example.com", LOCAL)

        assert decision == CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=False)
        assert backend.calls("POST", "/api/users/1/cart") == []
        assert "Error syncing cart on login" in caplog.text

    def test_malformed_server_cart_is_ignored(self, api, backend):
        backend.route("GET", "/api/orders/email/parent@example.com", status_code=200, json={"orders": []})
        backend.route("GET", "/api/users/1/cart", status_code=200, json={"cart": [{"id": "x"}]})

        decision = sync_cart_on_login(api, "1", "parent@example.com", LOCAL)

        assert decision == CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=False)
        assert backend.calls("POST", "/api/users/1/cart") == []


class TestResolveCartMerge:
    """Test the user's choice in the merge dialog"""

    def test_keep_local_saves_it(self):
        client = make_client(past_orders=True, server_cart=SERVER)

        cart = resolve_cart_merge(client, "1", LOCAL, SERVER, use_local=True)

        assert cart == LOCAL
        client.save_cart.assert_called_once_with("1", LOCAL)

    def test_use_server_cart(self):
        client = make_client(past_orders=True, server_cart=SERVER)

        cart = resolve_cart_merge(client, "1", LOCAL, SERVER, use_local=False)

        assert cart == SERVER
        client.save_cart.assert_not_called()


class TestServerCartHelpers:
    """Test the error-swallowing helpers"""

    def test_save_failure_is_logged(self, caplog):
        client = make_client(past_orders=False, server_cart=None)
        client.save_cart.side_effect = ApiError("Access denied", 403)

        save_cart_to_server(client, "1", LOCAL)

        assert "Error saving cart to server" in caplog.text

    def test_load_failure_returns_none(self):
        client = make_client(past_orders=False, server_cart=None)
        client.get_saved_cart.side_effect = ApiError("User not found", 404)

        assert load_cart_from_server(client, "1") is None

    def test_load_malformed_cart_returns_none(self, api, backend):
        backend.route("GET", "/api/users/1/cart", status_code=200, json={"cart": [{"id": "x"}]})
        assert load_cart_from_server(api, "1") is None

    def test_save_non_json_response_is_logged(self, api, backend, caplog):
        backend.route("POST", "/api/users/1/cart", handler=lambda request: httpx.Response(200, text="OK"))

        save_cart_to_server(api, "1", LOCAL)

        assert "Error saving cart to server" in caplog.text

    def test_load_returns_server_cart(self):
        client = make_client(past_orders=False, server_cart=SERVER)
        assert load_cart_from_server(client, "1") == SERVER

    def test_clear_local_cart(self):
        store = MemoryStore({CART_KEY: [{"id": "romper"}], "authToken": "a"})

        clear_local_cart(store)

        assert store.get(CART_KEY) is None
        assert store.get("authToken") == "a"
