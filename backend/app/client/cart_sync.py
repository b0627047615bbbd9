"""
Cart reconciliation at login

Decides how a guest's local cart meets the cart saved on the server when the
user signs in. Failures never reach the caller: they are logged and treated
as "nothing to do".
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from app.client.api import StorefrontClient
from app.client.storage import CART_KEY, MemoryStore
from app.domain.user import CartItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartMergeDecision:
    needs_decision: bool
    has_server_cart: bool
    has_local_cart: bool


NO_ACTION = CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=False)


def sync_cart_on_login(
    client: StorefrontClient,
    user_id: str,
    email: str,
    local_cart: List[CartItem]
) -> CartMergeDecision:
    """
    Reconcile the local cart with the server cart after sign in

    - No past orders and a local cart: the local cart is saved to the server.
    - Past orders and both carts: the user has to choose (needs_decision).
    - Only a server cart: the server cart should be used.
    - Only a local cart: the local cart is saved to the server.
    - Neither: nothing happens.
    """
    try:
        has_past_orders = bool(client.get_orders_by_email(email))
        has_server_cart = bool(client.get_saved_cart(user_id))
        has_local_cart = bool(local_cart)

        if not has_past_orders and has_local_cart:
            client.save_cart(user_id, local_cart)
            return CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=True)

        if has_past_orders and has_server_cart and has_local_cart:
            return CartMergeDecision(needs_decision=True, has_server_cart=True, has_local_cart=True)

        if has_server_cart and not has_local_cart:
            return CartMergeDecision(needs_decision=False, has_server_cart=True, has_local_cart=False)

        if has_local_cart and not has_server_cart:
            client.save_cart(user_id, local_cart)
            return CartMergeDecision(needs_decision=False, has_server_cart=False, has_local_cart=True)

        return NO_ACTION
    except Exception as e:
        logger.error(f"Error syncing cart on login for user {user_id}: {e}")
        return NO_ACTION


def resolve_cart_merge(
    client: StorefrontClient,
    user_id: str,
    local_cart: List[CartItem],
    server_cart: Optional[List[CartItem]],
    use_local: bool
) -> List[CartItem]:
    """
    Apply the user's choice between the two carts

    Returns:
        The cart to keep locally
    """
    if use_local:
        save_cart_to_server(client, user_id, local_cart)
        return list(local_cart)
    return list(server_cart or [])


def save_cart_to_server(client: StorefrontClient, user_id: str, cart_items: List[CartItem]) -> None:
    try:
        client.save_cart(user_id, cart_items)
    except Exception as e:
        logger.error(f"Error saving cart to server: {e}")


def load_cart_from_server(client: StorefrontClient, user_id: str) -> Optional[List[CartItem]]:
    try:
        return client.get_saved_cart(user_id)
    except Exception as e:
        logger.error(f"Error loading cart from server: {e}")
        return None


def clear_local_cart(store: MemoryStore) -> None:
    store.remove(CART_KEY)
