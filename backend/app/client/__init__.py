"""
Storefront Client

Python counterpart of the storefront's browser-side code: authenticated
session with CSRF handling, typed API client, local cart and login cart sync.
"""
from app.client.api import StorefrontClient
from app.client.cart import Cart
from app.client.cart_sync import CartMergeDecision, sync_cart_on_login, resolve_cart_merge
from app.client.errors import ApiError, NetworkError, CsrfError
from app.client.session import SecureSession

__all__ = [
    'StorefrontClient',
    'Cart',
    'CartMergeDecision',
    'sync_cart_on_login',
    'resolve_cart_merge',
    'ApiError',
    'NetworkError',
    'CsrfError',
    'SecureSession',
]
