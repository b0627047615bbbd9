"""
Storefront API client

Typed wrappers over the TinyTales REST API: products, orders, locations,
saved cart, wishlist and auth. Every failure surfaces as ApiError (or its
NetworkError/CsrfError subclasses).
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from app.client.errors import ApiError, NetworkError, error_from_response, get_network_error_message
from app.client.image_url import is_local_url
from app.client.session import SecureSession
from app.domain.order import LocationData, Order, OrderCreate
from app.domain.product import Product
from app.domain.user import CartItem

logger = logging.getLogger(__name__)

INVALID_RESPONSE_MESSAGE = "Invalid response from server"

FALLBACK_PRODUCTS_FILE = Path(__file__).resolve().parent.parent / "data" / "products.json"


def load_fallback_products() -> List[Product]:
    """Bundled catalog shown when the API is unavailable"""
    with open(FALLBACK_PRODUCTS_FILE, encoding="utf-8") as f:
        return [Product.model_validate(item) for item in json.load(f)]


def _parse(model: Type[BaseModel], data: Any) -> Any:
    """Validate a response payload, reporting a malformed one as ApiError"""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error(f"Malformed {model.__name__} in API response: {e}")
        raise ApiError(INVALID_RESPONSE_MESSAGE)


def _parse_list(model: Type[BaseModel], items: Any) -> List[Any]:
    if not isinstance(items, list):
        raise ApiError(INVALID_RESPONSE_MESSAGE)
    return [_parse(model, item) for item in items]


def _field(result: Any, key: str) -> Any:
    """Read a key from a JSON object response"""
    if not isinstance(result, dict):
        raise ApiError(INVALID_RESPONSE_MESSAGE)
    return result.get(key)


class StorefrontClient:
    """
    Client for the TinyTales API

    Usage:
        client = StorefrontClient(SecureSession("http://localhost:3001/api"))
        products = client.get_products_or_fallback()
    """

    def __init__(self, session: SecureSession = None):
        self.session = session or SecureSession()
        self.api_url = self.session.api_url

    @property
    def production(self) -> bool:
        return not is_local_url(self.api_url)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Send a request and decode the JSON body

        Raises:
            NetworkError: the server could not be reached
            ApiError: the server answered with a non-2xx status or a body
                that is not JSON
        """
        try:
            response = self.session.request(method, f"{self.api_url}{path}", **kwargs)
        except httpx.TransportError as e:
            logger.error(f"API request {method} {path} failed: {e}")
            raise NetworkError(get_network_error_message(self.production))

        if not response.is_success:
            raise error_from_response(response)
        try:
            return response.json()
        except ValueError:
            logger.error(f"API request {method} {path} returned a non-JSON body")
            raise ApiError(INVALID_RESPONSE_MESSAGE, response.status_code)

    # Products

    def get_products(self) -> List[Product]:
        return _parse_list(Product, self._request("GET", "/products"))

    def get_products_or_fallback(self) -> List[Product]:
        """Live catalog, or the bundled products when the API fails"""
        try:
            return self.get_products()
        except ApiError as e:
            logger.warning(f"Failed to load products from API, using fallback: {e}")
            return load_fallback_products()

    def get_product(self, product_id: str) -> Product:
        return _parse(Product, self._request("GET", f"/products/{quote(product_id)}"))

    def create_product(self, data: Dict[str, Any]) -> Product:
        return _parse(Product, self._request("POST", "/products", json=data))

    def update_product(self, product_id: str, data: Dict[str, Any]) -> Product:
        return _parse(Product, self._request("PUT", f"/products/{quote(product_id)}", json=data))

    def delete_product(self, product_id: str) -> None:
        self._request("DELETE", f"/products/{quote(product_id)}")

    def reorder_products(self, orders: List[Tuple[str, int]]) -> List[Product]:
        payload = {"products": [{"id": product_id, "order": order} for product_id, order in orders]}
        result = self._request("POST", "/products/reorder", json=payload)
        return _parse_list(Product, _field(result, "products"))

    def upload_images(self, files: List[Tuple[str, bytes, str]]) -> List[str]:
        """
        Upload product images

        Args:
            files: (filename, content, content_type) per image

        Returns:
            Public URLs of the stored images
        """
        multipart = [("images", (name, content, content_type)) for name, content, content_type in files]
        return _field(self._request("POST", "/upload", files=multipart), "files")

    # Orders

    def create_order(self, data: OrderCreate) -> Order:
        payload = data.model_dump(mode="json", by_alias=True, exclude_none=True)
        return _parse(Order, _field(self._request("POST", "/orders", json=payload), "order"))

    def get_orders(self) -> List[Order]:
        return _parse_list(Order, _field(self._request("GET", "/orders"), "orders"))

    def get_order(self, order_id: str) -> Order:
        return _parse(Order, _field(self._request("GET", f"/orders/{quote(order_id)}"), "order"))

    def get_orders_by_email(self, email: str) -> List[Order]:
        result = self._request("GET", f"/orders/email/{quote(email, safe='')}")
        return _parse_list(Order, _field(result, "orders") or [])

    def update_order_status(
        self,
        order_id: str,
        status: str,
        admin_status: Optional[str] = None,
        shipper_name: Optional[str] = None
    ) -> Order:
        payload = {"status": status}
        if admin_status is not None:
            payload["adminStatus"] = admin_status
        if shipper_name is not None:
            payload["shipperName"] = shipper_name
        result = self._request("PUT", f"/orders/{quote(order_id)}/status", json=payload)
        return _parse(Order, _field(result, "order"))

    def approve_order(self, order_id: str) -> Order:
        return _parse(Order, _field(self._request("PUT", f"/orders/{quote(order_id)}/approve"), "order"))

    def refuse_order(self, order_id: str, reason: Optional[str] = None) -> Order:
        result = self._request("PUT", f"/orders/{quote(order_id)}/refuse", json={"reason": reason})
        return _parse(Order, _field(result, "order"))

    def cancel_order(self, order_id: str, reason: Optional[str] = None, email: Optional[str] = None) -> Order:
        result = self._request("PUT", f"/orders/{quote(order_id)}/cancel", json={"reason": reason, "email": email})
        return _parse(Order, _field(result, "order"))

    def get_locations(self) -> LocationData:
        return _parse(LocationData, self._request("GET", "/locations"))

    # Saved cart

    def get_saved_cart(self, user_id: str) -> Optional[List[CartItem]]:
        cart = _field(self._request("GET", f"/users/{quote(user_id)}/cart"), "cart")
        if cart is None:
            return None
        return _parse_list(CartItem, cart)

    def save_cart(self, user_id: str, items: List[CartItem]) -> List[CartItem]:
        payload = {"cartItems": [item.to_dict() for item in items]}
        cart = _field(self._request("POST", f"/users/{quote(user_id)}/cart", json=payload), "cart") or []
        return _parse_list(CartItem, cart)

    # Wishlist

    def get_wishlist(self, user_id: str) -> List[str]:
        return _field(self._request("GET", f"/users/{quote(user_id)}/wishlist"), "wishlist") or []

    def add_to_wishlist(self, user_id: str, product_id: str) -> List[str]:
        result = self._request("POST", f"/users/{quote(user_id)}/wishlist", json={"productId": product_id})
        wishlist = _field(result, "wishlist")
        if not isinstance(wishlist, list):
            raise ApiError("Invalid wishlist response from server")
        return wishlist

    def remove_from_wishlist(self, user_id: str, product_id: str) -> List[str]:
        path = f"/users/{quote(user_id)}/wishlist/{quote(product_id)}"
        return _field(self._request("DELETE", path), "wishlist") or []

    def is_in_wishlist(self, user_id: str, product_id: str) -> bool:
        path = f"/users/{quote(user_id)}/wishlist/{quote(product_id)}"
        return bool(_field(self._request("GET", path), "inWishlist"))

    # Auth

    def signin(self, email: str, password: str) -> Dict[str, Any]:
        """Sign in and keep the tokens and user in the session store"""
        result = self._request("POST", "/auth/signin", json={"email": email, "password": password})
        access_token = _field(result, "accessToken")
        user = _field(result, "user")
        if not access_token or not isinstance(user, dict):
            raise ApiError(INVALID_RESPONSE_MESSAGE)
        self.session.store_tokens(access_token, result.get("refreshToken"))
        self.session.store_user(user)
        return user

    def verify_token(self) -> Dict[str, Any]:
        return _field(self._request("GET", "/auth/verify-token"), "user")

    def logout(self) -> None:
        """Invalidate the refresh token server-side, then forget local auth data"""
        try:
            self._request("POST", "/auth/logout")
        finally:
            self.session.clear_auth_data()
            self.session.csrf.clear()
