"""
Pytest fixtures and configuration for TinyTales Backend tests

This file provides shared fixtures that can be used across all test modules.
Repositories are replaced by in-memory fakes so no database is needed.
"""
import os
import tempfile
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

# Settings are read at import time, so the environment is prepared first
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["ADMIN_EMAIL"] = "admin@tinytales-shop.com"
os.environ["SMTP_HOST"] = ""
os.environ["DATABASE_URL"] = ""
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="tinytales-uploads-")

from fastapi.testclient import TestClient  # noqa: E402

from app.core.auth import create_tokens, hash_password  # noqa: E402
from app.core.rate_limit import rate_limiter  # noqa: E402
from app.domain.order import Order  # noqa: E402
from app.domain.product import Product  # noqa: E402
from app.domain.user import CartItem, Role, User  # noqa: E402


# =============================================================================
# In-memory repositories
# =============================================================================

def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakeProductRepository:
    """Same interface as ProductRepository, backed by a dict"""

    def __init__(self):
        self.products: Dict[str, Product] = {}

    def add(self, product: Product) -> Product:
        return self.save(product)

    def find_all(self) -> List[Product]:
        products = [p.model_copy(deep=True) for p in self.products.values()]
        return sorted(products, key=lambda p: p.sort_key)

    def find_by_id(self, product_id: str) -> Optional[Product]:
        product = self.products.get(product_id)
        return product.model_copy(deep=True) if product else None

    def save(self, product: Product) -> Product:
        stored = product.model_copy(deep=True)
        existing = self.products.get(product.id)
        stored.created_at = existing.created_at if existing else (stored.created_at or _now())
        stored.updated_at = _now()
        self.products[product.id] = stored
        return stored.model_copy(deep=True)

    def delete(self, product_id: str) -> bool:
        return self.products.pop(product_id, None) is not None

    def reorder(self, orders: Dict[str, int]) -> List[Product]:
        for product_id, position in orders.items():
            if product_id in self.products:
                self.products[product_id].order = position
        return self.find_all()

    def update_stock(self, product_id: str, stock: Dict[str, int]) -> None:
        if product_id in self.products:
            self.products[product_id].stock = dict(stock)


class FakeOrderRepository:
    """Same interface as OrderRepository, backed by a dict"""

    def __init__(self):
        self.orders: Dict[str, Order] = {}

    def find_by_id(self, order_id: str) -> Optional[Order]:
        order = self.orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    def find_all(self) -> List[Order]:
        orders = sorted(self.orders.values(), key=lambda o: o.created_at, reverse=True)
        return [o.model_copy(deep=True) for o in orders]

    def find_by_email(self, email: str) -> List[Order]:
        return [o for o in self.find_all() if o.email.lower() == email.lower()]

    def save(self, order: Order) -> Order:
        self.orders[order.id] = order.model_copy(deep=True)
        return order.model_copy(deep=True)


class FakeUserRepository:
    """Same interface as UserRepository, backed by a dict"""

    def __init__(self):
        self.users: Dict[str, User] = {}

    def find_by_id(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def find_by_email(self, email: str) -> Optional[User]:
        for user in self.users.values():
            if user.email == email.lower():
                return user.model_copy(deep=True)
        return None

    def find_by_reset_token(self, token: str) -> Optional[User]:
        for user in self.users.values():
            if (
                user.password_reset_token == token
                and user.password_reset_expiry
                and user.password_reset_expiry > _now()
            ):
                return user.model_copy(deep=True)
        return None

    def save(self, user: User) -> User:
        stored = user.model_copy(deep=True)
        stored.created_at = stored.created_at or _now()
        stored.updated_at = _now()
        self.users[user.id] = stored
        return stored.model_copy(deep=True)

    def save_cart(self, user_id: str, items: List[CartItem]) -> Optional[List[CartItem]]:
        if user_id not in self.users:
            return None
        self.users[user_id].saved_cart = [item.model_copy() for item in items]
        return [item.model_copy() for item in items]

    def set_wishlist(self, user_id: str, wishlist: List[str]) -> Optional[List[str]]:
        if user_id not in self.users:
            return None
        self.users[user_id].wishlist = list(wishlist)
        return list(wishlist)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Every test starts with empty rate limit counters"""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def product_repo(monkeypatch):
    repo = FakeProductRepository()
    for target in (
        "app.api.products.ProductRepository",
        "app.services.product_service.ProductRepository",
        "app.services.order_service.ProductRepository",
    ):
        monkeypatch.setattr(target, lambda: repo)
    return repo


@pytest.fixture
def order_repo(monkeypatch):
    repo = FakeOrderRepository()
    for target in (
        "app.api.orders.OrderRepository",
        "app.services.order_service.OrderRepository",
    ):
        monkeypatch.setattr(target, lambda: repo)
    return repo


@pytest.fixture
def user_repo(monkeypatch):
    repo = FakeUserRepository()
    for target in (
        "app.core.auth.UserRepository",
        "app.api.auth.UserRepository",
        "app.api.users.UserRepository",
    ):
        monkeypatch.setattr(target, lambda: repo)
    return repo


@pytest.fixture
def client(product_repo, order_repo, user_repo):
    """FastAPI test client wired to the in-memory repositories"""
    from app.main import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def csrf_token(client):
    """CSRF token issued on a GET; the secret cookie stays in the client's jar"""
    return client.get("/api/health").headers["X-CSRF-Token"]


@pytest.fixture
def make_user(user_repo):
    """Factory creating stored accounts"""
    def _make_user(
        user_id: str = "1700000000000",
        email: str = "parent@example.com",
        password: str = "secret123",
        verified: bool = True,
        role: Optional[str] = Role.USER,
        **fields
    ) -> User:
        user = User(
            id=user_id,
            email=email,
            password_hash=hash_password(password),
            verified=verified,
            role=role,
            **fields
        )
        return user_repo.save(user)
    return _make_user


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(user_id="1600000000000", email="admin@tinytales-shop.com", role=Role.ADMIN)


def bearer(user: User) -> Dict[str, str]:
    access_token, _ = create_tokens(user)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def headers_for(csrf_token):
    """Bearer + CSRF headers for any stored user"""
    def _headers(user: User) -> Dict[str, str]:
        return {**bearer(user), "X-CSRF-Token": csrf_token}
    return _headers


@pytest.fixture
def customer_headers(customer, headers_for):
    return headers_for(customer)


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)


@pytest.fixture
def sample_product():
    """
    Provides a stock-tracked product
    """
    return Product(
        id="nb-cloud-romper-1700000000000",
        name="Cloud Soft Romper",
        price=19.99,
        category="Newborn",
        description="<p>Feather-soft romper</p>",
        colors=[{"name": "Cream", "images": ["https://cdn.example.com/cream.jpg"]}, "Mint"],
        sizes=["0-3m", "3-6m"],
        stock={"0-3m-Cream": 5, "3-6m-Cream": 2, "0-3m-Mint": 0},
    )


@pytest.fixture
def sample_order_data():
    """
    Provides a checkout payload for the sample product
    """
    return {
        "email": "Parent@Example.com",
        "items": [
            {
                "productId": "nb-cloud-romper-1700000000000",
                "name": "Cloud Soft Romper",
                "price": 19.99,
                "quantity": 2,
                "size": "0-3m",
                "color": "Cream",
            }
        ],
        "address": {
            "firstName": "Rina",
            "lastName": "Akter",
            "mobileNumber": "01700000000",
            "streetAddress": "12 Lake Road",
            "regionState": "Dhaka",
            "cityArea": "Dhanmondi",
        },
    }
