"""
Product Service
Catalog business rules: product creation/update and stock bookkeeping
"""
import logging
from typing import Optional

from app.core.sanitize import sanitize_html
from app.domain.product import (
    Product,
    ProductCreate,
    ProductUpdate,
    StockCheck,
    StockError,
    generate_product_id,
)
from app.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class ProductValidationError(ValueError):
    """Raised when a product payload is missing required data"""


class ProductService:
    """
    Service for catalog business logic

    Stock is tracked per "{size}-{color}" key. Products with an empty stock
    map are not inventory-tracked: they are always available and stock
    operations leave them untouched.
    """

    def __init__(self, repo: ProductRepository = None):
        self.repo = repo or ProductRepository()

    def create_product(self, data: ProductCreate) -> Product:
        """
        Validate and store a new product

        Raises:
            ProductValidationError: missing fields, colors or sizes
        """
        if not data.name or data.price is None or not data.category or not data.description:
            raise ProductValidationError("Name, price, category, and description are required")
        if not data.colors:
            raise ProductValidationError("At least one color is required")
        if not data.sizes:
            raise ProductValidationError("At least one size is required")

        product = Product(
            id=generate_product_id(data.name),
            name=data.name,
            price=data.price,
            category=data.category,
            description=sanitize_html(data.description),
            colors=data.colors,
            sizes=data.sizes,
            stock=data.stock or {},
            order=data.order,
            badges=data.badges or [],
            image=data.image or "",
        )
        if not product.image and product.colors and product.colors[0].images:
            product.image = product.colors[0].images[0]

        saved = self.repo.save(product)
        logger.info(f"Created product {saved.id}")
        return saved

    def update_product(self, product_id: str, data: ProductUpdate) -> Optional[Product]:
        """
        Apply a partial update; only fields present in the payload change

        Returns:
            The updated product, or None if it does not exist
        """
        product = self.repo.find_by_id(product_id)
        if not product:
            return None

        changes = data.model_dump(exclude_unset=True)
        if changes.get("description") is not None:
            changes["description"] = sanitize_html(changes["description"])

        merged = product.model_dump()
        merged.update({key: value for key, value in changes.items() if value is not None})
        updated = Product.model_validate(merged)
        return self.repo.save(updated)

    def check_stock(self, product_id: str, size: Optional[str], color: Optional[str], quantity: int) -> StockCheck:
        product = self.repo.find_by_id(product_id)
        if not product:
            return StockCheck(available=False, message="Product not found")
        return product.check_stock(size, color, quantity)

    def _apply_stock_delta(self, product_id: str, size: Optional[str], color: Optional[str], delta: int) -> None:
        product = self.repo.find_by_id(product_id)
        if not product:
            raise StockError(f"Product {product_id} not found")
        if not product.tracks_stock:
            return
        self.repo.update_stock(product_id, product.with_stock_delta(size, color, delta))

    def decrease_stock(self, product_id: str, size: Optional[str], color: Optional[str], quantity: int) -> None:
        """Raises StockError when the product is unknown or has too few units"""
        self._apply_stock_delta(product_id, size, color, -quantity)

    def increase_stock(self, product_id: str, size: Optional[str], color: Optional[str], quantity: int) -> None:
        self._apply_stock_delta(product_id, size, color, quantity)
