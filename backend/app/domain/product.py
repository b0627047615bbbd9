"""
Product Domain Model

Represents a product in the TinyTales catalog.
This is the single source of truth for product data structure.
"""
import re
import time
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Products without an explicit display order sort after every ordered one
UNORDERED_POSITION = 999999
DEFAULT_SIZE = "One Size"
DEFAULT_COLOR = "default"


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON with the storefront"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_dict(self) -> dict:
        """Serialize with camelCase keys, ready for JSON responses"""
        return self.model_dump(mode="json", by_alias=True)


class ProductColor(CamelModel):
    """A color variant and its gallery images"""
    name: str
    images: List[str] = Field(default_factory=list)


def stock_key(size: Optional[str], color: Optional[str]) -> str:
    """Stock map key for a size/color combination"""
    return f"{size or DEFAULT_SIZE}-{color or DEFAULT_COLOR}"


def generate_product_id(name: str) -> str:
    """Slugify a product name and suffix it with the current epoch millis"""
    slug = re.sub(r"\s+", "-", name.lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return f"{slug}-{int(time.time() * 1000)}"


def normalize_colors(colors: list) -> List[dict]:
    """Accept legacy plain-string colors alongside {name, images} objects"""
    normalized = []
    for color in colors or []:
        if isinstance(color, str):
            normalized.append({"name": color, "images": []})
        elif isinstance(color, ProductColor):
            normalized.append(color.model_dump())
        else:
            normalized.append({
                "name": color.get("name"),
                "images": color.get("images") or [],
            })
    return normalized


class Product(CamelModel):
    """
    Product domain model - represents a product in our catalog

    Fields:
        id: Slug-based product ID
        name: Product name
        price: Unit price
        category: Newborn, Onesies, Sets, Sleepwear, Accessories
        description: Sanitized HTML description
        colors: Color variants with their images
        sizes: Available sizes (e.g. "0-3m")
        stock: Units per "{size}-{color}" combination
        order: Display position (optional)
        badges: Marketing badges ("New", "Popular")
        image: Main image URL
    """

    id: str = Field(..., description="Product ID")
    name: str = Field(..., description="Product name")
    price: float = Field(..., description="Unit price", ge=0)
    category: str = Field(..., description="Product category")
    description: str = Field("", description="Product description")
    colors: List[ProductColor] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    stock: Dict[str, int] = Field(default_factory=dict, description="Units per size-color key")
    order: Optional[int] = Field(None, description="Display order")
    badges: List[str] = Field(default_factory=list)
    image: str = Field("", description="Main image URL")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("colors", mode="before")
    @classmethod
    def _normalize_colors(cls, value):
        return normalize_colors(value)

    @field_validator("stock", mode="before")
    @classmethod
    def _default_stock(cls, value):
        return value or {}

    @property
    def sort_key(self):
        created = self.created_at.timestamp() if self.created_at else 0
        order = self.order if self.order is not None else UNORDERED_POSITION
        return (order, created)

    @property
    def tracks_stock(self) -> bool:
        """Products with an empty stock map are not inventory-tracked"""
        return bool(self.stock)

    @property
    def first_color(self) -> Optional[str]:
        return self.colors[0].name if self.colors else None

    def available(self, size: Optional[str], color: Optional[str]) -> int:
        return self.stock.get(stock_key(size, color), 0)

    def check_stock(self, size: Optional[str], color: Optional[str], quantity: int) -> "StockCheck":
        """Check whether `quantity` units of a size/color can be sold"""
        if not self.tracks_stock:
            return StockCheck(available=True, message="Stock not tracked")

        in_stock = self.available(size, color)
        if in_stock < quantity:
            if in_stock <= 0:
                message = f"{size or DEFAULT_SIZE} / {color or DEFAULT_COLOR} is out of stock"
            else:
                message = f"Only {in_stock} left in {size or DEFAULT_SIZE} / {color or DEFAULT_COLOR}"
            return StockCheck(available=False, message=message, in_stock=in_stock)

        return StockCheck(available=True, message="In stock", in_stock=in_stock)

    def with_stock_delta(self, size: Optional[str], color: Optional[str], delta: int) -> Dict[str, int]:
        """
        Return a new stock map with `delta` applied to one combination.

        Raises StockError when a decrease would go negative.
        """
        if not self.tracks_stock:
            return dict(self.stock)

        key = stock_key(size, color)
        current = self.stock.get(key, 0)
        if current + delta < 0:
            raise StockError(
                f"Insufficient stock for {self.name} ({key}): {current} available, {-delta} requested"
            )
        stock = dict(self.stock)
        stock[key] = current + delta
        return stock


class StockCheck(BaseModel):
    available: bool
    message: str
    in_stock: Optional[int] = None


class StockError(Exception):
    """Raised when a stock change cannot be applied"""


class ProductCreate(CamelModel):
    """Schema for creating a new product"""
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    colors: Optional[List[Union[ProductColor, str]]] = None
    sizes: Optional[List[str]] = None
    stock: Optional[Dict[str, int]] = None
    order: Optional[int] = None
    badges: Optional[List[str]] = None
    image: Optional[str] = None


class ProductUpdate(ProductCreate):
    """Schema for updating an existing product (every field optional)"""


class ProductOrder(BaseModel):
    id: str
    order: int


class ProductReorder(BaseModel):
    products: List[ProductOrder]
