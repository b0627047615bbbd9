"""
Modelos de base de datos (definición del esquema)
"""
from .user import User
from .product import Product
from .order import Order

__all__ = [
    "User",
    "Product",
    "Order",
]
