"""
Domain Layer - Business Entities

This layer contains Pydantic models representing storefront entities.
These models enforce type safety and validation across the application
and exchange camelCase JSON with the storefront.
"""
from app.domain.product import Product, ProductColor
from app.domain.order import Order, OrderItem, OrderAddress, LocationData
from app.domain.user import User, CartItem

__all__ = [
    'Product',
    'ProductColor',
    'Order',
    'OrderItem',
    'OrderAddress',
    'LocationData',
    'User',
    'CartItem',
]
