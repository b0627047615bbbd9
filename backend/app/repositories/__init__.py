"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.
"""
from app.repositories.product_repository import ProductRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.user_repository import UserRepository

__all__ = [
    'ProductRepository',
    'OrderRepository',
    'UserRepository',
]
