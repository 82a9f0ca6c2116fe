"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL and provide a clean interface for data access.
"""
from app.repositories.product_repository import ProductRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.user_repository import UserRepository

__all__ = ['ProductRepository', 'OrderRepository', 'UserRepository']
