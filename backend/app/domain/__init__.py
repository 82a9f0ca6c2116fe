"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.
"""
from app.domain.product import Product, ProductCreate, ProductUpdate
from app.domain.order import Order, OrderCreate, OrderStatus, Address
from app.domain.user import User, UserRole

__all__ = [
    'Product', 'ProductCreate', 'ProductUpdate',
    'Order', 'OrderCreate', 'OrderStatus', 'Address',
    'User', 'UserRole',
]
