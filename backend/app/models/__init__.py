"""
Modelos de base de datos
"""
from .order import Order
from .product import Product
from .user import User

__all__ = [
    "Order",
    "Product",
    "User",
]
