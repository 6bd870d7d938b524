"""SQLAlchemy models for orders and the product catalog"""

from .base import Base
from .product import Product
from .order import Order, OrderItem, OrderStatus

__all__ = [
    "Base",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
]
