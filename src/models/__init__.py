"""Database model type definitions."""

from src.models.order import (
    Order,
    OrderCreate,
    OrderLineItem,
    OrderStatus,
    OrderUpdate,
    PaymentMethod,
    PaymentStatus,
    ShippingAddress,
)
from src.models.product import Product

__all__ = [
    "Order",
    "OrderCreate",
    "OrderLineItem",
    "OrderStatus",
    "OrderUpdate",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "ShippingAddress",
]
