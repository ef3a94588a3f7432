"""Order model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import Any, TypedDict
from uuid import UUID


class OrderStatus(str, Enum):
    """Fulfillment status of an order."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class PaymentStatus(str, Enum):
    """Payment status, independent of the fulfillment status."""

    PAID = "Paid"
    PROCESSING = "Processing"
    NOT_PAID = "Not Paid"


class PaymentMethod(str, Enum):
    """Payment methods accepted at checkout."""

    CASH_ON_DELIVERY = "Cash on Delivery"
    BANK_TRANSFER = "Bank Transfer"
    CARD = "Credit/Debit Card"
    WHATSAPP = "WhatsApp"


class OrderLineItem(TypedDict):
    """Snapshot of one ordered product.

    Stored in the order_items JSONB array. Name, price and image are copied
    from the catalog when the order is placed and never re-read.
    """

    product_id: str
    name: str
    quantity: int
    price: float
    image: str | None


class ShippingAddress(TypedDict, total=False):
    """Delivery address stored in the shipping_address JSONB column."""

    full_name: str
    address1: str
    address2: str | None
    city: str
    state: str
    zip_code: str | None
    country: str
    note: str | None


class Order(TypedDict):
    """Order table row representation."""

    id: UUID
    user_id: UUID | None
    order_number: str
    order_items: list[OrderLineItem]
    shipping_address: ShippingAddress
    payment_method: str
    payment_result: dict[str, Any]
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    is_paid: bool
    paid_at: datetime | None
    is_delivered: bool
    delivered_at: datetime | None
    status: str
    payment_status: str
    bank_reference: str | None
    customer_email: str | None
    created_at: datetime
    updated_at: datetime


class OrderCreate(TypedDict, total=False):
    """Data inserted when an order is placed."""

    user_id: str | None
    order_number: str
    order_items: list[OrderLineItem]
    shipping_address: ShippingAddress
    payment_method: str
    payment_result: dict[str, Any]
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    is_paid: bool
    paid_at: str | None
    status: str
    payment_status: str
    bank_reference: str | None
    customer_email: str | None


class OrderUpdate(TypedDict, total=False):
    """Fields the lifecycle manager may change after creation."""

    status: str
    payment_status: str
    is_paid: bool
    paid_at: str | None
    is_delivered: bool
    delivered_at: str | None
    updated_at: str
