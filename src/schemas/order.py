"""Order Pydantic schemas for API request/response models.

The HTTP surface speaks camelCase JSON; attribute names stay snake_case so
rows from the orders table validate directly into the response models.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.order import OrderStatus, PaymentMethod, PaymentStatus


class CamelModel(BaseModel):
    """Base model accepting either camelCase or snake_case keys, emitting camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ShippingAddressSchema(CamelModel):
    """Delivery address captured at checkout."""

    full_name: str = Field(min_length=1, max_length=200, description="Recipient name")
    address1: str = Field(min_length=1, max_length=300, description="Street address")
    address2: str | None = Field(default=None, max_length=300, description="Apartment, suite, landmark")
    city: str = Field(min_length=1, max_length=100, description="City")
    state: str = Field(min_length=1, max_length=100, description="State")
    zip_code: str | None = Field(default=None, max_length=20, description="Postal code")
    country: str = Field(min_length=1, max_length=100, description="Country")
    note: str | None = Field(default=None, max_length=1000, description="Buyer note for the store")


class PaymentResultSchema(CamelModel):
    """Opaque payment gateway metadata; unknown keys are kept."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    status: str | None = None
    update_time: str | None = None
    email_address: str | None = None


class OrderItemRequest(CamelModel):
    """A requested line item.

    productId may arrive as a bare id or as an embedded product object;
    it is normalized by the order service, not here, so every malformed
    reference can be reported together with stock problems.
    """

    product_id: Any = Field(description="Product id, or an object carrying _id/id")
    quantity: int = Field(ge=1, description="Quantity ordered")
    name: str | None = Field(default=None, description="Display name sent by the client (used in error messages only)")


class CreateOrderRequest(CamelModel):
    """Body of POST /orders."""

    order_items: list[OrderItemRequest] = Field(default_factory=list, description="Requested line items")
    shipping_address: ShippingAddressSchema = Field(description="Delivery address")
    payment_method: PaymentMethod = Field(description="Payment method")
    payment_result: PaymentResultSchema | None = Field(default=None, description="Gateway metadata")
    items_price: float = Field(ge=0, description="Client-computed items subtotal")
    tax_price: float = Field(default=0.0, ge=0, description="Client-computed tax")
    shipping_price: float = Field(default=0.0, ge=0, description="Client-computed shipping")
    total_price: float = Field(ge=0, description="Client-computed grand total")
    bank_reference: str | None = Field(default=None, max_length=100, description="Bank transfer reference")
    customer_email: str | None = Field(
        default=None,
        max_length=255,
        description="Contact email; required for guest checkout notifications",
    )


class OrderLineItemSchema(CamelModel):
    """A persisted line-item snapshot."""

    product_id: str = Field(description="Product id at order time")
    name: str = Field(description="Product name at order time")
    quantity: int = Field(ge=1, description="Quantity ordered")
    price: float = Field(ge=0, description="Unit price at order time")
    image: str | None = Field(default=None, description="Product image at order time")


class OrderResponse(CamelModel):
    """Full order representation for owners and operators."""

    id: UUID = Field(description="Internal order id")
    user_id: UUID | None = Field(default=None, description="Buyer id; null for guest orders")
    order_number: str = Field(description="Human-readable order number")
    order_items: list[OrderLineItemSchema] = Field(description="Line-item snapshots")
    shipping_address: ShippingAddressSchema = Field(description="Delivery address")
    payment_method: PaymentMethod = Field(description="Payment method")
    payment_result: dict[str, Any] = Field(default_factory=dict, description="Gateway metadata, stored with camelCase keys")
    items_price: float = Field(description="Items subtotal")
    tax_price: float = Field(default=0.0, description="Tax")
    shipping_price: float = Field(default=0.0, description="Shipping")
    total_price: float = Field(description="Grand total")
    is_paid: bool = Field(description="Whether payment has been received")
    paid_at: datetime | None = Field(default=None, description="Payment timestamp")
    is_delivered: bool = Field(description="Whether the order was delivered")
    delivered_at: datetime | None = Field(default=None, description="Delivery timestamp")
    status: OrderStatus = Field(description="Fulfillment status")
    payment_status: PaymentStatus = Field(description="Payment status")
    bank_reference: str | None = Field(default=None, description="Bank transfer reference")
    customer_email: str | None = Field(default=None, description="Contact email")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class OrderStatusUpdate(CamelModel):
    """Body of PUT /orders/{id}/status."""

    status: OrderStatus = Field(description="New fulfillment status")


class PaymentStatusUpdate(CamelModel):
    """Body of PUT /orders/{id}/payment-status."""

    status: PaymentStatus = Field(description="New payment status")


class PublicOrderStatusResponse(CamelModel):
    """Redacted order view for unauthenticated tracking.

    Deliberately limited to these five fields: no address, items, buyer
    or gateway metadata.
    """

    order_number: str = Field(description="Human-readable order number")
    status: OrderStatus = Field(description="Fulfillment status")
    is_paid: bool = Field(description="Whether payment has been received")
    total_price: float = Field(description="Grand total")
    created_at: datetime = Field(description="Creation timestamp")
