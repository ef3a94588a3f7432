"""Order API routes: placement, tracking and operator fulfillment."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status

from src.api.deps import CurrentUser, OperatorUser, OptionalUser, PublicStatusRateLimit
from src.api.middleware.error_handler import AuthenticationError
from src.core.config import get_settings
from src.schemas.common import MessageResponse
from src.schemas.order import (
    CreateOrderRequest,
    OrderResponse,
    OrderStatusUpdate,
    PaymentStatusUpdate,
    PublicOrderStatusResponse,
)
from src.services.notification_service import NotificationService, get_notification_service
from src.services.order_lifecycle_service import OrderLifecycleService, get_order_lifecycle_service
from src.services.order_service import OrderService, get_order_service

router = APIRouter(prefix="/orders", tags=["orders"])

OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
LifecycleServiceDep = Annotated[OrderLifecycleService, Depends(get_order_lifecycle_service)]
NotifierDep = Annotated[NotificationService, Depends(get_notification_service)]


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description="Validates stock, numbers and stores the order, then reserves stock for every line.",
    responses={
        400: {"description": "Empty order, malformed item or insufficient stock"},
        401: {"description": "Authentication required (guest checkout disabled)"},
        409: {"description": "Order number or stock conflict; safe to retry"},
    },
)
async def create_order(
    data: CreateOrderRequest,
    user: OptionalUser,
    background_tasks: BackgroundTasks,
    service: OrderServiceDep,
    notifier: NotifierDep,
) -> OrderResponse:
    """Place an order for the caller, or as a guest when guest checkout is on.

    Confirmation emails are sent after the response and never affect it.

    Raises:
        AuthenticationError: 401 for anonymous callers when guest checkout is off.
    """
    if user is None and not get_settings().allow_guest_checkout:
        raise AuthenticationError("Authentication required to place an order")

    order = await service.create_order(data, user)
    background_tasks.add_task(notifier.order_placed, order)

    return OrderResponse.model_validate(order)


@router.get(
    "/myorders",
    response_model=list[OrderResponse],
    summary="List my orders",
    description="Returns the caller's orders, newest first.",
)
async def list_my_orders(user: CurrentUser, service: OrderServiceDep) -> list[OrderResponse]:
    """List the authenticated user's orders."""
    orders = await service.get_orders_for_user(user.user_id)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get(
    "/public-status/{order_number}",
    response_model=PublicOrderStatusResponse,
    summary="Track an order",
    description="Unauthenticated lookup by order number. Returns only tracking fields.",
    responses={
        404: {"description": "No order with this number"},
        429: {"description": "Too many lookups from this client"},
    },
)
async def get_public_order_status(
    order_number: str,
    _: PublicStatusRateLimit,
    service: OrderServiceDep,
) -> PublicOrderStatusResponse:
    """Return the redacted tracking view of an order."""
    order = await service.get_public_status(order_number)
    return PublicOrderStatusResponse.model_validate(order)


@router.get(
    "",
    response_model=list[OrderResponse],
    summary="List all orders",
    description="Operator view of every order, newest first.",
)
async def list_all_orders(_: OperatorUser, service: OrderServiceDep) -> list[OrderResponse]:
    """List every order (operators only)."""
    orders = await service.get_all_orders()
    return [OrderResponse.model_validate(order) for order in orders]


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
    description="Returns a single order. Accessible by the order owner and operators.",
    responses={
        403: {"description": "Not the owner and not an operator"},
        404: {"description": "Order not found"},
    },
)
async def get_order(order_id: UUID, user: CurrentUser, service: OrderServiceDep) -> OrderResponse:
    """Get a single order by ID.

    Args:
        order_id: The order's UUID.
        user: The authenticated caller.

    Returns:
        OrderResponse: The order data.
    """
    order = await service.get_order_for_viewer(order_id, user)
    return OrderResponse.model_validate(order)


@router.put(
    "/{order_id}/deliver",
    response_model=OrderResponse,
    summary="Mark order delivered",
)
async def mark_order_delivered(
    order_id: UUID,
    _: OperatorUser,
    background_tasks: BackgroundTasks,
    lifecycle: LifecycleServiceDep,
    notifier: NotifierDep,
) -> OrderResponse:
    """Mark an order delivered and notify buyer and operators."""
    order = await lifecycle.mark_delivered(order_id)
    background_tasks.add_task(notifier.order_delivered, order)

    return OrderResponse.model_validate(order)


@router.put(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
    responses={400: {"description": "Unknown status value"}},
)
async def update_order_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    _: OperatorUser,
    background_tasks: BackgroundTasks,
    lifecycle: LifecycleServiceDep,
    notifier: NotifierDep,
) -> OrderResponse:
    """Set the fulfillment status of an order."""
    order = await lifecycle.update_status(order_id, data.status)
    background_tasks.add_task(notifier.order_status_changed, order)

    return OrderResponse.model_validate(order)


@router.put(
    "/{order_id}/payment-status",
    response_model=OrderResponse,
    summary="Update payment status",
    responses={400: {"description": "Unknown payment status value"}},
)
async def update_payment_status(
    order_id: UUID,
    data: PaymentStatusUpdate,
    _: OperatorUser,
    background_tasks: BackgroundTasks,
    lifecycle: LifecycleServiceDep,
    notifier: NotifierDep,
) -> OrderResponse:
    """Set the payment status of an order."""
    order = await lifecycle.update_payment_status(order_id, data.status)
    background_tasks.add_task(notifier.payment_status_changed, order)

    return OrderResponse.model_validate(order)


@router.delete(
    "/{order_id}",
    response_model=MessageResponse,
    summary="Delete order",
)
async def delete_order(
    order_id: UUID,
    _: OperatorUser,
    lifecycle: LifecycleServiceDep,
) -> MessageResponse:
    """Permanently delete an order (operators only)."""
    await lifecycle.delete_order(order_id)
    return MessageResponse(message="Order removed")
