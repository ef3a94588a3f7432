"""Operator-driven order transitions: fulfillment, payment, removal."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from src.api.middleware.error_handler import NotFoundError
from src.core.supabase import get_supabase_client
from src.models.order import Order, OrderStatus, OrderUpdate, PaymentStatus

logger = logging.getLogger(__name__)


class OrderLifecycleService:
    """Moves orders through fulfillment and payment states.

    Fulfillment status and payment status are independent; each keeps its
    own boolean flag and timestamp consistent with the status value.
    """

    def __init__(self, supabase_client=None) -> None:
        self.client = supabase_client or get_supabase_client()

    async def _get_order(self, order_id: UUID) -> Order:
        response = (
            self.client.table("orders")
            .select("*")
            .eq("id", str(order_id))
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            raise NotFoundError("Order not found")

        return response.data

    async def _apply(self, order_id: UUID, changes: OrderUpdate) -> Order:
        changes["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = (
            self.client.table("orders")
            .update(changes)
            .eq("id", str(order_id))
            .execute()
        )

        if not response.data:
            # Row vanished between read and write
            raise NotFoundError("Order not found")

        return response.data[0]

    async def update_status(self, order_id: UUID, status: OrderStatus) -> Order:
        """Set the fulfillment status.

        Delivered raises the delivered flag and stamps delivered_at once;
        moving away from Delivered clears both.

        Args:
            order_id: The order's UUID.
            status: New fulfillment status.

        Returns:
            dict: The updated order row.

        Raises:
            NotFoundError: If the order does not exist.
        """
        order = await self._get_order(order_id)
        changes: OrderUpdate = {"status": status.value}

        if status == OrderStatus.DELIVERED:
            changes["is_delivered"] = True
            changes["delivered_at"] = (
                order.get("delivered_at") if order.get("is_delivered") and order.get("delivered_at")
                else datetime.now(timezone.utc).isoformat()
            )
        elif order.get("is_delivered") or order.get("delivered_at"):
            changes["is_delivered"] = False
            changes["delivered_at"] = None

        updated = await self._apply(order_id, changes)
        logger.info(
            "Order %s status %s -> %s",
            order.get("order_number"),
            order.get("status"),
            status.value,
        )
        return updated

    async def mark_delivered(self, order_id: UUID) -> Order:
        """Shortcut for update_status(order_id, OrderStatus.DELIVERED)."""
        return await self.update_status(order_id, OrderStatus.DELIVERED)

    async def update_payment_status(self, order_id: UUID, payment_status: PaymentStatus) -> Order:
        """Set the payment status.

        Paid raises is_paid and keeps an existing paid_at, so repeating the
        call does not move the payment timestamp. Any other value clears both.

        Raises:
            NotFoundError: If the order does not exist.
        """
        order = await self._get_order(order_id)
        changes: OrderUpdate = {"payment_status": payment_status.value}

        if payment_status == PaymentStatus.PAID:
            changes["is_paid"] = True
            changes["paid_at"] = order.get("paid_at") or datetime.now(timezone.utc).isoformat()
        else:
            changes["is_paid"] = False
            changes["paid_at"] = None

        updated = await self._apply(order_id, changes)
        logger.info(
            "Order %s payment status %s -> %s",
            order.get("order_number"),
            order.get("payment_status"),
            payment_status.value,
        )
        return updated

    async def delete_order(self, order_id: UUID) -> None:
        """Permanently remove an order.

        Stock held by the order is not returned.

        Raises:
            NotFoundError: If the order does not exist.
        """
        order = await self._get_order(order_id)
        self.client.table("orders").delete().eq("id", str(order_id)).execute()
        logger.info("Order %s (%s) deleted", order.get("order_number"), order_id)


def get_order_lifecycle_service() -> OrderLifecycleService:
    """Get order lifecycle service instance.

    Returns:
        OrderLifecycleService: Order lifecycle service instance.
    """
    return OrderLifecycleService()
