"""Order placement and order reads."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from postgrest.exceptions import APIError as PostgrestAPIError

from src.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.models.order import (
    Order,
    OrderCreate,
    OrderLineItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingAddress,
)
from src.models.product import Product
from src.schemas.auth import UserContext
from src.schemas.order import CreateOrderRequest
from src.services.inventory_service import InventoryService
from src.services.sequence_service import SequenceService
from src.services.user_service import UserService

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
PUBLIC_STATUS_COLUMNS = "order_number, status, is_paid, total_price, created_at"


def normalize_product_ref(value: Any) -> UUID | None:
    """Map the accepted shapes of a product reference to a product id.

    Accepts a UUID, a UUID string, or an embedded product object carrying the
    id under "_id" or "id". Anything else yields None.
    """
    if isinstance(value, UUID):
        return value

    if isinstance(value, dict):
        value = value.get("_id", value.get("id"))
        if isinstance(value, UUID):
            return value

    if isinstance(value, str):
        try:
            return UUID(value.strip())
        except ValueError:
            return None

    return None


def unit_price(product: Product) -> float:
    """Price a buyer pays per unit right now: sale price while on sale."""
    if product.get("on_sale") and product.get("sale_price") is not None:
        return float(product["sale_price"])
    return float(product.get("price") or 0)


def _violation(index: int, message: str, error_type: str) -> dict[str, Any]:
    return {"loc": ["orderItems", str(index)], "msg": message, "type": error_type}


class OrderService:
    """Validates, numbers, persists and reserves stock for new orders."""

    def __init__(
        self,
        supabase_client=None,
        inventory_service: InventoryService | None = None,
        sequence_service: SequenceService | None = None,
        user_service: UserService | None = None,
    ) -> None:
        self.client = supabase_client or get_supabase_client()
        self.settings = get_settings()
        self.inventory = inventory_service or InventoryService(self.client)
        self.sequence = sequence_service or SequenceService(self.client)
        self.users = user_service or UserService(self.client)

    async def create_order(
        self,
        request: CreateOrderRequest,
        user: UserContext | None = None,
    ) -> Order:
        """Place an order.

        Validation runs to completion before any write: every malformed
        reference, missing product and stock shortfall is reported at once.
        Only then is an order number drawn, the order inserted, and stock
        taken line by line with the conditional decrement.

        Args:
            request: Validated request body.
            user: Buyer, or None for a guest checkout.

        Returns:
            dict: The persisted order row.

        Raises:
            ValidationError: Empty order or any invalid line item (nothing written).
            ConflictError: Order number collision persisted after retries, or
                stock was taken by a concurrent order after validation (the
                order is cancelled and its reserved stock restored).
            TransientError: Sequence or persistence failure, or a stock
                rollback that could not be completed.
        """
        if not request.order_items:
            raise ValidationError(
                "No order items",
                details=[{"loc": ["orderItems"], "msg": "No order items", "type": "empty_order"}],
            )

        products_by_id = await self._validate_items(request)
        line_items = self._snapshot_line_items(request, products_by_id)
        self._check_client_totals(request, line_items)

        now = datetime.now(timezone.utc).isoformat()
        is_card = request.payment_method == PaymentMethod.CARD
        order_data: OrderCreate = {
            "user_id": str(user.user_id) if user else None,
            "order_items": line_items,
            "shipping_address": ShippingAddress(**request.shipping_address.model_dump()),
            "payment_method": request.payment_method.value,
            "payment_result": (
                request.payment_result.model_dump(by_alias=True, exclude_none=True) if request.payment_result else {}
            ),
            "items_price": request.items_price,
            "tax_price": request.tax_price,
            "shipping_price": request.shipping_price,
            "total_price": request.total_price,
            "is_paid": is_card,
            "paid_at": now if is_card else None,
            "payment_status": (PaymentStatus.PAID if is_card else PaymentStatus.NOT_PAID).value,
            "status": (OrderStatus.PROCESSING if is_card else OrderStatus.PENDING).value,
            "bank_reference": request.bank_reference,
            "customer_email": request.customer_email or (user.email if user else None),
        }

        order = await self._insert_with_order_number(order_data)
        logger.info(
            "Order %s created (id %s, %d items, buyer %s)",
            order["order_number"],
            order["id"],
            len(line_items),
            order_data["user_id"] or "guest",
        )

        await self._reserve_stock(order, line_items)
        return order

    async def _validate_items(self, request: CreateOrderRequest) -> dict[str, Product]:
        violations: list[dict[str, Any]] = []
        resolved: list[tuple[int, int, UUID]] = []

        for index, item in enumerate(request.order_items):
            product_id = normalize_product_ref(item.product_id)
            if product_id is None:
                violations.append(
                    _violation(
                        index,
                        f"Invalid product ID format for item: {item.name or 'Unknown Product'}. ID: {item.product_id}",
                        "invalid_product_ref",
                    )
                )
                continue
            resolved.append((index, item.quantity, product_id))

        products = await self.inventory.find_many_by_ids([product_id for _, _, product_id in resolved])
        products_by_id = {str(product["id"]): product for product in products}

        # Repeated lines for one product draw from the same stock
        requested: dict[str, int] = {}
        for index, quantity, product_id in resolved:
            key = str(product_id)
            product = products_by_id.get(key)
            if product is None:
                violations.append(_violation(index, f"Product with ID {key} not found.", "product_not_found"))
                continue

            requested[key] = requested.get(key, 0) + quantity
            available = int(product.get("stock_quantity") or 0)
            if requested[key] > available:
                violations.append(
                    _violation(
                        index,
                        f"Not enough stock for {product['name']}. Available: {available}, Requested: {requested[key]}.",
                        "insufficient_stock",
                    )
                )

        if violations:
            logger.warning("Order validation failed with %d problems: %s", len(violations), [v["msg"] for v in violations])
            raise ValidationError("Order validation failed", details=violations)

        return products_by_id

    @staticmethod
    def _snapshot_line_items(
        request: CreateOrderRequest,
        products_by_id: dict[str, Product],
    ) -> list[OrderLineItem]:
        line_items = []
        for item in request.order_items:
            product = products_by_id[str(normalize_product_ref(item.product_id))]
            line_items.append(
                {
                    "product_id": str(product["id"]),
                    "name": product["name"],
                    "quantity": item.quantity,
                    "price": unit_price(product),
                    "image": product.get("thumbnail"),
                }
            )
        return line_items

    @staticmethod
    def _check_client_totals(request: CreateOrderRequest, line_items: list[OrderLineItem]) -> None:
        # Client totals are stored as sent; mismatches are only surfaced in logs
        computed_items = round(sum(line["price"] * line["quantity"] for line in line_items), 2)
        if abs(computed_items - request.items_price) > 0.01:
            logger.warning(
                "Client itemsPrice %.2f differs from catalog total %.2f",
                request.items_price,
                computed_items,
            )

        expected_total = round(request.items_price + request.tax_price + request.shipping_price, 2)
        if abs(expected_total - request.total_price) > 0.01:
            logger.warning(
                "Client totalPrice %.2f differs from items + tax + shipping %.2f",
                request.total_price,
                expected_total,
            )

    async def _insert_with_order_number(self, order_data: OrderCreate) -> Order:
        attempts = self.settings.order_number_max_attempts

        for attempt in range(1, attempts + 1):
            order_number = await self.sequence.next_order_number()
            try:
                response = (
                    self.client.table("orders")
                    .insert({**order_data, "order_number": order_number})
                    .execute()
                )
            except PostgrestAPIError as e:
                if e.code == UNIQUE_VIOLATION:
                    # Consumed number is skipped; gaps are fine, duplicates are not
                    logger.warning(
                        "Order number %s already taken (attempt %d/%d)",
                        order_number,
                        attempt,
                        attempts,
                    )
                    continue
                raise TransientError(details=f"order_insert_failed: {e.message}") from e
            except Exception as e:
                raise TransientError(details=f"order_insert_failed: {e}") from e

            if not response.data:
                raise TransientError(details="order_insert_returned_no_row")
            return response.data[0]

        raise ConflictError(
            "Failed to create order due to duplicate order number. Please try again.",
            details="order_number_conflict",
        )

    async def _reserve_stock(self, order: Order, line_items: list[OrderLineItem]) -> None:
        reserved: list[tuple[UUID, int]] = []
        refused: list[tuple[int, OrderLineItem]] = []
        errored: list[tuple[int, OrderLineItem]] = []

        for index, line in enumerate(line_items):
            product_id = UUID(line["product_id"])
            try:
                updated = await self.inventory.decrement_stock(product_id, line["quantity"])
            except Exception:
                logger.exception("Stock decrement errored for product %s on order %s", product_id, order["order_number"])
                errored.append((index, line))
                continue

            if updated is None:
                refused.append((index, line))
            else:
                reserved.append((product_id, line["quantity"]))

        if refused or errored:
            await self._compensate(order, reserved, refused, errored)

    async def _compensate(
        self,
        order: Order,
        reserved: list[tuple[UUID, int]],
        refused: list[tuple[int, OrderLineItem]],
        errored: list[tuple[int, OrderLineItem]],
    ) -> None:
        """Undo a partially reserved order: give stock back, cancel, report.

        Raises:
            TransientError: A decrement errored with an unknown outcome, or
                the restock or cancellation itself failed. The order needs
                manual reconciliation.
            ConflictError: Stock was refused and the order was cleanly
                cancelled with all reserved stock restored.
        """
        logger.error(
            "Stock reservation failed for order %s: %d refused, %d errored of %d lines; cancelling",
            order["order_number"],
            len(refused),
            len(errored),
            len(refused) + len(errored) + len(reserved),
        )

        unrestored: list[str] = []
        for product_id, quantity in reserved:
            try:
                await self.inventory.restock(product_id, quantity)
            except Exception:
                logger.exception(
                    "Restock of %d units for product %s failed while cancelling order %s",
                    quantity,
                    product_id,
                    order["order_number"],
                )
                unrestored.append(str(product_id))

        cancelled = True
        try:
            self.client.table("orders").update(
                {
                    "status": OrderStatus.CANCELLED.value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            ).eq("id", str(order["id"])).execute()
        except Exception:
            logger.exception("Could not cancel order %s after stock conflict", order["order_number"])
            cancelled = False

        if unrestored or not cancelled or errored:
            problems = []
            if not cancelled:
                problems.append("order not cancelled")
            if unrestored:
                problems.append(f"restock failed for {', '.join(unrestored)}")
            if errored:
                problems.append(f"decrement outcome unknown for {', '.join(line['product_id'] for _, line in errored)}")
            logger.error(
                "Order %s (id %s) needs manual reconciliation: %s",
                order["order_number"],
                order["id"],
                "; ".join(problems),
            )
            raise TransientError(
                details=f"order_compensation_incomplete: order {order['order_number']} (id {order['id']}): "
                + "; ".join(problems)
            )

        try:
            current = await self.inventory.find_many_by_ids([UUID(line["product_id"]) for _, line in refused])
        except Exception:
            logger.exception("Could not re-read stock for order %s", order["order_number"])
            current = []
        current_by_id = {str(product["id"]): product for product in current}

        details = []
        for index, line in refused:
            product = current_by_id.get(line["product_id"])
            if product is None:
                message = f"Product with ID {line['product_id']} not found."
            else:
                message = (
                    f"Not enough stock for {line['name']}. "
                    f"Available: {product.get('stock_quantity', 0)}, Requested: {line['quantity']}."
                )
            details.append(_violation(index, message, "insufficient_stock"))

        raise ConflictError(
            "Stock changed while placing the order. No items were reserved; please review and try again.",
            details=details,
        )

    async def get_order(self, order_id: UUID) -> Order | None:
        """Get an order by internal ID.

        Args:
            order_id: The order's UUID.

        Returns:
            dict | None: The order data or None if not found.
        """
        response = (
            self.client.table("orders")
            .select("*")
            .eq("id", str(order_id))
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def get_order_for_viewer(self, order_id: UUID, user: UserContext) -> Order:
        """Get an order the caller owns, or any order if the caller is an operator.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the caller is neither owner nor operator.
        """
        order = await self.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        if order.get("user_id") and str(order["user_id"]) == str(user.user_id):
            return order

        if await self.users.is_operator(user.user_id):
            return order

        raise AuthorizationError("Not authorized to view this order")

    async def get_orders_for_user(self, user_id: UUID) -> list[Order]:
        """Get all orders placed by a user, newest first."""
        response = (
            self.client.table("orders")
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .execute()
        )

        return response.data or []

    async def get_all_orders(self) -> list[Order]:
        """Get every order, newest first (operator view)."""
        response = (
            self.client.table("orders")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )

        return response.data or []

    async def get_public_status(self, order_number: str) -> dict[str, Any]:
        """Look up the redacted tracking view of an order by its number.

        Only the tracking columns are selected, so address, items, buyer and
        gateway metadata never leave the database on this path.

        Raises:
            NotFoundError: If no order carries this number.
        """
        normalized = order_number.strip().upper()
        response = (
            self.client.table("orders")
            .select(PUBLIC_STATUS_COLUMNS)
            .eq("order_number", normalized)
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            raise NotFoundError("Order not found with this number.")

        return response.data


def get_order_service() -> OrderService:
    """Get order service instance.

    Returns:
        OrderService: Order service instance.
    """
    return OrderService()
