"""Best-effort order notifications for buyers and store operators."""

import logging
from html import escape
from typing import Any
from uuid import UUID

from src.core.config import get_settings
from src.services.email_service import EmailService
from src.services.user_service import UserService

logger = logging.getLogger(__name__)

BRAND_NAME = "Posh Choice Store"


class NotificationService:
    """Sends order emails after the order state has been committed.

    Every public method is safe to run as a background task: nothing it does
    can raise into the caller. A failed email is logged and dropped.
    """

    def __init__(
        self,
        email_service: EmailService | None = None,
        user_service: UserService | None = None,
    ) -> None:
        self.settings = get_settings()
        self.email = email_service or EmailService()
        self.users = user_service or UserService()

    async def order_placed(self, order: dict[str, Any]) -> None:
        """Send the order confirmation to the buyer and the new-order alert to operators."""
        number = order.get("order_number")
        try:
            buyer = await self._resolve_buyer(order)
            summary = self._summary_rows(order)
            items = self._items_list(order)
            address = self._address_line(order)

            if buyer["email"]:
                html = f"""
<div style="font-family: Arial, sans-serif; background: #f8f9fa; padding: 32px; color: #222;">
  <div style="max-width: 600px; margin: 0 auto; background: #fff; border-radius: 10px; padding: 32px;">
    <h2 style="color: #e67e22;">Thank you for your order, {escape(buyer["name"])}!</h2>
    <p>We have received your order <b>{escape(number)}</b> and are currently processing it.</p>
    <h3>Order Summary</h3>
    <table style="width: 100%; border-collapse: collapse;">{summary}</table>
    <h4>Items Ordered</h4>
    <ul>{items}</ul>
    <h4>Shipping Details</h4>
    <p>{address}</p>
    <p>You can track your order status on <a href="{self.settings.order_tracking_url}">our website</a>.</p>
    <p style="color: #888;">Thank you for shopping with us!<br/>{BRAND_NAME}</p>
  </div>
</div>
"""
                await self.email.send_email(
                    to=[buyer["email"]],
                    subject=f"Your Order Confirmation - {number} | {BRAND_NAME}",
                    html=html,
                    text=self._plain_text(order, f"Thank you for your order {number}."),
                )

            note = (order.get("shipping_address") or {}).get("note") or ""
            admin_html = f"""
<div style="font-family: Arial, sans-serif; padding: 32px; color: #222;">
  <h2 style="color: #e67e22;">New Order Placed</h2>
  <p>A new order has been placed on {BRAND_NAME}.</p>
  <table style="width: 100%; border-collapse: collapse;">{summary}
    <tr><td>Customer's Note:</td><td>{escape(note)}</td></tr>
  </table>
  <h4>Customer Details</h4>
  <p><b>Name:</b> {escape(buyer["name"])}<br/><b>Email:</b> {escape(buyer["email"] or "-")}</p>
  <h4>Items Ordered</h4>
  <ul>{items}</ul>
  <h4>Shipping Details</h4>
  <p>{address}</p>
</div>
"""
            await self._send_to_operators(
                subject=f"New Order Placed - {number}",
                html=admin_html,
                text=self._plain_text(order, f"New order {number} from {buyer['name']}."),
            )
        except Exception:
            logger.exception("Order placed notification failed for %s", number)

    async def order_status_changed(self, order: dict[str, Any]) -> None:
        """Tell buyer and operators that the fulfillment status changed."""
        number = order.get("order_number")
        status = order.get("status")
        try:
            buyer = await self._resolve_buyer(order)
            subject = f"Order Status Updated - {number} | {status}"

            if buyer["email"]:
                html = f"""
<h3>Hi {escape(buyer["name"])}</h3>
<p>The status of your order {escape(number)} has been updated.</p>
<p><strong>Order Number:</strong> {escape(number)}</p>
<p><strong>Current Status:</strong> {escape(status)}</p>
<p><strong>Order Total:</strong> {self._money(order.get("total_price"))}</p>
<p>If you have any questions or need assistance, feel free to reach out to us.</p>
<p>{BRAND_NAME} - <a href="{self.settings.order_tracking_url}">Track your order status here.</a></p>
"""
                await self.email.send_email(
                    to=[buyer["email"]],
                    subject=subject,
                    html=html,
                    text=f"Your order {number} is now {status}.",
                )

            admin_html = f"""
<h3>Hi {BRAND_NAME}</h3>
<p>Order {escape(number)} for {escape(buyer["name"])} has been updated.</p>
<p><strong>Current Status:</strong> {escape(status)}</p>
<p><strong>Order Total:</strong> {self._money(order.get("total_price"))}</p>
"""
            await self._send_to_operators(
                subject=subject,
                html=admin_html,
                text=f"Order {number} is now {status}.",
            )
        except Exception:
            logger.exception("Order status notification failed for %s", number)

    async def order_delivered(self, order: dict[str, Any]) -> None:
        """Tell buyer and operators that the order was delivered."""
        number = order.get("order_number")
        try:
            buyer = await self._resolve_buyer(order)
            body = f"""
<h2>Order Delivered - {escape(number)}</h2>
<p>Order for {escape(buyer["name"])} ({escape(buyer["email"] or "-")}) has been marked as <strong>Delivered</strong>.</p>
<p><strong>Order Number:</strong> {escape(number)}</p>
<p><strong>Total:</strong> {self._money(order.get("total_price"))}</p>
"""
            if buyer["email"]:
                await self.email.send_email(
                    to=[buyer["email"]],
                    subject=f"Your Order Has Been Delivered - {number}",
                    html=body,
                    text=f"Your order {number} has been delivered.",
                )

            await self._send_to_operators(
                subject=f"Order Delivered - {number}",
                html=f"<p>Hi {BRAND_NAME},</p>{body}",
                text=f"Order {number} has been delivered.",
            )
        except Exception:
            logger.exception("Order delivered notification failed for %s", number)

    async def payment_status_changed(self, order: dict[str, Any]) -> None:
        """Tell buyer and operators that the payment status changed."""
        number = order.get("order_number")
        payment_status = order.get("payment_status")
        try:
            buyer = await self._resolve_buyer(order)
            subject = f"Payment Status Updated - {number} | {payment_status}"
            body = f"""
<p>The payment status of order <strong>{escape(number)}</strong> is now <strong>{escape(payment_status)}</strong>.</p>
<p><strong>Order Total:</strong> {self._money(order.get("total_price"))}</p>
"""
            if buyer["email"]:
                await self.email.send_email(
                    to=[buyer["email"]],
                    subject=subject,
                    html=f"<h3>Hi {escape(buyer['name'])}</h3>{body}",
                    text=f"Payment for order {number}: {payment_status}.",
                )

            await self._send_to_operators(
                subject=subject,
                html=body,
                text=f"Payment for order {number}: {payment_status}.",
            )
        except Exception:
            logger.exception("Payment status notification failed for %s", number)

    async def _send_to_operators(self, subject: str, html: str, text: str) -> None:
        # First operator address is the recipient, the rest are copied
        admins = self.settings.admin_emails_list
        if not admins:
            logger.debug("No ADMIN_EMAILS configured; skipping operator email '%s'", subject)
            return

        await self.email.send_email(
            to=[admins[0]],
            cc=admins[1:] or None,
            subject=subject,
            html=html,
            text=text,
        )

    async def _resolve_buyer(self, order: dict[str, Any]) -> dict[str, Any]:
        name = None
        email = order.get("customer_email")

        user_id = order.get("user_id")
        if user_id:
            profile = await self.users.get_user(UUID(str(user_id)))
            if profile:
                name = profile.get("display_name")
                email = profile.get("email") or email

        shipping_name = (order.get("shipping_address") or {}).get("full_name")
        return {"name": name or shipping_name or "Customer", "email": email}

    def _money(self, amount: Any) -> str:
        try:
            return f"{self.settings.currency_symbol}{float(amount):,.2f}"
        except (TypeError, ValueError):
            return f"{self.settings.currency_symbol}{amount}"

    def _summary_rows(self, order: dict[str, Any]) -> str:
        rows = [
            ("Order Number", f"<b>{escape(str(order.get('order_number')))}</b>"),
            ("Status", escape(str(order.get("status")))),
            ("Total Amount", f"<b>{self._money(order.get('total_price'))}</b>"),
            ("Payment Method", escape(str(order.get("payment_method")))),
            ("Payment Status", "Paid" if order.get("is_paid") else "Not Paid"),
        ]
        return "".join(f"<tr><td>{label}:</td><td>{value}</td></tr>" for label, value in rows)

    def _items_list(self, order: dict[str, Any]) -> str:
        return "".join(
            f"<li>{escape(str(item.get('name')))} x {item.get('quantity')} ({self._money(item.get('price'))})</li>"
            for item in order.get("order_items") or []
        )

    @staticmethod
    def _address_line(order: dict[str, Any]) -> str:
        address = order.get("shipping_address") or {}
        parts = [address.get(key) for key in ("address1", "address2", "city", "state", "zip_code", "country")]
        return escape(", ".join(str(part) for part in parts if part))

    def _plain_text(self, order: dict[str, Any], headline: str) -> str:
        lines = [headline, ""]
        for item in order.get("order_items") or []:
            lines.append(f"- {item.get('name')} x {item.get('quantity')} ({self._money(item.get('price'))})")
        lines.append("")
        lines.append(f"Total: {self._money(order.get('total_price'))}")
        lines.append(f"Track your order: {self.settings.order_tracking_url}")
        return "\n".join(lines)


def get_notification_service() -> NotificationService:
    """Get notification service instance.

    Returns:
        NotificationService: Notification service instance.
    """
    return NotificationService()
