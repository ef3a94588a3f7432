"""Email service using Resend for transactional emails."""

import asyncio
import logging
from typing import Any

import resend

from src.core.config import get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending transactional emails via Resend.

    Sends never raise: failures are logged and reported in the returned dict,
    since no caller may fail because an email did not go out.
    """

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.enabled = bool(settings.resend_api_key)
        self.from_email = settings.email_from_address
        self.timeout_seconds = settings.notification_timeout_seconds

    async def send_email(
        self,
        to: list[str],
        subject: str,
        html: str,
        text: str | None = None,
        cc: list[str] | None = None,
    ) -> dict[str, Any]:
        """Send one email, bounded by the notification timeout.

        Args:
            to: Recipient addresses.
            subject: Subject line.
            html: HTML body.
            text: Optional plain-text body.
            cc: Optional carbon-copy addresses.

        Returns:
            dict: {"success": True, "email_id": ...} or {"success": False, "error": ...}.
        """
        if not to:
            return {"success": False, "error": "no recipients"}

        if not self.enabled:
            logger.warning("Resend API key not configured; skipping email '%s' to %s", subject, to)
            return {"success": False, "error": "email disabled"}

        params: dict[str, Any] = {
            "from": self.from_email,
            "to": to,
            "subject": subject,
            "html": html,
        }
        if text:
            params["text"] = text
        if cc:
            params["cc"] = cc

        try:
            # The Resend SDK is blocking; keep it off the event loop
            response = await asyncio.wait_for(
                asyncio.to_thread(resend.Emails.send, params),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error("Email '%s' to %s timed out after %.1fs", subject, to, self.timeout_seconds)
            return {"success": False, "error": "timeout"}
        except Exception as e:
            logger.error("Failed to send email '%s' to %s: %s", subject, to, str(e))
            return {"success": False, "error": str(e)}

        email_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info("Email '%s' sent to %s, id: %s", subject, to, email_id)
        return {"success": True, "email_id": email_id}
