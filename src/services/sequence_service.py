"""Durable named counters and order number formatting."""

import logging

from src.api.middleware.error_handler import TransientError
from src.core.config import get_settings
from src.core.supabase import get_supabase_client

logger = logging.getLogger(__name__)

ORDER_NUMBER_DIGITS = 9
MAX_ORDER_SEQUENCE = 10**ORDER_NUMBER_DIGITS - 1


def format_order_number(sequence_value: int, prefix: str = "POSH") -> str:
    """Render a sequence value as an order number, e.g. 123 -> POSH000000123.

    Args:
        sequence_value: Counter value, 0 through 999999999.
        prefix: Brand code placed before the digits.

    Returns:
        str: Prefix followed by exactly nine digits.

    Raises:
        ValueError: If the value is not an int or does not fit in nine digits.
    """
    if isinstance(sequence_value, bool) or not isinstance(sequence_value, int):
        raise ValueError(f"Order sequence must be an integer, got {sequence_value!r}")
    if not 0 <= sequence_value <= MAX_ORDER_SEQUENCE:
        raise ValueError(f"Order sequence {sequence_value} does not fit in {ORDER_NUMBER_DIGITS} digits")

    return f"{prefix}{sequence_value:0{ORDER_NUMBER_DIGITS}d}"


def parse_order_number(order_number: str, prefix: str = "POSH") -> int | None:
    """Recover the sequence value from an order number, or None if it is not one of ours."""
    if not order_number or not order_number.upper().startswith(prefix.upper()):
        return None

    digits = order_number[len(prefix):]
    if len(digits) != ORDER_NUMBER_DIGITS or not digits.isdigit():
        return None

    return int(digits)


class SequenceService:
    """Allocates values from named counters in the sequence_counters table.

    Every allocation is one call to the next_sequence_value stored function,
    which increments and returns in a single statement, so concurrent callers
    never observe the same value.
    """

    def __init__(self, supabase_client=None) -> None:
        self.client = supabase_client or get_supabase_client()
        self.settings = get_settings()

    async def next_value(self, sequence_name: str) -> int:
        """Increment the named counter and return its new value.

        A counter that does not exist yet starts at 0, so its first value is 1.

        Args:
            sequence_name: Counter name, e.g. "orderId".

        Returns:
            int: The freshly allocated value.

        Raises:
            TransientError: If the increment could not be persisted.
        """
        try:
            response = self.client.rpc(
                "next_sequence_value", {"sequence_name": sequence_name}
            ).execute()
        except Exception as e:
            logger.error("Sequence %s increment failed: %s", sequence_name, e)
            raise TransientError(
                "Could not allocate an order number. Please try again.",
                details=f"sequence_increment_failed: {e}",
            ) from e

        value = response.data
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict):
            value = next(iter(value.values()), None)

        if value is None:
            logger.error("Sequence %s increment returned no value", sequence_name)
            raise TransientError(
                "Could not allocate an order number. Please try again.",
                details="sequence_increment_empty",
            )

        return int(value)

    async def next_order_number(self) -> str:
        """Allocate the next order number from the configured order sequence."""
        value = await self.next_value(self.settings.order_sequence_name)
        try:
            order_number = format_order_number(value, self.settings.order_number_prefix)
        except ValueError as e:
            raise TransientError(
                "Could not allocate an order number. Please try again.",
                details=f"sequence_exhausted: {e}",
            ) from e

        logger.debug("Allocated order number %s", order_number)
        return order_number

    async def ensure_at_least(self, sequence_name: str, value: int) -> int:
        """Raise the named counter to `value` if it is lower; never lowers it.

        Returns:
            int: The counter's value afterwards.
        """
        response = self.client.rpc(
            "ensure_sequence_at_least",
            {"sequence_name": sequence_name, "p_value": value},
        ).execute()

        current = response.data
        if isinstance(current, list):
            current = current[0] if current else value
        if isinstance(current, dict):
            current = next(iter(current.values()), value)

        return int(current)
