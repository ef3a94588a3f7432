#!/usr/bin/env python
"""Script to align the order number counter with existing orders.

This script:
1. Reads every order number in the orders table
2. Finds the highest sequence value among numbers carrying the configured prefix
3. Raises the order counter to that value (it is never lowered)

Run it after importing orders from another system, or after restoring the
orders table without the sequence_counters table, so the next order number
cannot collide with an existing one.

Usage:
    python scripts/sync_order_sequence.py
    python scripts/sync_order_sequence.py --dry-run

Requirements:
    - SUPABASE_URL and SUPABASE_SECRET_KEY environment variables must be set
    - The ensure_sequence_at_least function from supabase/migrations must exist
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.services.sequence_service import SequenceService, parse_order_number

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


def find_highest_sequence(order_numbers: list[str], prefix: str) -> tuple[int, int]:
    """Return (highest sequence value, count of numbers not in our format)."""
    highest = 0
    foreign = 0
    for order_number in order_numbers:
        value = parse_order_number(order_number, prefix)
        if value is None:
            foreign += 1
            continue
        highest = max(highest, value)
    return highest, foreign


def fetch_order_numbers(client) -> list[str]:
    """Page through the orders table collecting order numbers."""
    numbers: list[str] = []
    start = 0
    while True:
        response = (
            client.table("orders")
            .select("order_number")
            .range(start, start + PAGE_SIZE - 1)
            .execute()
        )
        rows = response.data or []
        numbers.extend(row["order_number"] for row in rows if row.get("order_number"))
        if len(rows) < PAGE_SIZE:
            return numbers
        start += PAGE_SIZE


async def main() -> None:
    """Main entry point for the sequence sync script."""
    parser = argparse.ArgumentParser(description="Raise the order counter above existing order numbers")
    parser.add_argument("--dry-run", action="store_true", help="Report the target value without writing")
    args = parser.parse_args()

    settings = get_settings()
    client = get_supabase_client()

    try:
        order_numbers = fetch_order_numbers(client)
        highest, foreign = find_highest_sequence(order_numbers, settings.order_number_prefix)

        logger.info("=" * 60)
        logger.info("Orders scanned: %d", len(order_numbers))
        logger.info("Numbers without prefix %s: %d", settings.order_number_prefix, foreign)
        logger.info("Highest sequence value in use: %d", highest)

        if args.dry_run:
            logger.info("Dry run; counter %s left unchanged", settings.order_sequence_name)
        else:
            current = await SequenceService(client).ensure_at_least(settings.order_sequence_name, highest)
            logger.info("Counter %s is now %d", settings.order_sequence_name, current)
        logger.info("=" * 60)

    except Exception as e:
        logger.error("Sequence sync failed: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
