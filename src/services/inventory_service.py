"""Stock reads and atomic stock changes against the catalog's products table."""

import logging
from uuid import UUID

from src.core.supabase import get_supabase_client
from src.models.product import Product

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = "id, name, price, sale_price, on_sale, stock_quantity, thumbnail"


class InventoryService:
    """Inventory interaction used by order placement.

    Reads go through PostgREST; writes only through the
    decrement_product_stock / restock_product stored functions, each a single
    conditional UPDATE, so no stock change is ever a read-then-write pair here.
    """

    def __init__(self, supabase_client=None) -> None:
        self.client = supabase_client or get_supabase_client()

    async def find_many_by_ids(self, product_ids: list[UUID]) -> list[Product]:
        """Fetch all referenced products in one query.

        Args:
            product_ids: Product ids; duplicates are collapsed.

        Returns:
            list[dict]: Product rows that exist. Missing ids are simply absent.
        """
        unique_ids = list(dict.fromkeys(str(product_id) for product_id in product_ids))
        if not unique_ids:
            return []

        response = (
            self.client.table("products")
            .select(PRODUCT_COLUMNS)
            .in_("id", unique_ids)
            .execute()
        )

        return response.data or []

    async def decrement_stock(self, product_id: UUID, amount: int) -> Product | None:
        """Atomically take `amount` units from a product.

        Args:
            product_id: The product's UUID.
            amount: Units to remove (positive).

        Returns:
            dict | None: The updated product, or None when the product does not
            exist or holds fewer than `amount` units (stock is left untouched).
        """
        response = self.client.rpc(
            "decrement_product_stock",
            {"p_product_id": str(product_id), "p_amount": amount},
        ).execute()

        rows = response.data or []
        if isinstance(rows, dict):
            rows = [rows]

        if not rows:
            logger.warning("Stock decrement refused for product %s (amount %d)", product_id, amount)
            return None

        logger.info(
            "Decremented stock for product %s by %d (now %s)",
            product_id,
            amount,
            rows[0].get("stock_quantity"),
        )
        return rows[0]

    async def restock(self, product_id: UUID, amount: int) -> Product | None:
        """Return `amount` units to a product after a failed order.

        Args:
            product_id: The product's UUID.
            amount: Units to add back (positive).

        Returns:
            dict | None: The updated product, or None if it no longer exists.
        """
        response = self.client.rpc(
            "restock_product",
            {"p_product_id": str(product_id), "p_amount": amount},
        ).execute()

        rows = response.data or []
        if isinstance(rows, dict):
            rows = [rows]

        if not rows:
            logger.error("Restock failed for product %s (amount %d): product missing", product_id, amount)
            return None

        logger.info("Restocked product %s by %d", product_id, amount)
        return rows[0]
