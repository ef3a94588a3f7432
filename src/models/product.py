"""Product model type definitions for the inventory columns this service reads."""

from typing import TypedDict
from uuid import UUID


class Product(TypedDict):
    """Subset of the products table row used by order placement.

    Catalog management owns the rest of the row; this service only reads
    these columns and changes stock_quantity through stored functions.
    """

    id: UUID
    name: str
    price: float
    sale_price: float | None
    on_sale: bool
    stock_quantity: int
    thumbnail: str | None
