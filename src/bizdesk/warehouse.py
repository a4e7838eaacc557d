# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Warehouse service for BizDesk.

- Registering stock movements (the product stock is adjusted in the same
  store transaction as the movement insert).
- Computing the warehouse dashboard statistics: product count, low-stock
  count, products per category and the products with the largest stock.
"""

import logging
from dataclasses import dataclass

from .aggregations import count_by_key, top_n
from .db import (
    MOVEMENT_TYPES,
    DatabaseConfig,
    Movement,
    Product,
    insert_movement,
    list_products,
)

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class CategoryCount:
    name: str
    value: int


@dataclass(frozen=True)
class WarehouseStats:
    """
    Warehouse dashboard statistics.

    Attributes
    ----------
    total_products:
        Number of products.
    low_stock_count:
        Number of products whose stock is at or below their minimum stock
        (or the default minimum when a product has none).
    distribution_by_category:
        Number of products per category, in order of first appearance.
    top_products:
        Products with the largest stock, highest first. Ties keep the
        store order.
    """

    total_products: int
    low_stock_count: int
    distribution_by_category: list[CategoryCount]
    top_products: list[Product]


def register_movement(
    cfg: DatabaseConfig,
    user_id: str,
    product_id: int,
    qty: int,
    type: str,
) -> Movement:
    """
    Record a stock movement and apply it to the product stock.

    Raises
    ------
    ValueError
        If ``qty`` is not a positive integer or ``type`` is not 'in' / 'out'.
    NotFoundError
        If the product does not exist.
    """
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise ValueError(f"Movement quantity must be a positive integer, got {qty!r}.")
    if type not in MOVEMENT_TYPES:
        raise ValueError(
            f"Unsupported movement type: {type!r}. Expected one of {MOVEMENT_TYPES}."
        )

    return insert_movement(
        cfg, product_id=product_id, qty=qty, type=type, user_id=user_id
    )


def is_low_stock(product: Product, default_min_stock: int = 5) -> bool:
    """A product is low on stock when stock <= (min_stock or the default)."""
    return product.stock <= (product.min_stock or default_min_stock)


def get_warehouse_stats(
    cfg: DatabaseConfig,
    default_min_stock: int = 5,
    top: int = 10,
) -> WarehouseStats:
    """Compute the warehouse dashboard statistics from the product table."""
    products = list_products(cfg)

    low_stock_count = sum(1 for p in products if is_low_stock(p, default_min_stock))
    by_category = count_by_key(products, key=lambda p: p.category or UNCATEGORIZED)

    logger.debug(
        "Warehouse stats: %d products, %d low on stock",
        len(products),
        low_stock_count,
    )

    return WarehouseStats(
        total_products=len(products),
        low_stock_count=low_stock_count,
        distribution_by_category=[
            CategoryCount(name=name, value=count) for name, count in by_category.items()
        ],
        top_products=top_n(products, key=lambda p: p.stock, n=top),
    )
