# Overview: Stock counter mutations applied inside an open write transaction.

from __future__ import annotations

from ..errors import CommerceError
from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update


def load_product_for_update(product_id: int) -> Product | None:
    return lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()


def adjust_stock(product: Product, delta: int) -> int:
    """
    Apply a signed quantity delta and return the new stock.

    Caller owns the transaction. A result below zero is refused even when
    the caller already checked availability.
    """
    new_stock = (product.stock or 0) + delta
    if new_stock < 0:
        raise CommerceError(
            "Insufficient stock",
            code="INSUFFICIENT_STOCK",
            details={
                "product_id": product.id,
                "available": product.stock,
                "requested": -delta,
            },
        )
    product.stock = new_stock
    return new_stock


def is_low_stock(product: Product) -> bool:
    return product.stock <= (product.low_stock_threshold or 0)
