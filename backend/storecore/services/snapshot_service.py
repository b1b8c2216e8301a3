# Overview: Freezes a product's catalog state into sale and invoice records.

from __future__ import annotations

from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Product, SubCategory


def load_product_with_relations(product_id: int) -> Product | None:
    """Product with brand, subcategory -> category and supplier resolved."""
    return (
        db.session.query(Product)
        .options(
            joinedload(Product.brand),
            joinedload(Product.sub_category).joinedload(SubCategory.category),
            joinedload(Product.supplier),
        )
        .filter(Product.id == product_id)
        .first()
    )


def _name(entity) -> str:
    if entity is None:
        return ""
    return entity.name or ""


def build_product_snapshot(product: Product) -> dict:
    """
    Snapshot stored on Sale and InvoiceItem.

    Identity keys (product_id, category_id, sub_category_id) stay valid for
    grouping forever. Display fields keep the names as they were at sale
    time; a missing relation becomes "".
    """
    sub_category = product.sub_category
    category = sub_category.category if sub_category is not None else None

    price_range = None
    if product.price_min_cents is not None or product.price_max_cents is not None:
        price_range = {
            "min_cents": product.price_min_cents,
            "max_cents": product.price_max_cents,
        }

    return {
        "product_id": product.id,
        "category_id": category.id if category is not None else None,
        "sub_category_id": sub_category.id if sub_category is not None else None,
        "name": product.name or "",
        "brand": _name(product.brand),
        "category": _name(category),
        "sub_category": _name(sub_category),
        "supplier": _name(product.supplier),
        "purchase_price_cents": product.purchase_price_cents or 0,
        "price_range": price_range,
        "warranty": {
            "enabled": bool(product.warranty_enabled),
            "duration_months": product.warranty_duration_months or 0,
        },
    }
