# Overview: Stock supply entries (inventory history) and their stock/cost side effects.

from __future__ import annotations

from ..actor import ROLE_MANAGER
from ..errors import InventoryError
from ..extensions import db
from ..models import InventoryAdjustment, User
from ..time_utils import end_of_day, start_of_day
from ..validation import (
    ValidationError,
    optional_int,
    require_id,
    require_price_cents,
    require_quantity,
)
from .concurrency import begin_write, run_with_retry
from .query_filters import FilterSet, paginate, parse_pagination
from .stock_service import adjust_stock, load_product_for_update

MAX_NOTE_LENGTH = 500


def add_inventory_entry(product_id: int, quantity_added: int, purchase_price_cents: int,
                        note: str | None, manager_id: int) -> dict:
    """
    Record a supply entry: log row, stock increase and purchase price update
    (only when the price differs) in one transaction.
    """
    product_id = require_id(product_id, "product_id")
    manager_id = require_id(manager_id, "manager_id")
    quantity_added = require_quantity(quantity_added, "quantity_added")
    purchase_price_cents = require_price_cents(purchase_price_cents, "purchase_price_cents")
    note = (note or "").strip() or None
    if note is not None and len(note) > MAX_NOTE_LENGTH:
        raise ValidationError(f"note must be at most {MAX_NOTE_LENGTH} characters")

    def _op():
        begin_write()

        product = load_product_for_update(product_id)
        if not product:
            raise InventoryError("Product not found", code="PRODUCT_NOT_FOUND")

        manager = db.session.get(User, manager_id)
        if not manager:
            raise InventoryError("Manager not found", code="USER_NOT_FOUND")
        if manager.role != ROLE_MANAGER:
            raise InventoryError("Only managers can add inventory", code="FORBIDDEN")

        previous_price = product.purchase_price_cents
        log = InventoryAdjustment(
            product_id=product.id,
            manager_id=manager.id,
            quantity_added=quantity_added,
            purchase_price_cents=purchase_price_cents,
            previous_purchase_price_cents=previous_price,
            note=note,
        )
        db.session.add(log)

        new_stock = adjust_stock(product, quantity_added)
        if previous_price != purchase_price_cents:
            product.purchase_price_cents = purchase_price_cents

        db.session.commit()
        return {"log": log, "new_stock": new_stock}

    return run_with_retry(_op)


SORT_FIELDS = {
    "created_at": InventoryAdjustment.created_at,
    "quantity_added": InventoryAdjustment.quantity_added,
    "purchase_price": InventoryAdjustment.purchase_price_cents,
}


def get_inventory_history(filters: dict) -> dict:
    page, limit = parse_pagination(filters.get("page"), filters.get("limit"))

    clauses = FilterSet()
    product_id = optional_int(filters.get("product_id"), "product_id")
    if product_id is not None:
        clauses.add("product", InventoryAdjustment.product_id == product_id)
    manager_id = optional_int(filters.get("manager_id"), "manager_id")
    if manager_id is not None:
        clauses.add("manager", InventoryAdjustment.manager_id == manager_id)
    try:
        if filters.get("start_date"):
            clauses.add("created_from", InventoryAdjustment.created_at >= start_of_day(filters["start_date"]))
        if filters.get("end_date"):
            clauses.add("created_to", InventoryAdjustment.created_at <= end_of_day(filters["end_date"]))
    except ValueError:
        raise ValidationError("start_date/end_date must be ISO dates")

    sort_by = filters.get("sort_by") or "created_at"
    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"sort_by must be one of {', '.join(SORT_FIELDS)}")
    column = SORT_FIELDS[sort_by]
    order = column.asc() if filters.get("sort_order") == "asc" else column.desc()

    query = clauses.apply(db.session.query(InventoryAdjustment)).order_by(order, InventoryAdjustment.id.desc())
    entries, pagination = paginate(query, page, limit)
    return {"items": [entry.to_dict() for entry in entries], "pagination": pagination}
