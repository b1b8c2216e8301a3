"""
Sale registration: one product line, stock decrement and optional document.

WHY: The stock check and the decrement must live in one write transaction,
otherwise two registers selling the last unit can both succeed. The
document (invoice or receipt) is generated after the sale commits and can
fail without undoing the sale.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..actor import Actor
from ..config import get_setting
from ..errors import CommerceError, SaleError
from ..extensions import db
from ..models import Sale, User
from ..models.sales import DOCUMENT_NONE, DOCUMENT_TYPES, SALE_STATUSES
from ..time_utils import end_of_day, start_of_day
from ..validation import (
    ValidationError,
    optional_int,
    require_id,
    require_price_cents,
    require_quantity,
    require_tva_rate_bps,
)
from . import invoice_service, lifecycle_service
from .concurrency import begin_write, run_with_retry
from .query_filters import FilterSet, paginate, parse_pagination
from .snapshot_service import build_product_snapshot
from .stock_service import adjust_stock, is_low_stock, load_product_for_update


def unit_tva_cents(price_ht_cents: int, tva_rate_bps: int) -> int:
    """Per-unit tax, rounded half up to the cent."""
    return (price_ht_cents * tva_rate_bps + 5_000) // 10_000


def _validate_document(document_type: str, customer) -> str:
    document_type = (document_type or DOCUMENT_NONE).upper()
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(f"document_type must be one of {', '.join(DOCUMENT_TYPES)}")
    if document_type != DOCUMENT_NONE:
        # Invoices and receipts are addressed to a customer
        invoice_service.validate_customer(customer)
    return document_type


def register_sale(
    product_id: int,
    quantity: int,
    selling_price_cents: int,
    cashier_id: int,
    *,
    tva_rate_bps: int = 0,
    document_type: str = DOCUMENT_NONE,
    customer: dict | None = None,
) -> dict:
    """
    Register a sale and decrement stock atomically.

    Returns {sale, new_stock, is_low_stock, invoice, invoice_error}.
    is_low_stock is informational only.
    """
    product_id = require_id(product_id, "product_id")
    cashier_id = require_id(cashier_id, "cashier_id")
    quantity = require_quantity(quantity)
    price_ht = require_price_cents(selling_price_cents)
    tva_rate_bps = require_tva_rate_bps(tva_rate_bps)
    document_type = _validate_document(document_type, customer)

    tva_unit = unit_tva_cents(price_ht, tva_rate_bps)

    def _op():
        begin_write()

        product = load_product_for_update(product_id)
        if not product:
            raise SaleError("Product not found", code="PRODUCT_NOT_FOUND")

        cashier = db.session.get(User, cashier_id)
        if not cashier:
            raise SaleError("Cashier not found", code="USER_NOT_FOUND")
        if cashier.is_suspended:
            raise SaleError("Account suspended", code="ACCOUNT_SUSPENDED")

        if product.stock < quantity:
            raise SaleError(
                "Insufficient stock",
                code="INSUFFICIENT_STOCK",
                details={"product_id": product.id, "available": product.stock, "requested": quantity},
            )

        sale = Sale(
            product_id=product.id,
            cashier_id=cashier.id,
            quantity=quantity,
            selling_price_ht_cents=price_ht,
            tva_rate_bps=tva_rate_bps,
            tva_amount_cents=tva_unit,
            selling_price_ttc_cents=price_ht + tva_unit,
            sale_document_type=document_type,
            product_snapshot=build_product_snapshot(product),
        )
        db.session.add(sale)

        new_stock = adjust_stock(product, -quantity)
        low = is_low_stock(product)

        db.session.commit()
        return sale, new_stock, low

    sale, new_stock, low = run_with_retry(_op)

    invoice = None
    invoice_error = None
    if document_type != DOCUMENT_NONE:
        try:
            invoice = invoice_service.create_invoice_from_sale(
                sale.id, customer, document_type=document_type
            )
        except CommerceError as exc:
            current_app.logger.warning(
                "Sale %s committed but document creation failed: %s (%s)", sale.id, exc.message, exc.code
            )
            invoice_error = {"code": exc.code, "message": exc.message}
        except SQLAlchemyError as exc:
            current_app.logger.exception("Sale %s committed but document creation failed", sale.id)
            invoice_error = {"code": "INVOICE_CREATION_FAILED", "message": str(exc)}

    return {
        "sale": sale,
        "new_stock": new_stock,
        "is_low_stock": low,
        "invoice": invoice,
        "invoice_error": invoice_error,
    }


def get_sale(sale_id: int, actor: Actor) -> Sale:
    sale = db.session.get(Sale, require_id(sale_id, "sale_id"))
    if not sale:
        raise SaleError("Sale not found", code="SALE_NOT_FOUND")
    if not actor.is_manager and sale.cashier_id != actor.actor_id:
        raise SaleError("You may only view your own sales", code="FORBIDDEN")
    return sale


SORT_FIELDS = {
    "created_at": Sale.created_at,
    "quantity": Sale.quantity,
    "selling_price": Sale.selling_price_ht_cents,
}


def list_sales(filters: dict, actor: Actor) -> dict:
    """Sales listing; cashiers are scoped to their own sales."""
    max_limit = None if actor.is_manager else get_setting("CASHIER_MAX_PAGE_SIZE", 100)
    page, limit = parse_pagination(filters.get("page"), filters.get("limit"), max_limit=max_limit)

    clauses = FilterSet()
    if actor.is_manager:
        cashier_id = optional_int(filters.get("cashier_id"), "cashier_id")
        if cashier_id is not None:
            clauses.add("cashier", Sale.cashier_id == cashier_id)
    else:
        clauses.add("cashier", Sale.cashier_id == actor.actor_id)

    product_id = optional_int(filters.get("product_id"), "product_id")
    if product_id is not None:
        clauses.add("product", Sale.product_id == product_id)

    status = filters.get("status")
    if status:
        if status not in SALE_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(SALE_STATUSES)}")
        clauses.add("status", Sale.status == status)

    try:
        if filters.get("start_date"):
            clauses.add("created_from", Sale.created_at >= start_of_day(filters["start_date"]))
        if filters.get("end_date"):
            clauses.add("created_to", Sale.created_at <= end_of_day(filters["end_date"]))
    except ValueError:
        raise ValidationError("start_date/end_date must be ISO dates")

    sort_by = filters.get("sort_by") or "created_at"
    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"sort_by must be one of {', '.join(SORT_FIELDS)}")
    column = SORT_FIELDS[sort_by]
    order = column.asc() if filters.get("sort_order") == "asc" else column.desc()

    query = clauses.apply(db.session.query(Sale)).order_by(order, Sale.id.desc())
    sales, pagination = paginate(query, page, limit)
    return {"items": [sale.to_dict() for sale in sales], "pagination": pagination}


def list_cashier_sales(cashier_id: int, filters: dict) -> dict:
    """Own-sales view used by the point of sale."""
    return list_sales(filters, Actor(actor_id=cashier_id, role="cashier"))


def cancel_sale(sale_id: int, actor_id: int, reason: str) -> dict:
    return lifecycle_service.transition_sale(sale_id, "cancelled", actor_id, reason)


def return_sale(sale_id: int, actor_id: int, reason: str) -> dict:
    return lifecycle_service.transition_sale(sale_id, "returned", actor_id, reason)

