# Overview: Invoice generation from a committed sale, numbering, lookup and listing.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, Integer, cast
from sqlalchemy.exc import IntegrityError

from ..actor import Actor
from ..config import get_setting
from ..errors import InvoiceError
from ..extensions import db
from ..models import Invoice, InvoiceItem, Sale
from ..models.invoices import (
    INVOICE_STATUSES,
    TITLE_INVOICE,
    TITLE_INVOICE_NO_TAX,
    TITLE_RECEIPT,
)
from ..models.sales import (
    DOCUMENT_INVOICE,
    DOCUMENT_RECEIPT,
    SALE_STATUS_ACTIVE,
)
from ..rendering import render
from ..time_utils import end_of_day, start_of_day
from ..validation import ValidationError, parse_bool, optional_int, require_id
from . import warranty_service
from .concurrency import begin_write, run_with_retry
from .query_filters import FilterSet, paginate, paginate_list, parse_pagination
from .snapshot_service import build_product_snapshot, load_product_with_relations

INVOICE_PREFIX = "INV"


# -- Numbering --

def invoice_prefix(day: datetime) -> str:
    return f"{INVOICE_PREFIX}-{day:%Y%m%d}-"


def format_invoice_number(day: datetime, sequence: int) -> str:
    return f"{invoice_prefix(day)}{sequence:04d}"


def next_invoice_number(day: datetime) -> str:
    """
    Allocate INV-YYYYMMDD-NNNN for the calendar day of `day`.

    Must run inside the transaction that inserts the invoice: the max
    sequence read here and the insert are serialized by the write lock, and
    the unique constraint on invoice_number catches anything that slips
    through on engines without it.
    """
    prefix = invoice_prefix(day)
    sequence_expr = cast(func.substr(Invoice.invoice_number, len(prefix) + 1), Integer)
    current = (
        db.session.query(func.max(sequence_expr))
        .filter(Invoice.invoice_number.like(f"{prefix}%"))
        .scalar()
    )
    return format_invoice_number(day, (current or 0) + 1)


# -- Creation --

def validate_customer(customer) -> tuple[str, str]:
    if not isinstance(customer, dict):
        raise ValidationError("customer name and phone are required")
    name = (customer.get("name") or "").strip()
    phone = (customer.get("phone") or "").strip()
    if not name or not phone:
        raise ValidationError("customer name and phone are required")
    return name, phone


def document_title(document_type: str, tva_amount_cents: int) -> str:
    if document_type == DOCUMENT_RECEIPT:
        return TITLE_RECEIPT
    return TITLE_INVOICE if tva_amount_cents > 0 else TITLE_INVOICE_NO_TAX


def _check_matches_sale(sale: Sale, **expected) -> None:
    mismatched = {
        field: {"given": value, "sale": getattr(sale, attr)}
        for field, (attr, value) in expected.items()
        if value is not None and value != getattr(sale, attr)
    }
    if mismatched:
        raise InvoiceError("Invoice data does not match the sale", details=mismatched)


def create_invoice_from_sale(
    sale_id: int,
    customer: dict,
    product_id: int | None = None,
    quantity: int | None = None,
    selling_price_cents: int | None = None,
    cashier_id: int | None = None,
    sale_date: datetime | None = None,
    *,
    document_type: str = DOCUMENT_INVOICE,
) -> Invoice:
    """
    Build the single-item invoice for a sale.

    Line values default to the sale row; when given they must agree with it.
    The warranty window starts at the sale date (defaults to the sale's
    created_at) and runs duration_months calendar months.
    """
    sale_id = require_id(sale_id, "sale_id")
    customer_name, customer_phone = validate_customer(customer)
    if document_type not in (DOCUMENT_INVOICE, DOCUMENT_RECEIPT):
        raise ValidationError("document_type must be INVOICE or RECEIPT")

    def _op():
        begin_write()

        sale = db.session.get(Sale, sale_id)
        if not sale:
            raise InvoiceError("Sale not found", code="SALE_NOT_FOUND")
        _check_matches_sale(
            sale,
            product_id=("product_id", product_id),
            quantity=("quantity", quantity),
            selling_price_cents=("selling_price_ht_cents", selling_price_cents),
            cashier_id=("cashier_id", cashier_id),
        )
        if db.session.query(Invoice.id).filter_by(sale_id=sale.id).first():
            raise InvoiceError(
                "An invoice already exists for this sale",
                code="INVOICE_ALREADY_EXISTS",
                details={"sale_id": sale.id},
            )
        if sale.status != SALE_STATUS_ACTIVE:
            raise InvoiceError(
                f"Cannot invoice a {sale.status} sale",
                code="INVALID_STATUS_TRANSITION",
            )

        product = load_product_with_relations(sale.product_id)
        if not product:
            raise InvoiceError("Product not found", code="PRODUCT_NOT_FOUND")

        issued_for = sale_date or sale.created_at
        snapshot = build_product_snapshot(product)
        warranty = warranty_service.compute_warranty_window(
            product.warranty_enabled, product.warranty_duration_months, issued_for
        )

        unit_price = sale.selling_price_ht_cents
        unit_tva = sale.tva_amount_cents or 0
        total_price = sale.quantity * unit_price
        total_tva = sale.quantity * unit_tva

        invoice = Invoice(
            invoice_number=next_invoice_number(issued_for),
            sale_id=sale.id,
            cashier_id=sale.cashier_id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            document_type=document_type,
            document_title=document_title(document_type, total_tva),
            subtotal_cents=total_price,
            total_amount_cents=total_price,
            tva_amount_cents=total_tva,
            total_ttc_cents=total_price + total_tva,
        )
        invoice.items.append(InvoiceItem(
            position=0,
            product_snapshot=snapshot,
            quantity=sale.quantity,
            unit_price_cents=unit_price,
            total_price_cents=total_price,
            tva_rate_bps=sale.tva_rate_bps or 0,
            tva_amount_cents=total_tva,
            total_price_ttc_cents=total_price + total_tva,
            has_warranty=warranty["has_warranty"],
            warranty_duration_months=warranty["duration_months"],
            warranty_start_date=warranty["start_date"],
            warranty_expiration_date=warranty["expiration_date"],
        ))
        db.session.add(invoice)
        db.session.commit()
        return invoice

    # IntegrityError: a concurrent insert took the number (or the sale); re-read and retry
    return run_with_retry(_op, retry_on=(IntegrityError,))


# -- Reads --

def serialize_invoice(invoice: Invoice, *, as_of=None, expiring_soon_days: int | None = None) -> dict:
    data = invoice.to_dict()
    summary = warranty_service.evaluate_invoice(invoice, as_of=as_of, expiring_soon_days=expiring_soon_days)
    data["warranty_status"] = summary["status"]
    data["has_warranty"] = summary["has_warranty"]
    data["has_active_warranty"] = summary["has_active_warranty"]
    data["has_expired_warranty"] = summary["has_expired_warranty"]
    data["warranty_expiring_soon"] = summary["warranty_expiring_soon"]
    for item, state in zip(data["items"], summary["items"]):
        item["warranty"].update({
            "status": state["status"],
            "is_active": state["is_active"],
            "is_expired": state["is_expired"],
            "expiring_soon": state["expiring_soon"],
            "days_remaining": state["days_remaining"],
        })
    return data


def get_invoice(invoice_id: int, actor: Actor) -> Invoice:
    """Cashiers may read only the invoices they issued."""
    invoice = db.session.get(Invoice, require_id(invoice_id, "invoice_id"))
    if not invoice:
        raise InvoiceError("Invoice not found", code="INVOICE_NOT_FOUND")
    if not actor.is_manager and invoice.cashier_id != actor.actor_id:
        raise InvoiceError("You may only view your own invoices", code="FORBIDDEN")
    return invoice


def _invoice_filters(filters: dict, actor: Actor) -> FilterSet:
    clauses = FilterSet()

    if actor.is_manager:
        cashier_id = optional_int(filters.get("cashier_id"), "cashier_id")
        if cashier_id is not None:
            clauses.add("cashier", Invoice.cashier_id == cashier_id)
    else:
        clauses.add("cashier", Invoice.cashier_id == actor.actor_id)

    text_query = (filters.get("q") or "").strip()
    if text_query:
        pattern = f"%{text_query}%"
        clauses.add_any(
            "text",
            Invoice.customer_name.ilike(pattern),
            Invoice.customer_phone.ilike(pattern),
            Invoice.invoice_number.ilike(pattern),
        )

    invoice_number = (filters.get("invoice_number") or "").strip()
    if invoice_number:
        clauses.add("invoice_number", Invoice.invoice_number.ilike(f"%{invoice_number}%"))

    status = filters.get("status")
    if status:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(INVOICE_STATUSES)}")
        clauses.add("status", Invoice.status == status)

    start = filters.get("start_date")
    end = filters.get("end_date")
    try:
        if start:
            clauses.add("created_from", Invoice.created_at >= start_of_day(start))
        if end:
            clauses.add("created_to", Invoice.created_at <= end_of_day(end))
    except ValueError:
        raise ValidationError("start_date/end_date must be ISO dates")

    return clauses


def list_invoices(filters: dict, actor: Actor, *, as_of=None) -> dict:
    """
    Search invoices with pagination.

    Warranty filters (has_warranty, warranty_status, expiring_soon days) are
    evaluated on the SQL result because warranty state is not stored;
    pagination totals then describe the filtered set.
    """
    max_limit = None if actor.is_manager else get_setting("CASHIER_MAX_PAGE_SIZE", 100)
    page, limit = parse_pagination(filters.get("page"), filters.get("limit"), max_limit=max_limit)

    has_warranty = parse_bool(filters.get("has_warranty"))
    warranty_status = filters.get("warranty_status") or None
    if warranty_status is not None and warranty_status not in warranty_service.WARRANTY_STATUSES:
        raise ValidationError("warranty_status must be one of active, expired, none")
    expiring_soon = optional_int(filters.get("expiring_soon"), "expiring_soon")

    query = _invoice_filters(filters, actor).apply(db.session.query(Invoice))
    query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())

    if has_warranty is None and warranty_status is None and expiring_soon is None:
        invoices, pagination = paginate(query, page, limit)
    else:
        matching = [
            invoice for invoice in query.all()
            if warranty_service.matches_filters(
                invoice,
                has_warranty=has_warranty,
                warranty_status=warranty_status,
                expiring_soon=expiring_soon,
                as_of=as_of,
            )
        ]
        invoices, pagination = paginate_list(matching, page, limit)

    return {
        "items": [
            serialize_invoice(invoice, as_of=as_of, expiring_soon_days=expiring_soon)
            for invoice in invoices
        ],
        "pagination": pagination,
    }


def render_invoice_document(invoice_id: int, actor: Actor) -> tuple[bytes, str, str]:
    """Hand the computed invoice to the rendering collaborator."""
    invoice = get_invoice(invoice_id, actor)
    body, content_type = render("invoice", serialize_invoice(invoice))
    return body, content_type, invoice.invoice_number

