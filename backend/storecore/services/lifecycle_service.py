# Overview: Cancel/return state machine for sales and invoices, with stock restitution.

from __future__ import annotations

from ..actor import ROLE_MANAGER
from ..config import get_setting
from ..errors import LifecycleError
from ..extensions import db
from ..models import Invoice, Sale, User
from ..models.invoices import INVOICE_STATUSES
from ..time_utils import utcnow
from ..validation import ValidationError, require_id, require_reason
from .concurrency import begin_write, lock_for_update, run_with_retry
from .stock_service import adjust_stock, load_product_for_update

STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"
STATUS_RETURNED = "returned"

# Only an active record may move, and only to one of these
TERMINAL_TARGETS = (STATUS_CANCELLED, STATUS_RETURNED)

DEFAULT_REASON_MIN_LENGTH = 10


def check_transition(current: str, target: str, kind: str) -> None:
    """
    Guard one record's transition.

    kind is "INVOICE" or "SALE"; re-applying the same terminal state raises
    {kind}_ALREADY_{STATE}, every other non-active origin is illegal.
    """
    if current == STATUS_ACTIVE:
        return
    if current == target:
        raise LifecycleError(
            f"{kind.title()} is already {target}",
            code=f"{kind}_ALREADY_{target.upper()}",
        )
    raise LifecycleError(
        f"Cannot change {kind.lower()} status from {current} to {target}",
        code="INVALID_STATUS_TRANSITION",
        details={"from": current, "to": target},
    )


def _validate_request(target: str, actor_id, reason) -> tuple[int, str]:
    if target not in TERMINAL_TARGETS:
        if target in INVOICE_STATUSES:
            raise LifecycleError(
                f"Status {target} cannot be set through cancel/return",
                code="INVALID_STATUS_TRANSITION",
            )
        raise ValidationError(f"status must be one of {', '.join(TERMINAL_TARGETS)}")
    actor_id = require_id(actor_id, "actor_id")
    min_length = get_setting("CANCELLATION_REASON_MIN_LENGTH", DEFAULT_REASON_MIN_LENGTH)
    return actor_id, require_reason(reason, min_length)


def _require_manager(actor_id: int) -> User:
    actor = db.session.get(User, actor_id)
    if not actor:
        raise LifecycleError("User not found", code="USER_NOT_FOUND")
    if actor.role != ROLE_MANAGER:
        raise LifecycleError("Only managers can cancel or return sales", code="FORBIDDEN")
    return actor


def _apply(sale: Sale, invoice: Invoice | None, target: str, actor: User, reason: str) -> int:
    now = utcnow()
    for record in (sale, invoice):
        if record is None:
            continue
        record.status = target
        record.cancelled_by_user_id = actor.id
        record.cancelled_at = now
        record.cancellation_reason = reason

    product = load_product_for_update(sale.product_id)
    if not product:
        raise LifecycleError("Product not found", code="PRODUCT_NOT_FOUND")
    return adjust_stock(product, sale.quantity)


def update_invoice_status(invoice_id: int, new_status: str, actor_id: int, reason: str) -> dict:
    """
    Cancel or return an invoice; the linked sale follows in the same
    transaction and its quantity goes back to stock.
    """
    invoice_id = require_id(invoice_id, "invoice_id")
    actor_id, reason = _validate_request(new_status, actor_id, reason)

    def _op():
        begin_write()

        invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
        if not invoice:
            raise LifecycleError("Invoice not found", code="INVOICE_NOT_FOUND")
        actor = _require_manager(actor_id)

        check_transition(invoice.status, new_status, "INVOICE")

        sale = lock_for_update(db.session.query(Sale).filter_by(id=invoice.sale_id)).first()
        if not sale:
            raise LifecycleError("Sale not found", code="SALE_NOT_FOUND")
        check_transition(sale.status, new_status, "SALE")

        new_stock = _apply(sale, invoice, new_status, actor, reason)
        db.session.commit()
        return {"invoice": invoice, "sale": sale, "new_stock": new_stock}

    return run_with_retry(_op)


def transition_sale(sale_id: int, new_status: str, actor_id: int, reason: str) -> dict:
    """Sale-side entry point; drags the invoice along when one exists."""
    sale_id = require_id(sale_id, "sale_id")
    actor_id, reason = _validate_request(new_status, actor_id, reason)

    def _op():
        begin_write()

        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise LifecycleError("Sale not found", code="SALE_NOT_FOUND")
        actor = _require_manager(actor_id)

        check_transition(sale.status, new_status, "SALE")

        invoice = lock_for_update(db.session.query(Invoice).filter_by(sale_id=sale.id)).first()
        if invoice is not None:
            check_transition(invoice.status, new_status, "INVOICE")

        new_stock = _apply(sale, invoice, new_status, actor, reason)
        db.session.commit()
        return {"invoice": invoice, "sale": sale, "new_stock": new_stock}

    return run_with_retry(_op)
