from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .sales import reject_snapshot_change


INVOICE_STATUS_ACTIVE = "active"
INVOICE_STATUS_CANCELLED = "cancelled"
INVOICE_STATUS_RETURNED = "returned"
INVOICE_STATUS_PAID = "paid"
INVOICE_STATUSES = (
    INVOICE_STATUS_ACTIVE,
    INVOICE_STATUS_CANCELLED,
    INVOICE_STATUS_RETURNED,
    INVOICE_STATUS_PAID,
)

# Printed document titles
TITLE_INVOICE = "FACTURE"
TITLE_INVOICE_NO_TAX = "FACTURE SANS TVA"
TITLE_RECEIPT = "BON DE VENTE"


class Invoice(db.Model):
    """
    Customer-facing document generated once per sale.

    WHY: The invoice is a document artifact, not a ledger. It is immutable
    except for status/cancellation fields; finance reads the Sale table.

    Warranty state (active/expired/expiring soon) is derived on read from
    item expiration dates and is never stored here.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        db.UniqueConstraint("sale_id", name="uq_invoices_sale_id"),
        db.Index("ix_invoices_status_created", "status", "created_at"),
        db.Index("ix_invoices_cashier_created", "cashier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # INV-YYYYMMDD-NNNN, sequential per calendar day
    invoice_number = db.Column(db.String(32), nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=False)

    # RECEIPT | INVOICE, plus the printed title
    document_type = db.Column(db.String(16), nullable=False, default="INVOICE")
    document_title = db.Column(db.String(32), nullable=False, default=TITLE_INVOICE)

    # Tax-exclusive totals (subtotal == total_amount == sum of item totals)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    # Tax totals copied from the sale
    tva_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_ttc_cents = db.Column(db.Integer, nullable=False)

    # active | cancelled | returned | paid
    status = db.Column(db.String(16), nullable=False, default=INVOICE_STATUS_ACTIVE, index=True)

    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancellation_reason = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    sale = db.relationship("Sale", backref=db.backref("invoice", uselist=False))
    cashier = db.relationship("User", foreign_keys=[cashier_id])
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.position",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "sale_id": self.sale_id,
            "cashier_id": self.cashier_id,
            "customer": {"name": self.customer_name, "phone": self.customer_phone},
            "document_type": self.document_type,
            "document_title": self.document_title,
            "subtotal_cents": self.subtotal_cents,
            "total_amount_cents": self.total_amount_cents,
            "tva_amount_cents": self.tva_amount_cents,
            "total_ttc_cents": self.total_ttc_cents,
            "status": self.status,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(db.Model):
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_invoice_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_snapshot = db.Column(db.JSON, nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    tva_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tva_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_ttc_cents = db.Column(db.Integer, nullable=False)

    has_warranty = db.Column(db.Boolean, nullable=False, default=False)
    warranty_duration_months = db.Column(db.Integer, nullable=True)
    warranty_start_date = db.Column(db.DateTime, nullable=True)
    warranty_expiration_date = db.Column(db.DateTime, nullable=True)

    invoice = db.relationship("Invoice", back_populates="items")

    def warranty_snapshot(self) -> dict:
        return {
            "has_warranty": bool(self.has_warranty),
            "duration_months": self.warranty_duration_months,
            "start_date": self.warranty_start_date,
            "expiration_date": self.warranty_expiration_date,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "product_snapshot": self.product_snapshot,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "tva_rate_bps": self.tva_rate_bps,
            "tva_amount_cents": self.tva_amount_cents,
            "total_price_ttc_cents": self.total_price_ttc_cents,
            "warranty": {
                "has_warranty": bool(self.has_warranty),
                "duration_months": self.warranty_duration_months,
                "start_date": to_utc_z(self.warranty_start_date),
                "expiration_date": to_utc_z(self.warranty_expiration_date),
            },
        }


event.listen(InvoiceItem, "before_update", reject_snapshot_change)
