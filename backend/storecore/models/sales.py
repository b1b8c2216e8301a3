from __future__ import annotations

from sqlalchemy import event, inspect

from ..errors import SnapshotImmutableError
from ..extensions import db
from ..time_utils import to_utc_z, utcnow


SALE_STATUS_ACTIVE = "active"
SALE_STATUS_CANCELLED = "cancelled"
SALE_STATUS_RETURNED = "returned"
SALE_STATUSES = (SALE_STATUS_ACTIVE, SALE_STATUS_CANCELLED, SALE_STATUS_RETURNED)

DOCUMENT_NONE = "NONE"
DOCUMENT_RECEIPT = "RECEIPT"
DOCUMENT_INVOICE = "INVOICE"
DOCUMENT_TYPES = (DOCUMENT_NONE, DOCUMENT_RECEIPT, DOCUMENT_INVOICE)


class Sale(db.Model):
    """
    One sold line: a product, a quantity and the price it went out at.

    WHY: The sale row is the financial ledger. Money fields (HT price, tax
    per unit, TTC price) are written once at registration and read back
    as-is by reporting; tax is never recomputed from the rate.

    product_snapshot freezes the catalog data at sale time. Identity keys
    (product_id, category_id, sub_category_id) are safe for grouping,
    display names may legitimately be stale.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
        db.CheckConstraint("selling_price_ht_cents > 0", name="ck_sales_price_positive"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        db.Index("ix_sales_cashier_created", "cashier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)

    # Unit prices in cents; tax fields are per unit and nullable for legacy rows
    selling_price_ht_cents = db.Column(db.Integer, nullable=False)
    tva_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    tva_amount_cents = db.Column(db.Integer, nullable=True)
    selling_price_ttc_cents = db.Column(db.Integer, nullable=True)

    sale_document_type = db.Column(db.String(16), nullable=False, default=DOCUMENT_NONE)

    # active | cancelled | returned
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_ACTIVE, index=True)

    product_snapshot = db.Column(db.JSON, nullable=False)

    # Cancellation / return audit trail
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancellation_reason = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product")
    cashier = db.relationship("User", foreign_keys=[cashier_id])
    cancelled_by = db.relationship("User", foreign_keys=[cancelled_by_user_id])
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total_ht_cents(self) -> int:
        return self.quantity * self.selling_price_ht_cents

    @property
    def total_ttc_cents(self) -> int:
        unit = self.selling_price_ttc_cents
        if unit is None:
            unit = self.selling_price_ht_cents
        return self.quantity * unit

    @property
    def total_tva_cents(self) -> int:
        return self.quantity * (self.tva_amount_cents or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "cashier_id": self.cashier_id,
            "quantity": self.quantity,
            "selling_price_ht_cents": self.selling_price_ht_cents,
            "tva_rate_bps": self.tva_rate_bps,
            "tva_amount_cents": self.tva_amount_cents,
            "selling_price_ttc_cents": self.selling_price_ttc_cents,
            "total_ht_cents": self.total_ht_cents,
            "total_tva_cents": self.total_tva_cents,
            "total_ttc_cents": self.total_ttc_cents,
            "sale_document_type": self.sale_document_type,
            "status": self.status,
            "product_snapshot": self.product_snapshot,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


def reject_snapshot_change(mapper, connection, target):
    """Frozen snapshots are written on insert only."""
    if inspect(target).attrs.product_snapshot.history.has_changes():
        raise SnapshotImmutableError(
            f"product_snapshot of {type(target).__name__} {target.id} is immutable"
        )


event.listen(Sale, "before_update", reject_snapshot_change)
