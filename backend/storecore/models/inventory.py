from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class InventoryAdjustment(db.Model):
    """
    Append-only stock supply log.

    Each row raised Product.stock by quantity_added in the same transaction
    that inserted it. previous_purchase_price_cents records the cost the
    entry replaced (equal to purchase_price_cents when unchanged).
    """
    __tablename__ = "inventory_adjustments"
    __table_args__ = (
        db.CheckConstraint("quantity_added >= 1", name="ck_inventory_adjustments_quantity_positive"),
        db.CheckConstraint("purchase_price_cents > 0", name="ck_inventory_adjustments_price_positive"),
        db.Index("ix_inventory_adjustments_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    quantity_added = db.Column(db.Integer, nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False)
    previous_purchase_price_cents = db.Column(db.Integer, nullable=True)

    note = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product")
    manager = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "manager_id": self.manager_id,
            "quantity_added": self.quantity_added,
            "purchase_price_cents": self.purchase_price_cents,
            "previous_purchase_price_cents": self.previous_purchase_price_cents,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
