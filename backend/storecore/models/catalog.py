from __future__ import annotations

from ..config import get_setting
from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Brand(db.Model):
    __tablename__ = "brands"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class SubCategory(db.Model):
    __tablename__ = "sub_categories"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    category = db.relationship("Category", backref=db.backref("sub_categories", lazy=True))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "category_id": self.category_id}


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone}


class Product(db.Model):
    """
    Catalog product with its live stock counter.

    Catalog CRUD happens elsewhere; this core only mutates `stock` (sales,
    cancellations, supply entries) and `purchase_price_cents` (supply entries).
    Historical records never join back to this row for display or money
    fields, they carry a frozen snapshot instead.

    CONCURRENCY: version_id makes a stale stock write fail with
    StaleDataError instead of silently losing an update.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True, index=True)
    sub_category_id = db.Column(db.Integer, db.ForeignKey("sub_categories.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    # Current purchase (cost) price, cents
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(
        db.Integer, nullable=False, default=lambda: get_setting("LOW_STOCK_THRESHOLD_DEFAULT", 3)
    )

    warranty_enabled = db.Column(db.Boolean, nullable=False, default=False)
    warranty_duration_months = db.Column(db.Integer, nullable=True)

    # Suggested selling range (enforced upstream, recorded in snapshots)
    price_min_cents = db.Column(db.Integer, nullable=True)
    price_max_cents = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    brand = db.relationship("Brand")
    sub_category = db.relationship("SubCategory")
    supplier = db.relationship("Supplier")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand_id": self.brand_id,
            "sub_category_id": self.sub_category_id,
            "supplier_id": self.supplier_id,
            "purchase_price_cents": self.purchase_price_cents,
            "stock": self.stock,
            "low_stock_threshold": self.low_stock_threshold,
            "warranty": {
                "enabled": bool(self.warranty_enabled),
                "duration_months": self.warranty_duration_months,
            },
            "price_range": {
                "min_cents": self.price_min_cents,
                "max_cents": self.price_max_cents,
            },
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
