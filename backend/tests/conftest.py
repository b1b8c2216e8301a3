"""
Pytest fixtures for storecore backend tests.

Provides the application on in-memory SQLite, per-test table wipe, catalog
and staff fixtures, a direct sale factory and actor headers for routes.
"""

from datetime import datetime

import pytest
from storecore import create_app
from storecore.extensions import db
from storecore.models import Brand, Category, SubCategory, Supplier, Product, User, Sale
from storecore.services.snapshot_service import build_product_snapshot


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def manager(db_session):
    user = User(name="Manager", email="manager@test.local", role="manager")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def cashier(db_session):
    user = User(name="Cashier", email="cashier@test.local", role="cashier")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def other_cashier(db_session):
    user = User(name="Other Cashier", email="other@test.local", role="cashier")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def catalog(db_session):
    """Brand, category, subcategory and supplier for products."""
    brand = Brand(name="Samsung")
    category = Category(name="Téléphones")
    sub_category = SubCategory(name="Smartphones", category=category)
    supplier = Supplier(name="Central", phone="0500000000")
    db_session.add_all([brand, category, sub_category, supplier])
    db_session.commit()
    return {"brand": brand, "category": category, "sub_category": sub_category, "supplier": supplier}


@pytest.fixture(scope='function')
def product(db_session, catalog):
    """Phone with a 12 month warranty, 5 in stock."""
    item = Product(
        name="Galaxy A15",
        brand_id=catalog["brand"].id,
        sub_category_id=catalog["sub_category"].id,
        supplier_id=catalog["supplier"].id,
        purchase_price_cents=6000,
        stock=5,
        low_stock_threshold=3,
        warranty_enabled=True,
        warranty_duration_months=12,
        price_min_cents=9000,
        price_max_cents=12000,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def plain_product(db_session):
    """Product without brand, subcategory or warranty."""
    item = Product(name="USB Cable", purchase_price_cents=300, stock=50, low_stock_threshold=3)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def sale_factory(db_session):
    """Insert ledger rows directly, bypassing registration (for reporting tests)."""
    def _make(product, cashier, *, quantity=1, price_ht=100, tva_amount=None, price_ttc=None,
              tva_rate_bps=0, purchase_price=None, status="active", created_at=None):
        snapshot = build_product_snapshot(product)
        if purchase_price is not None:
            snapshot["purchase_price_cents"] = purchase_price
        sale = Sale(
            product_id=product.id,
            cashier_id=cashier.id,
            quantity=quantity,
            selling_price_ht_cents=price_ht,
            tva_rate_bps=tva_rate_bps,
            tva_amount_cents=tva_amount,
            selling_price_ttc_cents=price_ttc,
            status=status,
            product_snapshot=snapshot,
            created_at=created_at or datetime(2025, 1, 15, 10, 0, 0),
        )
        db_session.add(sale)
        db_session.commit()
        return sale
    return _make


def actor_headers(user):
    return {"X-Actor-Id": str(user.id), "X-Actor-Role": user.role}


@pytest.fixture(scope='function')
def headers_for():
    return actor_headers
