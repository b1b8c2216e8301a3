import pytest

from storecore.errors import SnapshotImmutableError
from storecore.extensions import db
from storecore.models import Brand, Sale
from storecore.services import invoice_service, sales_service
from storecore.services.snapshot_service import build_product_snapshot, load_product_with_relations


def test_snapshot_resolves_relation_names(db_session, product, catalog):
    snapshot = build_product_snapshot(load_product_with_relations(product.id))
    assert snapshot["product_id"] == product.id
    assert snapshot["category_id"] == catalog["category"].id
    assert snapshot["sub_category_id"] == catalog["sub_category"].id
    assert snapshot["name"] == "Galaxy A15"
    assert snapshot["brand"] == "Samsung"
    assert snapshot["category"] == "Téléphones"
    assert snapshot["sub_category"] == "Smartphones"
    assert snapshot["supplier"] == "Central"
    assert snapshot["purchase_price_cents"] == 6000
    assert snapshot["price_range"] == {"min_cents": 9000, "max_cents": 12000}
    assert snapshot["warranty"] == {"enabled": True, "duration_months": 12}


def test_missing_relations_become_empty_strings(db_session, plain_product):
    snapshot = build_product_snapshot(plain_product)
    assert snapshot["brand"] == ""
    assert snapshot["category"] == ""
    assert snapshot["sub_category"] == ""
    assert snapshot["supplier"] == ""
    assert snapshot["category_id"] is None
    assert snapshot["price_range"] is None
    assert snapshot["warranty"] == {"enabled": False, "duration_months": 0}


def test_brand_rename_does_not_change_invoice_snapshot(db_session, product, cashier, catalog):
    result = sales_service.register_sale(
        product.id, 1, 10000, cashier.id,
        document_type="INVOICE", customer={"name": "Client", "phone": "0600000000"},
    )
    invoice_id = result["invoice"].id

    brand = db.session.get(Brand, catalog["brand"].id)
    brand.name = "Renamed Brand"
    db_session.commit()

    invoice = invoice_service.get_invoice(invoice_id, _manager_actor())
    assert invoice.items[0].product_snapshot["brand"] == "Samsung"
    sale = db.session.get(Sale, result["sale"].id)
    assert sale.product_snapshot["brand"] == "Samsung"


def test_reassigning_sale_snapshot_is_rejected(db_session, sale_factory, product, cashier):
    sale = sale_factory(product, cashier)
    sale.product_snapshot = {"name": "tampered"}
    with pytest.raises(SnapshotImmutableError):
        db_session.flush()
    db_session.rollback()

    assert db.session.get(Sale, sale.id).product_snapshot["name"] == "Galaxy A15"


def _manager_actor():
    from storecore.actor import Actor
    return Actor(actor_id=0, role="manager")
