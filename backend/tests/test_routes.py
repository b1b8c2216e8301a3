from storecore.extensions import db
from storecore.models import Product


def test_health(client, db_session):
    response = client.get("/api/system/health")
    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"


def test_actor_headers_required(client, db_session):
    assert client.post("/api/sales/", json={}).status_code == 401
    bad = {"X-Actor-Id": "abc", "X-Actor-Role": "cashier"}
    assert client.post("/api/sales/", json={}, headers=bad).status_code == 401
    unknown_role = {"X-Actor-Id": "1", "X-Actor-Role": "owner"}
    assert client.post("/api/sales/", json={}, headers=unknown_role).status_code == 401


def test_register_sale_and_error_envelope(client, db_session, product, cashier, headers_for):
    response = client.post(
        "/api/sales/",
        json={"product_id": product.id, "quantity": 2, "selling_price_cents": 10000, "tva_rate_bps": 2000},
        headers=headers_for(cashier),
    )
    assert response.status_code == 201
    body = response.get_json()
    assert body["new_stock"] == 3
    assert body["sale"]["selling_price_ttc_cents"] == 12000
    assert body["sale"]["cashier_id"] == cashier.id

    response = client.post(
        "/api/sales/",
        json={"product_id": product.id, "quantity": 50, "selling_price_cents": 10000},
        headers=headers_for(cashier),
    )
    assert response.status_code == 400
    assert response.get_json()["code"] == "INSUFFICIENT_STOCK"
    db_session.expire_all()
    assert db.session.get(Product, product.id).stock == 3


def test_cashier_cannot_cancel(client, db_session, product, cashier, headers_for):
    sale_id = client.post(
        "/api/sales/",
        json={"product_id": product.id, "quantity": 1, "selling_price_cents": 10000},
        headers=headers_for(cashier),
    ).get_json()["sale"]["id"]

    response = client.post(f"/api/sales/{sale_id}/cancel", json={"reason": "Wrong item scanned"},
                           headers=headers_for(cashier))
    assert response.status_code == 403
    assert response.get_json()["required_permission"] == "CANCEL_SALE"
    assert response.get_json()["error"] == "Permission denied: Cancel Sale"


def test_invoice_status_flow(client, db_session, product, cashier, manager, headers_for):
    body = client.post(
        "/api/sales/",
        json={
            "product_id": product.id, "quantity": 1, "selling_price_cents": 10000,
            "document_type": "INVOICE", "customer": {"name": "Sara", "phone": "0700000000"},
        },
        headers=headers_for(cashier),
    ).get_json()
    invoice_id = body["invoice"]["id"]
    assert body["invoice"]["invoice_number"].startswith("INV-")

    own = client.get(f"/api/invoices/{invoice_id}", headers=headers_for(cashier))
    assert own.status_code == 200
    assert own.get_json()["invoice"]["warranty_status"] == "active"

    short = client.patch(f"/api/invoices/{invoice_id}/status", json={"status": "cancelled", "reason": "oops"},
                         headers=headers_for(manager))
    assert short.status_code == 400
    assert short.get_json()["code"] == "VALIDATION_ERROR"

    ok = client.patch(f"/api/invoices/{invoice_id}/status",
                      json={"status": "cancelled", "reason": "Customer cancelled the order"},
                      headers=headers_for(manager))
    assert ok.status_code == 200
    assert ok.get_json()["new_stock"] == 5

    again = client.patch(f"/api/invoices/{invoice_id}/status",
                         json={"status": "cancelled", "reason": "Customer cancelled the order"},
                         headers=headers_for(manager))
    assert again.status_code == 409
    assert again.get_json()["code"] == "INVOICE_ALREADY_CANCELLED"


def test_finance_overview_route(client, db_session, sale_factory, product, cashier, manager, headers_for):
    sale_factory(product, cashier, quantity=2, price_ht=100, tva_amount=20, price_ttc=120, purchase_price=60)

    response = client.get("/api/finance/overview?start_date=2025-01-01&end_date=2025-01-31",
                          headers=headers_for(manager))
    assert response.status_code == 200
    assert response.get_json()["profit_cents"] == 80

    assert client.get("/api/finance/overview?start_date=2025-01-01&end_date=2025-01-31",
                      headers=headers_for(cashier)).status_code == 403
    missing = client.get("/api/finance/overview", headers=headers_for(manager))
    assert missing.status_code == 400


def test_inventory_entry_route(client, db_session, product, manager, headers_for):
    response = client.post(
        "/api/inventory/entries",
        json={"product_id": product.id, "quantity_added": 4, "purchase_price_cents": 6200},
        headers=headers_for(manager),
    )
    assert response.status_code == 201
    assert response.get_json()["new_stock"] == 9

    history = client.get("/api/inventory/entries", headers=headers_for(manager)).get_json()
    assert history["pagination"]["total"] == 1


def test_invoice_pdf_without_renderer(client, db_session, product, cashier, headers_for):
    invoice_id = client.post(
        "/api/sales/",
        json={
            "product_id": product.id, "quantity": 1, "selling_price_cents": 10000,
            "document_type": "RECEIPT", "customer": {"name": "Sara", "phone": "0700000000"},
        },
        headers=headers_for(cashier),
    ).get_json()["invoice"]["id"]

    response = client.get(f"/api/invoices/{invoice_id}/pdf", headers=headers_for(cashier))
    assert response.status_code == 501
    assert response.get_json()["code"] == "RENDERER_NOT_CONFIGURED"


def test_unexpected_failure_becomes_internal_error(client, db_session, manager, headers_for, monkeypatch):
    from storecore.services import inventory_service

    def broken(filters):
        raise RuntimeError("storage offline")

    monkeypatch.setattr(inventory_service, "get_inventory_history", broken)

    response = client.get("/api/inventory/entries", headers=headers_for(manager))
    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal server error"}
