import pytest

from storecore.errors import CommerceError
from storecore.extensions import db
from storecore.models import Invoice, Product, Sale
from storecore.services import lifecycle_service, sales_service

REASON = "Customer changed their mind"
CUSTOMER = {"name": "Amine", "phone": "0611223344"}


def _stock(product_id):
    return db.session.get(Product, product_id).stock


@pytest.fixture
def invoiced_sale(db_session, product, cashier):
    result = sales_service.register_sale(
        product.id, 2, 10000, cashier.id, document_type="INVOICE", customer=CUSTOMER
    )
    return result["sale"].id, result["invoice"].id


def test_cancel_flips_both_and_restores_stock(db_session, invoiced_sale, product, manager):
    sale_id, invoice_id = invoiced_sale
    assert _stock(product.id) == 3

    result = lifecycle_service.update_invoice_status(invoice_id, "cancelled", manager.id, REASON)

    assert result["new_stock"] == 5
    invoice = db.session.get(Invoice, invoice_id)
    sale = db.session.get(Sale, sale_id)
    for record in (invoice, sale):
        assert record.status == "cancelled"
        assert record.cancelled_by_user_id == manager.id
        assert record.cancelled_at is not None
        assert record.cancellation_reason == REASON
    assert _stock(product.id) == 5


def test_cancel_twice_fails_second_time(db_session, invoiced_sale, product, manager):
    _, invoice_id = invoiced_sale
    lifecycle_service.update_invoice_status(invoice_id, "cancelled", manager.id, REASON)

    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "cancelled", manager.id, REASON)
    assert exc.value.code == "INVOICE_ALREADY_CANCELLED"
    assert exc.value.status == 409
    assert _stock(product.id) == 5


def test_return_after_cancel_is_illegal(db_session, invoiced_sale, manager):
    _, invoice_id = invoiced_sale
    lifecycle_service.update_invoice_status(invoice_id, "cancelled", manager.id, REASON)

    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "returned", manager.id, REASON)
    assert exc.value.code == "INVALID_STATUS_TRANSITION"


def test_return_twice(db_session, invoiced_sale, manager):
    _, invoice_id = invoiced_sale
    lifecycle_service.update_invoice_status(invoice_id, "returned", manager.id, REASON)
    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "returned", manager.id, REASON)
    assert exc.value.code == "INVOICE_ALREADY_RETURNED"


@pytest.mark.parametrize("reason", [None, "", "   ", "too short", "  short    "])
def test_reason_must_have_ten_characters(db_session, invoiced_sale, product, manager, reason):
    sale_id, invoice_id = invoiced_sale
    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "cancelled", manager.id, reason)
    assert exc.value.code == "VALIDATION_ERROR"
    assert db.session.get(Invoice, invoice_id).status == "active"
    assert db.session.get(Sale, sale_id).status == "active"
    assert _stock(product.id) == 3


def test_only_managers_can_transition(db_session, invoiced_sale, product, cashier):
    _, invoice_id = invoiced_sale
    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "cancelled", cashier.id, REASON)
    assert exc.value.code == "FORBIDDEN"
    assert _stock(product.id) == 3

    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "cancelled", 987654, REASON)
    assert exc.value.code == "USER_NOT_FOUND"


def test_paid_is_not_reachable_or_leavable(db_session, invoiced_sale, manager):
    _, invoice_id = invoiced_sale
    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "paid", manager.id, REASON)
    assert exc.value.code == "INVALID_STATUS_TRANSITION"

    invoice = db.session.get(Invoice, invoice_id)
    invoice.status = "paid"
    db.session.commit()
    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "cancelled", manager.id, REASON)
    assert exc.value.code == "INVALID_STATUS_TRANSITION"


def test_unknown_status_and_invoice(db_session, invoiced_sale, manager):
    _, invoice_id = invoiced_sale
    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(invoice_id, "archived", manager.id, REASON)
    assert exc.value.code == "VALIDATION_ERROR"

    with pytest.raises(CommerceError) as exc:
        lifecycle_service.update_invoice_status(555555, "cancelled", manager.id, REASON)
    assert exc.value.code == "INVOICE_NOT_FOUND"


def test_sale_side_return_drags_invoice(db_session, invoiced_sale, product, manager):
    sale_id, invoice_id = invoiced_sale
    result = sales_service.return_sale(sale_id, manager.id, REASON)

    assert result["sale"].status == "returned"
    assert result["invoice"].id == invoice_id
    assert db.session.get(Invoice, invoice_id).status == "returned"
    assert _stock(product.id) == 5

    with pytest.raises(CommerceError) as exc:
        sales_service.return_sale(sale_id, manager.id, REASON)
    assert exc.value.code == "SALE_ALREADY_RETURNED"
    with pytest.raises(CommerceError) as exc:
        sales_service.cancel_sale(sale_id, manager.id, REASON)
    assert exc.value.code == "INVALID_STATUS_TRANSITION"


def test_sale_without_invoice_can_be_cancelled(db_session, product, cashier, manager):
    sale = sales_service.register_sale(product.id, 1, 10000, cashier.id)["sale"]
    result = sales_service.cancel_sale(sale.id, manager.id, REASON)
    assert result["invoice"] is None
    assert result["new_stock"] == 5
    with pytest.raises(CommerceError) as exc:
        sales_service.cancel_sale(sale.id, manager.id, REASON)
    assert exc.value.code == "SALE_ALREADY_CANCELLED"


def test_missing_sale(db_session, manager):
    with pytest.raises(CommerceError) as exc:
        sales_service.cancel_sale(4242, manager.id, REASON)
    assert exc.value.code == "SALE_NOT_FOUND"


def test_transition_guard_table():
    lifecycle_service.check_transition("active", "cancelled", "INVOICE")
    lifecycle_service.check_transition("active", "returned", "SALE")
    with pytest.raises(CommerceError) as exc:
        lifecycle_service.check_transition("returned", "cancelled", "INVOICE")
    assert exc.value.code == "INVALID_STATUS_TRANSITION"
    with pytest.raises(CommerceError) as exc:
        lifecycle_service.check_transition("cancelled", "cancelled", "SALE")
    assert exc.value.code == "SALE_ALREADY_CANCELLED"


def test_failure_during_stock_restore_keeps_both_active(db_session, invoiced_sale, product, manager, monkeypatch):
    sale_id, invoice_id = invoiced_sale

    def flush_then_fail(product, delta):
        db.session.flush()
        raise RuntimeError("stock write failed")

    monkeypatch.setattr(lifecycle_service, "adjust_stock", flush_then_fail)

    with pytest.raises(RuntimeError):
        lifecycle_service.update_invoice_status(invoice_id, "cancelled", manager.id, REASON)

    invoice = db.session.get(Invoice, invoice_id)
    sale = db.session.get(Sale, sale_id)
    for record in (invoice, sale):
        assert record.status == "active"
        assert record.cancelled_by_user_id is None
        assert record.cancellation_reason is None
    assert _stock(product.id) == 3
