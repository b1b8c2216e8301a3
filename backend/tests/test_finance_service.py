from datetime import datetime

import pytest

from storecore.errors import CommerceError
from storecore.models import Category, Product, SubCategory
from storecore.services import finance_service, sales_service
from storecore.time_utils import utcnow


def _ledger_example(sale_factory, product, cashier):
    sale_factory(product, cashier, quantity=2, price_ht=100, tva_amount=20, price_ttc=120,
                 tva_rate_bps=2000, purchase_price=60, created_at=datetime(2025, 1, 10, 9, 0))
    sale_factory(product, cashier, quantity=1, price_ht=50, tva_amount=10, price_ttc=60,
                 tva_rate_bps=2000, purchase_price=30, created_at=datetime(2025, 1, 20, 23, 59, 59))


def test_overview_is_deterministic(db_session, sale_factory, product, cashier):
    _ledger_example(sale_factory, product, cashier)

    overview = finance_service.get_financial_overview("2025-01-01", "2025-01-31")
    assert overview["revenue_ht_cents"] == 250
    assert overview["revenue_ttc_cents"] == 300
    assert overview["tva_collected_cents"] == 50
    assert overview["cost_ht_cents"] == 150
    assert overview["profit_cents"] == 100
    assert overview["profit_margin"] == 40.0
    assert overview["sales_count"] == 2
    assert overview["units_sold"] == 3

    again = finance_service.get_financial_overview("2025-01-01", "2025-01-31")
    assert again == overview


def test_empty_range_is_all_zero(db_session):
    overview = finance_service.get_financial_overview("2030-01-01", "2030-01-31")
    for key in ("revenue_ht_cents", "revenue_ttc_cents", "tva_collected_cents",
                "cost_ht_cents", "profit_cents", "sales_count"):
        assert overview[key] == 0
    assert overview["profit_margin"] == 0


def test_range_boundaries_are_whole_days(db_session, sale_factory, product, cashier):
    _ledger_example(sale_factory, product, cashier)
    assert finance_service.get_financial_overview("2025-01-20", "2025-01-20")["revenue_ht_cents"] == 50
    assert finance_service.get_financial_overview("2025-01-10", "2025-01-10")["revenue_ht_cents"] == 200
    assert finance_service.get_financial_overview("2025-01-11", "2025-01-19")["sales_count"] == 0


def test_only_active_sales_count(db_session, sale_factory, product, cashier):
    _ledger_example(sale_factory, product, cashier)
    sale_factory(product, cashier, quantity=5, price_ht=1000, status="cancelled")
    sale_factory(product, cashier, quantity=5, price_ht=1000, status="returned")
    assert finance_service.get_financial_overview("2025-01-01", "2025-01-31")["revenue_ht_cents"] == 250


def test_missing_tax_fields_default_to_zero(db_session, sale_factory, product, cashier):
    sale_factory(product, cashier, quantity=2, price_ht=100, purchase_price=40)
    overview = finance_service.get_financial_overview("2025-01-01", "2025-01-31")
    assert overview["tva_collected_cents"] == 0
    assert overview["revenue_ttc_cents"] == 200
    assert overview["profit_cents"] == 120


def test_reads_stored_tax_not_rate(db_session, sale_factory, product, cashier):
    # Rate says 20% but the stored amount is what counts
    sale_factory(product, cashier, quantity=1, price_ht=100, tva_rate_bps=2000, tva_amount=7, price_ttc=107)
    assert finance_service.get_financial_overview("2025-01-01", "2025-01-31")["tva_collected_cents"] == 7


def test_cost_uses_frozen_purchase_price(db_session, product, cashier):
    sales_service.register_sale(product.id, 1, 10000, cashier.id)
    db_session.get(Product, product.id).purchase_price_cents = 9999
    db_session.commit()

    today = utcnow().date().isoformat()
    assert finance_service.get_financial_overview(today, today)["cost_ht_cents"] == 6000


def test_invoices_never_feed_finance(db_session, product, cashier):
    sales_service.register_sale(product.id, 1, 10000, cashier.id, document_type="INVOICE",
                                customer={"name": "A", "phone": "1"})
    today = utcnow().date().isoformat()
    overview = finance_service.get_financial_overview(today, today)
    assert overview["sales_count"] == 1
    assert overview["revenue_ht_cents"] == 10000


def test_range_validation(db_session):
    with pytest.raises(CommerceError) as exc:
        finance_service.get_financial_overview(None, "2025-01-31")
    assert exc.value.code == "VALIDATION_ERROR"
    with pytest.raises(CommerceError):
        finance_service.get_financial_overview("2025-02-01", "2025-01-01")
    with pytest.raises(CommerceError):
        finance_service.get_financial_overview("not-a-date", "2025-01-01")


def test_tva_monitoring_breakdown(db_session, sale_factory, product, cashier):
    sale_factory(product, cashier, quantity=2, price_ht=100, tva_rate_bps=2000, tva_amount=20, price_ttc=120)
    sale_factory(product, cashier, quantity=1, price_ht=100, tva_rate_bps=1000, tva_amount=10, price_ttc=110)
    sale_factory(product, cashier, quantity=3, price_ht=100)

    monitoring = finance_service.get_tva_monitoring("2025-01-01", "2025-01-31")
    assert monitoring["total_tva_collected_cents"] == 50
    assert monitoring["total_sales"] == 3
    assert monitoring["sales_with_tva"] == 2
    assert monitoring["sales_without_tva"] == 1
    assert [b["tva_rate_bps"] for b in monitoring["breakdown_by_rate"]] == [0, 1000, 2000]
    assert [b["tva_rate_percent"] for b in monitoring["breakdown_by_rate"]] == [0, 10, 20]
    assert monitoring["breakdown_by_rate"][2]["tva_collected_cents"] == 40


def test_series_grouping_threshold(db_session, sale_factory, product, cashier):
    sale_factory(product, cashier, quantity=1, price_ht=100, purchase_price=60, created_at=datetime(2025, 1, 5))
    sale_factory(product, cashier, quantity=1, price_ht=200, purchase_price=60, created_at=datetime(2025, 1, 5))
    sale_factory(product, cashier, quantity=2, price_ht=100, purchase_price=60, created_at=datetime(2025, 2, 10))

    daily = finance_service.get_revenue_profit_series("2025-01-01", "2025-03-01")
    assert daily["group_by"] == "day"
    assert daily["points"][0] == {"period": "2025-01-05", "revenue_ht_cents": 300,
                                  "cost_ht_cents": 120, "profit_cents": 180}

    monthly = finance_service.get_sales_volume_series("2025-01-01", "2025-03-05")
    assert monthly["group_by"] == "month"
    assert monthly["points"] == [
        {"period": "2025-01", "sales_count": 2, "units_sold": 2},
        {"period": "2025-02", "sales_count": 1, "units_sold": 2},
    ]

    tva = finance_service.get_tva_series("2025-01-01", "2025-01-31")
    assert tva["points"][0]["tva_collected_cents"] == 0


def test_revenue_by_category_groups_by_identity(db_session, sale_factory, product, plain_product, cashier, catalog):
    sale_factory(product, cashier, quantity=1, price_ht=1000, purchase_price=600)
    # Category renamed later: same id, one bucket
    category = db_session.get(Category, catalog["category"].id)
    category.name = "Mobiles"
    db_session.commit()
    sale_factory(db_session.get(Product, product.id), cashier, quantity=2, price_ht=1000, purchase_price=600)
    sale_factory(plain_product, cashier, quantity=1, price_ht=500, purchase_price=300)

    breakdown = finance_service.get_revenue_by_category("2025-01-01", "2025-01-31")
    assert len(breakdown) == 2
    phones, unknown = breakdown
    assert phones["category_id"] == catalog["category"].id
    assert phones["revenue_ht_cents"] == 3000
    assert phones["units_sold"] == 3
    assert phones["profit_cents"] == 1200
    assert unknown["category_id"] is None
    assert unknown["category_name"] == "Catégorie inconnue"
    assert phones["share_percent"] + unknown["share_percent"] == pytest.approx(100.0)


def test_cashier_statistics(db_session, sale_factory, product, cashier, other_cashier):
    sale_factory(product, cashier, quantity=1, price_ht=100, tva_amount=20, price_ttc=120)
    sale_factory(product, cashier, quantity=1, price_ht=300)
    sale_factory(product, cashier, quantity=1, price_ht=999, status="cancelled")
    sale_factory(product, other_cashier, quantity=1, price_ht=5000)

    stats = finance_service.get_cashier_statistics(cashier.id, "2025-01-01", "2025-01-31")
    assert stats["total_sales"] == 3
    assert stats["by_status"]["active"]["sales_count"] == 2
    assert stats["by_status"]["active"]["amount_ht_cents"] == 400
    assert stats["by_status"]["active"]["amount_ttc_cents"] == 420
    assert stats["by_status"]["active"]["tva_cents"] == 20
    assert stats["by_status"]["cancelled"]["amount_ht_cents"] == 999
    assert stats["by_status"]["returned"]["sales_count"] == 0
    assert stats["average_sale_ht_cents"] == 200

    with pytest.raises(CommerceError) as exc:
        finance_service.get_cashier_statistics(31337, "2025-01-01", "2025-01-31")
    assert exc.value.code == "USER_NOT_FOUND"
