# Overview: Financial reporting computed from the Sale ledger (never from invoices).

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, func

from ..config import get_setting
from ..errors import ReportError
from ..extensions import db
from ..models import Sale, User
from ..models.sales import SALE_STATUS_ACTIVE, SALE_STATUSES
from ..rendering import render
from ..time_utils import end_of_day, start_of_day, to_utc_z
from ..validation import require_id

UNKNOWN_CATEGORY = "Catégorie inconnue"
DEFAULT_DAILY_GROUPING_MAX_DAYS = 60


# -- Shared expressions --
# Missing money fields count as 0; tax is read as stored, never derived from the rate.

def _unit_cost():
    return func.coalesce(Sale.product_snapshot["purchase_price_cents"].as_integer(), 0)


def _revenue_ht():
    return func.coalesce(func.sum(Sale.quantity * Sale.selling_price_ht_cents), 0)


def _revenue_ttc():
    unit_ttc = func.coalesce(Sale.selling_price_ttc_cents, Sale.selling_price_ht_cents)
    return func.coalesce(func.sum(Sale.quantity * unit_ttc), 0)


def _tva_collected():
    return func.coalesce(func.sum(Sale.quantity * func.coalesce(Sale.tva_amount_cents, 0)), 0)


def _cost_ht():
    return func.coalesce(func.sum(Sale.quantity * _unit_cost()), 0)


def profit_margin(profit_cents: int, revenue_ht_cents: int) -> float:
    if revenue_ht_cents <= 0:
        return 0.0
    return round(profit_cents / revenue_ht_cents * 100, 2)


def resolve_range(start, end) -> tuple[datetime, datetime]:
    """[start of start day, end of end day], both required."""
    if not start or not end:
        raise ReportError("start_date and end_date are required", code="VALIDATION_ERROR")
    try:
        start_dt = start_of_day(start)
        end_dt = end_of_day(end)
    except ValueError:
        raise ReportError("start_date/end_date must be ISO dates", code="VALIDATION_ERROR")
    if start_dt > end_dt:
        raise ReportError("start_date must be on or before end_date", code="VALIDATION_ERROR")
    return start_dt, end_dt


def _in_range(query, start_dt: datetime, end_dt: datetime, *, active_only: bool = True):
    query = query.filter(Sale.created_at >= start_dt, Sale.created_at <= end_dt)
    if active_only:
        query = query.filter(Sale.status == SALE_STATUS_ACTIVE)
    return query


def _period(start_dt: datetime, end_dt: datetime) -> dict:
    return {"start": to_utc_z(start_dt), "end": to_utc_z(end_dt)}


# -- Overview --

def get_financial_overview(start, end) -> dict:
    """
    Revenue, tax, cost and profit over active sales in the range.

    profit = revenue_ht - cost_ht (tax excluded); margin is a percentage
    rounded to 2 decimals, 0 when there is no revenue.
    """
    start_dt, end_dt = resolve_range(start, end)

    row = _in_range(
        db.session.query(
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.quantity), 0).label("units_sold"),
            _revenue_ht().label("revenue_ht"),
            _revenue_ttc().label("revenue_ttc"),
            _tva_collected().label("tva"),
            _cost_ht().label("cost"),
        ),
        start_dt,
        end_dt,
    ).one()

    revenue_ht = int(row.revenue_ht)
    cost = int(row.cost)
    profit = revenue_ht - cost

    return {
        "period": _period(start_dt, end_dt),
        "sales_count": int(row.sales_count),
        "units_sold": int(row.units_sold),
        "revenue_ht_cents": revenue_ht,
        "revenue_ttc_cents": int(row.revenue_ttc),
        "tva_collected_cents": int(row.tva),
        "cost_ht_cents": cost,
        "profit_cents": profit,
        "profit_margin": profit_margin(profit, revenue_ht),
    }


def get_tva_monitoring(start, end) -> dict:
    """Collected tax totals plus a per-rate breakdown, ascending by rate."""
    start_dt, end_dt = resolve_range(start, end)

    with_tva = case((func.coalesce(Sale.tva_amount_cents, 0) > 0, 1), else_=0)
    rows = _in_range(
        db.session.query(
            Sale.tva_rate_bps.label("rate"),
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(with_tva), 0).label("with_tva"),
            _revenue_ht().label("revenue_ht"),
            _tva_collected().label("tva"),
        ),
        start_dt,
        end_dt,
    ).group_by(Sale.tva_rate_bps).order_by(Sale.tva_rate_bps.asc()).all()

    breakdown = []
    for row in rows:
        rate = int(row.rate or 0)
        breakdown.append({
            "tva_rate_bps": rate,
            "tva_rate_percent": rate / 100,
            "sales_count": int(row.sales_count),
            "sales_with_tva": int(row.with_tva),
            "revenue_ht_cents": int(row.revenue_ht),
            "tva_collected_cents": int(row.tva),
        })

    total_sales = sum(entry["sales_count"] for entry in breakdown)
    sales_with_tva = sum(entry["sales_with_tva"] for entry in breakdown)
    return {
        "period": _period(start_dt, end_dt),
        "total_tva_collected_cents": sum(entry["tva_collected_cents"] for entry in breakdown),
        "sales_with_tva": sales_with_tva,
        "sales_without_tva": total_sales - sales_with_tva,
        "total_sales": total_sales,
        "breakdown_by_rate": breakdown,
    }


# -- Time series --

def choose_grouping(start_dt: datetime, end_dt: datetime) -> str:
    """Daily points up to the configured span (60 days), monthly beyond."""
    max_days = get_setting("FINANCE_DAILY_GROUPING_MAX_DAYS", DEFAULT_DAILY_GROUPING_MAX_DAYS)
    return "day" if (end_dt.date() - start_dt.date()).days <= max_days else "month"


def _period_expr(column, group_by: str):
    dialect = db.session.get_bind().dialect.name
    if dialect == "postgresql":
        return func.to_char(column, "YYYY-MM-DD" if group_by == "day" else "YYYY-MM")
    if dialect in ("mysql", "mariadb"):
        return func.date_format(column, "%Y-%m-%d" if group_by == "day" else "%Y-%m")
    return func.strftime("%Y-%m-%d" if group_by == "day" else "%Y-%m", column)


def _series_rows(start_dt: datetime, end_dt: datetime, group_by: str):
    period = _period_expr(Sale.created_at, group_by).label("period")
    return _in_range(
        db.session.query(
            period,
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.quantity), 0).label("units_sold"),
            _revenue_ht().label("revenue_ht"),
            _revenue_ttc().label("revenue_ttc"),
            _tva_collected().label("tva"),
            _cost_ht().label("cost"),
        ),
        start_dt,
        end_dt,
    ).group_by(period).order_by(period.asc()).all()


def get_revenue_profit_series(start, end) -> dict:
    start_dt, end_dt = resolve_range(start, end)
    group_by = choose_grouping(start_dt, end_dt)
    points = []
    for row in _series_rows(start_dt, end_dt, group_by):
        revenue = int(row.revenue_ht)
        cost = int(row.cost)
        points.append({
            "period": row.period,
            "revenue_ht_cents": revenue,
            "cost_ht_cents": cost,
            "profit_cents": revenue - cost,
        })
    return {"group_by": group_by, "points": points}


def get_tva_series(start, end) -> dict:
    start_dt, end_dt = resolve_range(start, end)
    group_by = choose_grouping(start_dt, end_dt)
    points = [
        {
            "period": row.period,
            "tva_collected_cents": int(row.tva),
            "revenue_ht_cents": int(row.revenue_ht),
            "revenue_ttc_cents": int(row.revenue_ttc),
        }
        for row in _series_rows(start_dt, end_dt, group_by)
    ]
    return {"group_by": group_by, "points": points}


def get_sales_volume_series(start, end) -> dict:
    start_dt, end_dt = resolve_range(start, end)
    group_by = choose_grouping(start_dt, end_dt)
    points = [
        {"period": row.period, "sales_count": int(row.sales_count), "units_sold": int(row.units_sold)}
        for row in _series_rows(start_dt, end_dt, group_by)
    ]
    return {"group_by": group_by, "points": points}


def get_finance_charts(start, end) -> dict:
    revenue = get_revenue_profit_series(start, end)
    return {
        "group_by": revenue["group_by"],
        "revenue_profit": revenue["points"],
        "tva": get_tva_series(start, end)["points"],
        "sales_volume": get_sales_volume_series(start, end)["points"],
        "revenue_by_category": get_revenue_by_category(start, end),
    }


# -- Breakdowns --

def get_revenue_by_category(start, end) -> list[dict]:
    """
    Grouped by the snapshot category_id (identity key). The display name is
    the snapshot's category name; renamed categories keep one bucket.
    """
    start_dt, end_dt = resolve_range(start, end)

    category_id = Sale.product_snapshot["category_id"].as_integer().label("category_id")
    category_name = func.max(Sale.product_snapshot["category"].as_string())
    rows = _in_range(
        db.session.query(
            category_id,
            category_name.label("category_name"),
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.quantity), 0).label("units_sold"),
            _revenue_ht().label("revenue_ht"),
            _cost_ht().label("cost"),
        ),
        start_dt,
        end_dt,
    ).group_by(category_id).all()

    total_revenue = sum(int(row.revenue_ht) for row in rows)
    result = []
    for row in rows:
        revenue = int(row.revenue_ht)
        cost = int(row.cost)
        result.append({
            "category_id": row.category_id,
            "category_name": row.category_name or UNKNOWN_CATEGORY,
            "sales_count": int(row.sales_count),
            "units_sold": int(row.units_sold),
            "revenue_ht_cents": revenue,
            "cost_ht_cents": cost,
            "profit_cents": revenue - cost,
            "share_percent": round(revenue / total_revenue * 100, 2) if total_revenue > 0 else 0.0,
        })
    result.sort(key=lambda entry: entry["revenue_ht_cents"], reverse=True)
    return result


def get_cashier_statistics(cashier_id: int, start, end) -> dict:
    """Per-status counts and amounts for one cashier; averages use active sales."""
    cashier_id = require_id(cashier_id, "cashier_id")
    start_dt, end_dt = resolve_range(start, end)

    if not db.session.get(User, cashier_id):
        raise ReportError("Cashier not found", code="USER_NOT_FOUND")

    rows = _in_range(
        db.session.query(
            Sale.status.label("status"),
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.quantity), 0).label("units_sold"),
            _revenue_ht().label("amount_ht"),
            _revenue_ttc().label("amount_ttc"),
            _tva_collected().label("tva"),
        ).filter(Sale.cashier_id == cashier_id),
        start_dt,
        end_dt,
        active_only=False,
    ).group_by(Sale.status).all()

    by_status = {
        status: {"sales_count": 0, "units_sold": 0, "amount_ht_cents": 0, "amount_ttc_cents": 0, "tva_cents": 0}
        for status in SALE_STATUSES
    }
    for row in rows:
        by_status[row.status] = {
            "sales_count": int(row.sales_count),
            "units_sold": int(row.units_sold),
            "amount_ht_cents": int(row.amount_ht),
            "amount_ttc_cents": int(row.amount_ttc),
            "tva_cents": int(row.tva),
        }

    active = by_status[SALE_STATUS_ACTIVE]
    average = round(active["amount_ht_cents"] / active["sales_count"]) if active["sales_count"] else 0
    return {
        "cashier_id": cashier_id,
        "period": _period(start_dt, end_dt),
        "by_status": by_status,
        "total_sales": sum(entry["sales_count"] for entry in by_status.values()),
        "average_sale_ht_cents": average,
    }


def render_finance_overview(start, end) -> tuple[bytes, str]:
    """Overview + TVA monitoring handed to the rendering collaborator."""
    payload = get_financial_overview(start, end)
    payload["tva_monitoring"] = get_tva_monitoring(start, end)
    payload["revenue_by_category"] = get_revenue_by_category(start, end)
    return render("finance_overview", payload)
