# backend/storecore/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///storecore.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Stock alerting default for newly created products
    LOW_STOCK_THRESHOLD_DEFAULT = _int_env("LOW_STOCK_THRESHOLD_DEFAULT", 3)

    # Warranty "expiring soon" window (days)
    WARRANTY_EXPIRING_SOON_DAYS = _int_env("WARRANTY_EXPIRING_SOON_DAYS", 7)

    # Business rules
    CANCELLATION_REASON_MIN_LENGTH = 10
    FINANCE_DAILY_GROUPING_MAX_DAYS = 60
    CASHIER_MAX_PAGE_SIZE = 100
    DEFAULT_PAGE_SIZE = 20

    # Optimistic-lock / invoice-number conflict re-runs
    DB_RETRY_ATTEMPTS = 3

    # Rendering collaborator formatting contract
    STORE_CURRENCY = os.environ.get("STORE_CURRENCY", "MAD")
    STORE_LOCALE = os.environ.get("STORE_LOCALE", "fr-MA")
    STORE_DATE_FORMAT = "%d/%m/%Y"


def get_setting(name: str, default):
    """Read a tunable from the active app config, or fall back to the default."""
    from flask import current_app, has_app_context

    if not has_app_context():
        return default
    return current_app.config.get(name, default)
