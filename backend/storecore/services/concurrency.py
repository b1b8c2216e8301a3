# Overview: Transaction helpers shared by every write path (locking, BEGIN IMMEDIATE, conflict re-runs).

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from ..config import get_setting
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() serializes
    writers there instead. Other DBs honor the row lock.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Open the write transaction before the first guarded read.

    SQLite: BEGIN IMMEDIATE takes the database write lock up front, so a
    stock check and its decrement cannot interleave with another writer.
    Skipped when the driver connection is already inside a transaction.
    """
    connection = db.session.connection()
    if connection.dialect.name != "sqlite":
        return
    raw = connection.connection.driver_connection
    if getattr(raw, "in_transaction", False):
        return
    db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05,
                   retry_on: tuple = ()):
    """
    Run a unit of work; roll the session back on any failure.

    Re-runs the work only for in-core conflicts: StaleDataError (optimistic
    version check) plus whatever the caller adds in retry_on. Business
    errors and storage failures propagate unchanged after rollback.
    """
    if attempts is None:
        attempts = get_setting("DB_RETRY_ATTEMPTS", 3)
    retryable = (StaleDataError,) + tuple(retry_on)

    for attempt in range(attempts):
        try:
            return func()
        except retryable:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
