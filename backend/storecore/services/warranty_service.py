# Overview: Warranty window computation and derived warranty state (never persisted).

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Iterable, Mapping

from ..config import get_setting
from ..time_utils import add_months, to_day, utcnow

STATUS_NONE = "none"
STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"
WARRANTY_STATUSES = (STATUS_NONE, STATUS_ACTIVE, STATUS_EXPIRED)

DEFAULT_EXPIRING_SOON_DAYS = 7


def compute_warranty_window(enabled: bool, duration_months: int | None, sale_date: datetime) -> dict:
    """
    Warranty terms frozen on an invoice item.

    expiration = sale_date + duration_months calendar months.
    """
    if not enabled or not duration_months or duration_months <= 0:
        return {
            "has_warranty": False,
            "duration_months": None,
            "start_date": None,
            "expiration_date": None,
        }
    return {
        "has_warranty": True,
        "duration_months": duration_months,
        "start_date": sale_date,
        "expiration_date": add_months(sale_date, duration_months),
    }


@dataclass(frozen=True)
class WarrantyState:
    status: str
    is_active: bool
    is_expired: bool
    expiring_soon: bool
    days_remaining: int | None

    def to_dict(self) -> dict:
        return asdict(self)


_NO_WARRANTY = WarrantyState(STATUS_NONE, False, False, False, None)


def _threshold(expiring_soon_days: int | None) -> int:
    if expiring_soon_days is None:
        return get_setting("WARRANTY_EXPIRING_SOON_DAYS", DEFAULT_EXPIRING_SOON_DAYS)
    return expiring_soon_days


def evaluate(warranty: Mapping, as_of: date | datetime | None = None,
             expiring_soon_days: int | None = None) -> WarrantyState:
    """
    Warranty state of one item as of a calendar day.

    Both the expiration and as_of are truncated to their day; an item
    expiring today is still active with 0 days remaining.
    """
    expiration = warranty.get("expiration_date")
    if not warranty.get("has_warranty") or expiration is None:
        return _NO_WARRANTY

    today = to_day(as_of if as_of is not None else utcnow())
    days_remaining = (to_day(expiration) - today).days
    threshold = _threshold(expiring_soon_days)

    if days_remaining < 0:
        return WarrantyState(STATUS_EXPIRED, False, True, False, days_remaining)

    return WarrantyState(
        status=STATUS_ACTIVE,
        is_active=True,
        is_expired=False,
        expiring_soon=days_remaining <= threshold,
        days_remaining=days_remaining,
    )


def evaluate_items(warranties: Iterable[Mapping], as_of=None, expiring_soon_days: int | None = None) -> dict:
    """
    Invoice-level summary over item warranties.

    status: active if any item is active, else expired if any expired,
    else none. has_warranty follows the item flags regardless of expiry.
    """
    threshold = _threshold(expiring_soon_days)
    today = to_day(as_of if as_of is not None else utcnow())

    items = []
    has_warranty = False
    for index, warranty in enumerate(warranties):
        state = evaluate(warranty, today, threshold)
        has_warranty = has_warranty or bool(warranty.get("has_warranty"))
        entry = {"item_index": index, "has_warranty": bool(warranty.get("has_warranty"))}
        entry.update(state.to_dict())
        items.append(entry)

    has_active = any(item["is_active"] for item in items)
    has_expired = any(item["is_expired"] for item in items)
    if has_active:
        status = STATUS_ACTIVE
    elif has_expired:
        status = STATUS_EXPIRED
    else:
        status = STATUS_NONE

    return {
        "status": status,
        "has_warranty": has_warranty,
        "has_active_warranty": has_active,
        "has_expired_warranty": has_expired,
        "warranty_expiring_soon": any(item["expiring_soon"] for item in items),
        "items": items,
    }


def evaluate_invoice(invoice, as_of=None, expiring_soon_days: int | None = None) -> dict:
    return evaluate_items(
        (item.warranty_snapshot() for item in invoice.items),
        as_of=as_of,
        expiring_soon_days=expiring_soon_days,
    )


def matches_filters(invoice, *, has_warranty: bool | None = None, warranty_status: str | None = None,
                    expiring_soon: int | None = None, as_of=None) -> bool:
    """Post-query warranty filters for invoice listings."""
    if has_warranty is None and warranty_status is None and expiring_soon is None:
        return True

    summary = evaluate_invoice(invoice, as_of=as_of, expiring_soon_days=expiring_soon)

    if has_warranty is not None and summary["has_warranty"] != has_warranty:
        return False
    if warranty_status is not None and summary["status"] != warranty_status:
        return False
    if expiring_soon is not None and not summary["warranty_expiring_soon"]:
        return False
    return True
