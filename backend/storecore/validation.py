from __future__ import annotations

from typing import Any

from .errors import CommerceError

# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Tax rates are basis points: 2000 == 20%
MAX_TVA_RATE_BPS = 10_000


class ValidationError(CommerceError):
    """400-level input problem, detected before any write."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", details: dict | None = None):
        super().__init__(message, code=code, details=details)


def coerce_int(value: Any, field: str, *, code: str = "VALIDATION_ERROR") -> int:
    """
    Strict integer coercion.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals
    and scientific notation ("1e3") instead of silently truncating.
    """
    if value is None:
        raise ValidationError(f"{field} is required", code=code)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", code=code)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} is required", code=code)
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)", code=code)
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", code=code)
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", code=code)
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal", code=code)
    raise ValidationError(f"{field} must be an integer", code=code)


def require_id(value: Any, field: str) -> int:
    ident = coerce_int(value, field)
    if ident <= 0:
        raise ValidationError(f"{field} is required")
    return ident


def require_quantity(value: Any, field: str = "quantity") -> int:
    quantity = coerce_int(value, field, code="INVALID_QUANTITY")
    if quantity < 1:
        raise ValidationError(f"{field} must be a positive integer", code="INVALID_QUANTITY")
    return quantity


def require_price_cents(value: Any, field: str = "selling_price_cents") -> int:
    cents = coerce_int(value, field, code="INVALID_PRICE")
    if cents <= 0:
        raise ValidationError(f"{field} must be greater than 0", code="INVALID_PRICE")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds maximum of {MAX_PRICE_CENTS}", code="INVALID_PRICE")
    return cents


def require_tva_rate_bps(value: Any) -> int:
    if value is None:
        return 0
    bps = coerce_int(value, "tva_rate_bps", code="INVALID_TVA_RATE")
    if bps < 0 or bps > MAX_TVA_RATE_BPS:
        raise ValidationError("tva_rate_bps must be between 0 and 10000", code="INVALID_TVA_RATE")
    return bps


def require_reason(reason: Any, min_length: int) -> str:
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationError("reason is required")
    cleaned = reason.strip()
    if len(cleaned) < min_length:
        raise ValidationError(
            f"reason must be at least {min_length} characters",
            details={"min_length": min_length, "length": len(cleaned)},
        )
    return cleaned


def parse_bool(value: Any) -> bool | None:
    """Query-string boolean: true/false/1/0, None when absent."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"invalid boolean: {value}")


def optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return coerce_int(value, field)
