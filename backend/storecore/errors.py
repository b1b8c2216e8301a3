# Overview: Business error taxonomy shared by services and routes.

from __future__ import annotations


# Stable machine-readable codes -> HTTP-like status
ERROR_STATUS = {
    "VALIDATION_ERROR": 400,
    "INVALID_QUANTITY": 400,
    "INVALID_PRICE": 400,
    "INVALID_TVA_RATE": 400,
    "INSUFFICIENT_STOCK": 400,
    "PRODUCT_NOT_FOUND": 404,
    "USER_NOT_FOUND": 404,
    "SALE_NOT_FOUND": 404,
    "INVOICE_NOT_FOUND": 404,
    "FORBIDDEN": 403,
    "ACCOUNT_SUSPENDED": 403,
    "INVOICE_ALREADY_CANCELLED": 409,
    "INVOICE_ALREADY_RETURNED": 409,
    "SALE_ALREADY_CANCELLED": 409,
    "SALE_ALREADY_RETURNED": 409,
    "INVALID_STATUS_TRANSITION": 409,
    "INVOICE_ALREADY_EXISTS": 409,
    "PDF_GENERATION_ERROR": 500,
    "RENDERER_NOT_CONFIGURED": 501,
}


class CommerceError(Exception):
    """
    Business failure with a stable code and an HTTP-like status.

    Raised by services; routes and the app-level handler turn it into
    {"error", "code", "details"} JSON.
    """

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", status: int | None = None,
                 details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status if status is not None else ERROR_STATUS.get(code, 400)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class SaleError(CommerceError):
    """Raised for sale registration and listing errors."""


class InvoiceError(CommerceError):
    """Raised for invoice generation and lookup errors."""


class LifecycleError(CommerceError):
    """Raised for illegal cancel/return transitions."""


class InventoryError(CommerceError):
    """Raised for stock supply errors."""


class ReportError(CommerceError):
    """Raised when report generation fails."""


class RenderError(CommerceError):
    """Raised when the rendering collaborator fails or is missing."""


class SnapshotImmutableError(CommerceError):
    """Raised when a flush would rewrite a frozen product snapshot."""

    def __init__(self, message: str):
        super().__init__(message, code="SNAPSHOT_IMMUTABLE", status=409)
