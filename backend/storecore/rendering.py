# Overview: Port for the document rendering collaborator (PDF/Excel/HTML).

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from flask import Flask, current_app

from .errors import RenderError

EXTENSION_KEY = "storecore.renderer"


@dataclass(frozen=True)
class FormattingContract:
    """How the renderer must display money and dates. Amounts stay in cents."""
    currency: str
    locale: str
    date_format: str
    minor_units: int = 2

    def to_dict(self) -> dict:
        return {
            "currency": self.currency,
            "locale": self.locale,
            "date_format": self.date_format,
            "minor_units": self.minor_units,
        }


@runtime_checkable
class DocumentRenderer(Protocol):
    """
    Receives fully computed payloads and returns document bytes.

    Implementations must not calculate: every figure they print is already
    in the payload.
    """

    content_type: str

    def render_invoice(self, invoice: dict, formatting: FormattingContract) -> bytes:
        ...

    def render_finance_overview(self, overview: dict, formatting: FormattingContract) -> bytes:
        ...


def register_renderer(app: Flask, renderer: DocumentRenderer) -> None:
    app.extensions[EXTENSION_KEY] = renderer


def get_renderer() -> DocumentRenderer:
    renderer = current_app.extensions.get(EXTENSION_KEY)
    if renderer is None:
        raise RenderError("No document renderer configured", code="RENDERER_NOT_CONFIGURED")
    return renderer


def formatting_contract() -> FormattingContract:
    config = current_app.config
    return FormattingContract(
        currency=config.get("STORE_CURRENCY", "MAD"),
        locale=config.get("STORE_LOCALE", "fr-MA"),
        date_format=config.get("STORE_DATE_FORMAT", "%d/%m/%Y"),
    )


def render(kind: str, payload: dict) -> tuple[bytes, str]:
    """Run the registered renderer; collaborator failures become PDF_GENERATION_ERROR."""
    renderer = get_renderer()
    formatting = formatting_contract()
    try:
        if kind == "invoice":
            body = renderer.render_invoice(payload, formatting)
        elif kind == "finance_overview":
            body = renderer.render_finance_overview(payload, formatting)
        else:
            raise ValueError(f"unknown document kind {kind!r}")
    except RenderError:
        raise
    except Exception as exc:
        current_app.logger.exception("Document rendering failed (%s)", kind)
        raise RenderError(
            "Document generation failed",
            code="PDF_GENERATION_ERROR",
            details={"kind": kind, "reason": str(exc)},
        ) from exc
    return body, getattr(renderer, "content_type", "application/pdf")
