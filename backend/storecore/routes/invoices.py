# Overview: Flask API routes for invoices; lookup, search, status changes and document export.

from flask import Blueprint, Response, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission, require_any_permission
from ..errors import CommerceError
from ..services import invoice_service, lifecycle_service, sales_service


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.post("/")
@require_actor
@require_permission("CREATE_INVOICE")
def create_invoice_route():
    """
    Generate the invoice (or receipt) for an existing sale.

    Cashiers may only document their own sales.
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.get_sale(data.get("sale_id"), g.actor)
        invoice = invoice_service.create_invoice_from_sale(
            sale.id,
            data.get("customer"),
            document_type=data.get("document_type") or "INVOICE",
        )
        return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 201

    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/")
@require_actor
@require_any_permission("VIEW_OWN_INVOICES", "VIEW_ALL_INVOICES")
def list_invoices_route():
    """
    Search invoices. Cashiers only ever see their own.

    Query: q, invoice_number, status, cashier_id, start_date, end_date,
    has_warranty, warranty_status, expiring_soon, page, limit
    """
    try:
        return jsonify(invoice_service.list_invoices(request.args.to_dict(), g.actor)), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_actor
@require_any_permission("VIEW_OWN_INVOICES", "VIEW_ALL_INVOICES")
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id, g.actor)
        return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to load invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.patch("/<int:invoice_id>/status")
@require_actor
@require_permission("UPDATE_INVOICE_STATUS")
def update_invoice_status_route(invoice_id: int):
    """
    Cancel or return an invoice and its sale.

    Body: {"status": "cancelled" | "returned", "reason": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        result = lifecycle_service.update_invoice_status(
            invoice_id, data.get("status"), g.actor.actor_id, data.get("reason")
        )
        return jsonify({
            "invoice": invoice_service.serialize_invoice(result["invoice"]),
            "sale": result["sale"].to_dict(),
            "new_stock": result["new_stock"],
        }), 200

    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to update invoice status")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>/pdf")
@require_actor
@require_any_permission("VIEW_OWN_INVOICES", "VIEW_ALL_INVOICES")
def invoice_document_route(invoice_id: int):
    try:
        body, content_type, number = invoice_service.render_invoice_document(invoice_id, g.actor)
        return Response(
            body,
            mimetype=content_type,
            headers={"Content-Disposition": f'attachment; filename="{number}.pdf"'},
        )
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to render invoice document")
        return jsonify({"error": "Internal server error"}), 500
