# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/storecore/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission, require_any_permission
from ..errors import CommerceError
from ..services import sales_service, finance_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _sale_result(result: dict) -> dict:
    return {
        "sale": result["sale"].to_dict(),
        "new_stock": result["new_stock"],
        "is_low_stock": result["is_low_stock"],
        "invoice": result["invoice"].to_dict() if result["invoice"] else None,
        "invoice_error": result["invoice_error"],
    }


def _transition_result(result: dict) -> dict:
    return {
        "sale": result["sale"].to_dict(),
        "invoice": result["invoice"].to_dict() if result["invoice"] else None,
        "new_stock": result["new_stock"],
    }


@sales_bp.post("/")
@require_actor
@require_permission("CREATE_SALE")
def register_sale_route():
    """
    Register a sale for the current actor.

    Requires: CREATE_SALE permission
    Available to: manager, cashier
    """
    try:
        data = request.get_json(silent=True) or {}
        result = sales_service.register_sale(
            data.get("product_id"),
            data.get("quantity"),
            data.get("selling_price_cents"),
            g.actor.actor_id,
            tva_rate_bps=data.get("tva_rate_bps", 0),
            document_type=data.get("document_type") or "NONE",
            customer=data.get("customer"),
        )
        return jsonify(_sale_result(result)), 201

    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to register sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@require_actor
@require_permission("VIEW_ALL_SALES")
def list_sales_route():
    """
    List sales with filters.

    Requires: VIEW_ALL_SALES permission
    Available to: manager
    """
    try:
        return jsonify(sales_service.list_sales(request.args.to_dict(), g.actor)), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/mine")
@require_actor
@require_permission("VIEW_OWN_SALES")
def my_sales_route():
    try:
        return jsonify(sales_service.list_cashier_sales(g.actor.actor_id, request.args.to_dict())), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to list own sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/mine/statistics")
@require_actor
@require_permission("VIEW_OWN_SALES")
def my_sales_statistics_route():
    try:
        stats = finance_service.get_cashier_statistics(
            g.actor.actor_id,
            request.args.get("start_date"),
            request.args.get("end_date"),
        )
        return jsonify(stats), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to compute own sales statistics")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_actor
@require_any_permission("VIEW_OWN_SALES", "VIEW_ALL_SALES")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id, g.actor)
        return jsonify({"sale": sale.to_dict()}), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to load sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
@require_actor
@require_permission("CANCEL_SALE")
def cancel_sale_route(sale_id: int):
    """
    Cancel sale, restore stock and cancel its invoice.

    Requires: CANCEL_SALE permission
    Available to: manager
    """
    try:
        data = request.get_json(silent=True) or {}
        result = sales_service.cancel_sale(sale_id, g.actor.actor_id, data.get("reason"))
        return jsonify(_transition_result(result)), 200

    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/return")
@require_actor
@require_permission("RETURN_SALE")
def return_sale_route(sale_id: int):
    """
    Mark sale returned, restore stock and return its invoice.

    Requires: RETURN_SALE permission
    Available to: manager
    """
    try:
        data = request.get_json(silent=True) or {}
        result = sales_service.return_sale(sale_id, g.actor.actor_id, data.get("reason"))
        return jsonify(_transition_result(result)), 200

    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to return sale")
        return jsonify({"error": "Internal server error"}), 500
