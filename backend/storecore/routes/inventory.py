# Overview: Flask API routes for stock supply entries.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_permission
from ..errors import CommerceError
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/entries")
@require_actor
@require_permission("ADD_INVENTORY")
def add_inventory_entry_route():
    """
    Record incoming stock.

    Body: product_id, quantity_added, purchase_price_cents, note (optional)
    Requires: ADD_INVENTORY permission
    """
    try:
        data = request.get_json(silent=True) or {}
        result = inventory_service.add_inventory_entry(
            data.get("product_id"),
            data.get("quantity_added"),
            data.get("purchase_price_cents"),
            data.get("note"),
            g.actor.actor_id,
        )
        return jsonify({"log": result["log"].to_dict(), "new_stock": result["new_stock"]}), 201

    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to add inventory entry")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/entries")
@require_actor
@require_permission("VIEW_INVENTORY_HISTORY")
def inventory_history_route():
    try:
        return jsonify(inventory_service.get_inventory_history(request.args.to_dict())), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to list inventory history")
        return jsonify({"error": "Internal server error"}), 500
