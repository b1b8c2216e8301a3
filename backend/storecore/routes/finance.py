# Overview: Flask API routes for finance reporting; all figures come from finance_service.

from flask import Blueprint, Response, request, jsonify, current_app

from ..decorators import require_actor, require_permission
from ..errors import CommerceError
from ..services import finance_service


finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


def _range():
    return request.args.get("start_date"), request.args.get("end_date")


@finance_bp.get("/overview")
@require_actor
@require_permission("VIEW_FINANCE")
def overview_route():
    try:
        return jsonify(finance_service.get_financial_overview(*_range())), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to compute financial overview")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.get("/tva-monitoring")
@require_actor
@require_permission("VIEW_FINANCE")
def tva_monitoring_route():
    try:
        return jsonify(finance_service.get_tva_monitoring(*_range())), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to compute TVA monitoring")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.get("/charts")
@require_actor
@require_permission("VIEW_FINANCE")
def charts_route():
    """Time series grouped by day (<= 60 days) or month, plus category breakdown."""
    try:
        return jsonify(finance_service.get_finance_charts(*_range())), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to compute finance charts")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.get("/cashier-statistics")
@require_actor
@require_permission("VIEW_FINANCE")
def cashier_statistics_route():
    try:
        stats = finance_service.get_cashier_statistics(request.args.get("cashier_id"), *_range())
        return jsonify(stats), 200
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to compute cashier statistics")
        return jsonify({"error": "Internal server error"}), 500


@finance_bp.get("/export")
@require_actor
@require_permission("EXPORT_FINANCE")
def export_route():
    try:
        body, content_type = finance_service.render_finance_overview(*_range())
        return Response(
            body,
            mimetype=content_type,
            headers={"Content-Disposition": 'attachment; filename="finance-overview.pdf"'},
        )
    except CommerceError as e:
        return jsonify(e.to_dict()), e.status
    except Exception:
        current_app.logger.exception("Failed to export finance overview")
        return jsonify({"error": "Internal server error"}), 500
