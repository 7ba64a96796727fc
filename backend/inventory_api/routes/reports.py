# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import reporting_service
from ..validation import ValidationError
from ..decorators import require_auth, require_role


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range():
    return reporting_service.parse_range(request.args.get("start"), request.args.get("end"))


@reports_bp.get("/sales")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def sales_report_route():
    try:
        start, end = _range()
        return jsonify(reporting_service.sales_report(start, end)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/inventory")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def inventory_report_route():
    try:
        return jsonify(reporting_service.inventory_report()), 200
    except Exception:
        current_app.logger.exception("Failed to build inventory report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/customers")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def customer_report_route():
    try:
        start, end = _range()
        return jsonify(reporting_service.customer_report(start, end)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build customer report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/profitability")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def profitability_report_route():
    try:
        start, end = _range()
        return jsonify(reporting_service.profitability_report(start, end)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build profitability report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/top-products")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def top_products_route():
    try:
        start, end = _range()
        limit = request.args.get("limit", default=10, type=int)
        return jsonify({"items": reporting_service.top_selling_products(start, end, limit=limit)}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/top-customers")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def top_customers_route():
    limit = request.args.get("limit", default=10, type=int)
    return jsonify({"items": reporting_service.top_customers(limit=limit)}), 200


@reports_bp.get("/stock-alerts")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def stock_alerts_route():
    alerts = reporting_service.stock_alerts()
    return jsonify({"items": alerts, "count": len(alerts)}), 200
