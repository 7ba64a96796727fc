# Overview: Flask API routes for the dashboard summary and its trend panels.

from flask import Blueprint, jsonify, current_app

from ..models.auth import ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER
from ..services import dashboard_service
from ..decorators import require_auth, require_role


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def dashboard_stats_route():
    try:
        return jsonify(dashboard_service.dashboard_stats()), 200
    except Exception:
        current_app.logger.exception("Failed to build dashboard stats")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/weekly-sales")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def weekly_sales_route():
    return jsonify({"items": dashboard_service.weekly_sales()}), 200


@dashboard_bp.get("/monthly-sales")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def monthly_sales_route():
    try:
        return jsonify({"items": dashboard_service.monthly_sales()}), 200
    except Exception:
        current_app.logger.exception("Failed to build monthly sales")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/sales-comparison")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def sales_comparison_route():
    try:
        return jsonify(dashboard_service.sales_comparison()), 200
    except Exception:
        current_app.logger.exception("Failed to build sales comparison")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/inventory-health")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def inventory_health_route():
    try:
        return jsonify(dashboard_service.inventory_health()), 200
    except Exception:
        current_app.logger.exception("Failed to build inventory health")
        return jsonify({"error": "Internal server error"}), 500
