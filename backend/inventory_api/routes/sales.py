# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/inventory_api/routes/sales.py
"""Sales API routes with role enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models.auth import ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER
from ..services import sales_service
from ..services.reporting_service import parse_range
from ..services.sales_service import SaleError
from ..services.stock_service import StockError
from ..validation import NotFoundError, ValidationError
from ..decorators import require_auth, require_role


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

ALL_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)


@sales_bp.post("")
@require_auth
@require_role(*ALL_ROLES)
def create_sale_route():
    """
    Create a completed sale and take its items out of stock.

    Body:
    {
      "customer_id": 1,
      "items": [{"product_id": 1, "quantity": 2, "unit_price_cents": 1999, "discount_bps": 0}],
      "payment_method": "CASH",
      "paid_cents": 5000,
      "discount_cents": 0,
      "tax_cents": 0,
      "notes": "..."
    }

    Available to: admin, manager, cashier
    """
    try:
        data = request.get_json(silent=True) or {}
        customer_id = data.get("customer_id")

        if not isinstance(customer_id, int) or isinstance(customer_id, bool):
            return jsonify({"error": "customer_id required"}), 400

        sale = sales_service.create_sale(
            customer_id=customer_id,
            items=data.get("items"),
            payment_method=data.get("payment_method"),
            paid_cents=data.get("paid_cents", 0),
            discount_cents=data.get("discount_cents", 0),
            tax_cents=data.get("tax_cents", 0),
            notes=data.get("notes"),
            user_id=g.current_user.id,
        )

        return jsonify({"sale": sale.to_dict()}), 201

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (SaleError, StockError) as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_role(*ALL_ROLES)
def list_sales_route():
    """
    Query params:
    - start, end: ISO-8601 (date-only end covers the whole day)
    - customer_id, user_id: int
    """
    try:
        start, end = parse_range(request.args.get("start"), request.args.get("end"))
        sales = sales_service.list_sales(
            start=start,
            end=end,
            customer_id=request.args.get("customer_id", type=int),
            user_id=request.args.get("user_id", type=int),
        )
        return jsonify({
            "items": [s.to_dict(include_items=False) for s in sales],
            "count": len(sales),
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/today")
@require_auth
@require_role(*ALL_ROLES)
def todays_sales_route():
    try:
        sales = sales_service.todays_sales()
        return jsonify({
            "items": [s.to_dict(include_items=False) for s in sales],
            "count": len(sales),
        }), 200
    except Exception:
        current_app.logger.exception("Failed to list today's sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/summary")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def sales_summary_route():
    try:
        start, end = parse_range(request.args.get("start"), request.args.get("end"))
        return jsonify(sales_service.sales_summary(start, end)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build sales summary")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_role(*ALL_ROLES)
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@sales_bp.get("/invoice/<invoice_number>")
@require_auth
@require_role(*ALL_ROLES)
def get_sale_by_invoice_route(invoice_number: str):
    try:
        sale = sales_service.get_sale_by_invoice(invoice_number)
        return jsonify({"sale": sale.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@sales_bp.get("/<int:sale_id>/invoice")
@require_auth
@require_role(*ALL_ROLES)
def invoice_route(sale_id: int):
    try:
        return jsonify({"invoice": sales_service.get_invoice(sale_id)}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def cancel_sale_route(sale_id: int):
    """
    Cancel a sale and return its items to stock.

    Available to: admin, manager
    """
    try:
        sale = sales_service.cancel_sale(sale_id, g.current_user.id)
        return jsonify({"sale": sale.to_dict()}), 200

    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (SaleError, StockError) as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500
