# Overview: Flask API routes for products and stock operations; parses input and returns JSON responses.

# backend/inventory_api/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations: any role
- Write operations and stock changes: admin, manager
"""
from flask import Blueprint, request, g, current_app

from ..models import Product
from ..models.auth import ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER
from ..services import products_service, stock_service
from ..services.stock_service import StockError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_int_field,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_role

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "sku",
        "barcode",
        "price_cents",
        "cost_price_cents",
        "stock_quantity",
        "min_stock_level",
        "category_id",
        "supplier_id",
        "image_url",
        "is_active",
    },
    required_on_create={"name", "sku", "barcode", "price_cents", "cost_price_cents", "category_id", "supplier_id"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")

ALL_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)


@products_bp.get("")
@require_auth
@require_role(*ALL_ROLES)
def list_products():
    """
    List active products.

    Query params:
    - category_id, supplier_id: int (optional)
    - search: str (optional) - matches name, sku, barcode, description
    """
    products = products_service.list_products(
        category_id=request.args.get("category_id", type=int),
        supplier_id=request.args.get("supplier_id", type=int),
        search=request.args.get("search"),
    )
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/low-stock")
@require_auth
@require_role(*ALL_ROLES)
def low_stock():
    products = products_service.low_stock_products()
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/out-of-stock")
@require_auth
@require_role(*ALL_ROLES)
def out_of_stock():
    products = products_service.out_of_stock_products()
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/sku/<sku>")
@require_auth
@require_role(*ALL_ROLES)
def get_by_sku(sku: str):
    try:
        return {"product": products_service.get_product_by_sku(sku).to_dict()}
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.get("/barcode/<barcode>")
@require_auth
@require_role(*ALL_ROLES)
def get_by_barcode(barcode: str):
    try:
        return {"product": products_service.get_product_by_barcode(barcode).to_dict()}
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.get("/<int:product_id>")
@require_auth
@require_role(*ALL_ROLES)
def get_product(product_id: int):
    try:
        return {"product": products_service.get_product(product_id).to_dict()}
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def create_product_route():
    """
    Create a new product.

    An initial stock_quantity is booked as an ADJUSTMENT movement.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch=patch, user_id=g.current_user.id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except (ValidationError, StockError) as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return {"product": created.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return {"product": updated.to_dict()}


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def delete_product_route(product_id: int):
    """Soft delete (is_active=False)."""
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"deleted": True, "product_id": product_id}


@products_bp.post("/<int:product_id>/stock")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_stock_route(product_id: int):
    """
    Record a stock movement.

    Body: {"quantity": 10, "movement_type": "PURCHASE", "reference": "PO-7", "notes": "..."}
    ADJUSTMENT treats quantity as the new absolute level.
    """
    data = request.get_json(silent=True) or {}

    try:
        quantity = parse_int_field(data, "quantity")
        movement = stock_service.update_stock(
            product_id=product_id,
            quantity=quantity,
            movement_type=data.get("movement_type"),
            reference=data.get("reference"),
            notes=data.get("notes"),
            user_id=g.current_user.id,
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except StockError as e:
        return {"error": str(e), "details": e.details}, 400
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update stock")
        return {"error": "Internal server error"}, 500

    return {"movement": movement.to_dict(), "product": movement.product.to_dict()}, 201


@products_bp.get("/<int:product_id>/movements")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_movements_route(product_id: int):
    try:
        movements = stock_service.list_movements(product_id, limit=request.args.get("limit", type=int))
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": [m.to_dict() for m in movements], "count": len(movements)}


@products_bp.get("/<int:product_id>/availability")
@require_auth
@require_role(*ALL_ROLES)
def availability_route(product_id: int):
    quantity = request.args.get("quantity", default=1, type=int)
    return {
        "product_id": product_id,
        "quantity": quantity,
        "available": stock_service.check_stock_availability(product_id, quantity),
    }
