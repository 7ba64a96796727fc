# Overview: Flask API routes for category operations; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..models import Category
from ..models.auth import ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER
from ..services import catalog_service
from ..services.reporting_service import parse_range
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    parse_bulk_status,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_role

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def list_categories():
    rows = catalog_service.list_categories()
    return {"items": [c.to_dict(product_count=n) for c, n in rows], "count": len(rows)}


@categories_bp.get("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def get_category(category_id: int):
    try:
        return {"category": catalog_service.get_category(category_id).to_dict()}
    except NotFoundError as e:
        return {"error": str(e)}, 404


@categories_bp.get("/<int:category_id>/products")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def category_products(category_id: int):
    try:
        products = catalog_service.products_in_category(category_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@categories_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def create_category():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = catalog_service.create_category(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create category")
        return {"error": "Internal server error"}, 500
    return {"category": category.to_dict()}, 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_category(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        category = catalog_service.update_category(category_id=category_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update category")
        return {"error": "Internal server error"}, 500
    return {"category": category.to_dict()}


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def delete_category(category_id: int):
    try:
        catalog_service.delete_category(category_id=category_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"deleted": True, "category_id": category_id}


@categories_bp.get("/search")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def search_categories():
    try:
        categories = catalog_service.search_categories(request.args.get("term"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


@categories_bp.get("/summary")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def categories_summary():
    try:
        return catalog_service.categories_summary()
    except Exception:
        current_app.logger.exception("Failed to build categories summary")
        return {"error": "Internal server error"}, 500


@categories_bp.get("/with-low-stock")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def categories_with_low_stock():
    rows = catalog_service.categories_with_low_stock()
    return {"items": rows, "count": len(rows)}


@categories_bp.get("/<int:category_id>/statistics")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)
def category_statistics(category_id: int):
    try:
        return catalog_service.category_statistics(category_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@categories_bp.get("/<int:category_id>/performance")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def category_performance(category_id: int):
    """Query: ?start=2026-10-01&end=2026-10-31 (defaults to the last 30 days)."""
    try:
        start, end = parse_range(request.args.get("start"), request.args.get("end"))
        return catalog_service.category_performance(category_id, start, end)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to build category performance")
        return {"error": "Internal server error"}, 500


@categories_bp.post("/bulk-status-update")
@require_auth
@require_role(ROLE_ADMIN)
def bulk_status_update():
    """Body: {"category_ids": [1, 2], "is_active": false}. Each id succeeds or fails on its own."""
    data = request.get_json(silent=True) or {}
    try:
        ids, is_active = parse_bulk_status(data, "category_ids")
        return catalog_service.bulk_update_category_status(category_ids=ids, is_active=is_active)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed bulk category status update")
        return {"error": "Internal server error"}, 500
