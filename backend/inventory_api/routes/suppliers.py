# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..models import Supplier
from ..models.auth import ROLE_ADMIN, ROLE_MANAGER
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    parse_bulk_status,
    enforce_rules_contact,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_role

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "email", "phone", "address"},
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def list_suppliers():
    rows = catalog_service.list_suppliers()
    return {"items": [s.to_dict(product_count=n) for s, n in rows], "count": len(rows)}


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def get_supplier(supplier_id: int):
    try:
        return {"supplier": catalog_service.get_supplier(supplier_id).to_dict()}
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.get("/<int:supplier_id>/products")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def supplier_products(supplier_id: int):
    try:
        products = catalog_service.products_by_supplier(supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@suppliers_bp.post("")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def create_supplier():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        enforce_rules_contact(patch)
        supplier = catalog_service.create_supplier(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return {"error": "Internal server error"}, 500
    return {"supplier": supplier.to_dict()}, 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def update_supplier(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        enforce_rules_contact(patch)
        supplier = catalog_service.update_supplier(supplier_id=supplier_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return {"error": "Internal server error"}, 500
    return {"supplier": supplier.to_dict()}


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def delete_supplier(supplier_id: int):
    try:
        catalog_service.delete_supplier(supplier_id=supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"deleted": True, "supplier_id": supplier_id}


@suppliers_bp.get("/search")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def search_suppliers():
    try:
        suppliers = catalog_service.search_suppliers(request.args.get("term"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"items": [s.to_dict() for s in suppliers], "count": len(suppliers)}


@suppliers_bp.get("/with-low-stock")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def suppliers_with_low_stock():
    rows = catalog_service.suppliers_with_low_stock()
    return {"items": rows, "count": len(rows)}


@suppliers_bp.get("/<int:supplier_id>/statistics")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def supplier_statistics(supplier_id: int):
    try:
        return catalog_service.supplier_statistics(supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.get("/<int:supplier_id>/contact")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def supplier_contact(supplier_id: int):
    try:
        return {"contact": catalog_service.supplier_contact(supplier_id)}
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.post("/bulk-status-update")
@require_auth
@require_role(ROLE_ADMIN)
def bulk_status_update():
    """Body: {"supplier_ids": [1, 2], "is_active": false}. Each id succeeds or fails on its own."""
    data = request.get_json(silent=True) or {}
    try:
        ids, is_active = parse_bulk_status(data, "supplier_ids")
        return catalog_service.bulk_update_supplier_status(supplier_ids=ids, is_active=is_active)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed bulk supplier status update")
        return {"error": "Internal server error"}, 500
