# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..models import Customer
from ..models.auth import ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER
from ..services import customer_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_contact,
    parse_int_field,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_role

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

ALL_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER)


@customers_bp.get("")
@require_auth
@require_role(*ALL_ROLES)
def list_customers():
    customers = customer_service.list_customers(search=request.args.get("search"))
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.get("/top")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def top_customers():
    limit = request.args.get("limit", default=10, type=int)
    return {"items": customer_service.top_customers(limit=limit)}


@customers_bp.get("/with-credit")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def customers_with_credit():
    customers = customer_service.customers_with_credit()
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.get("/lookup")
@require_auth
@require_role(*ALL_ROLES)
def lookup_customer():
    """Find an active customer by ?email= or ?phone=."""
    email = request.args.get("email")
    phone = request.args.get("phone")
    try:
        if email:
            customer = customer_service.get_customer_by_email(email)
        elif phone:
            customer = customer_service.get_customer_by_phone(phone)
        else:
            return {"error": "email or phone required"}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"customer": customer.to_dict()}


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_role(*ALL_ROLES)
def get_customer(customer_id: int):
    try:
        return {"customer": customer_service.get_customer(customer_id).to_dict()}
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.get("/<int:customer_id>/history")
@require_auth
@require_role(*ALL_ROLES)
def purchase_history(customer_id: int):
    try:
        return customer_service.purchase_history(customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.post("")
@require_auth
@require_role(*ALL_ROLES)
def create_customer():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_contact(patch)
        customer = customer_service.create_customer(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500
    return {"customer": customer.to_dict()}, 201


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_role(*ALL_ROLES)
def update_customer(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_contact(patch)
        customer = customer_service.update_customer(customer_id=customer_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return {"error": "Internal server error"}, 500
    return {"customer": customer.to_dict()}


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def delete_customer(customer_id: int):
    try:
        customer_service.delete_customer(customer_id=customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"deleted": True, "customer_id": customer_id}


@customers_bp.post("/<int:customer_id>/loyalty")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def adjust_loyalty(customer_id: int):
    """Body: {"points": 25} (negative to redeem; floors at zero)."""
    data = request.get_json(silent=True) or {}
    try:
        points = parse_int_field(data, "points")
        customer = customer_service.update_loyalty_points(customer_id=customer_id, delta=points)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to adjust loyalty points")
        return {"error": "Internal server error"}, 500
    return {"customer": customer.to_dict()}


@customers_bp.post("/<int:customer_id>/credit")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def adjust_credit(customer_id: int):
    """Body: {"amount_cents": -500}. The balance may not go negative."""
    data = request.get_json(silent=True) or {}
    try:
        amount = parse_int_field(data, "amount_cents")
        customer = customer_service.update_credit_balance(customer_id=customer_id, delta_cents=amount)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to adjust credit balance")
        return {"error": "Internal server error"}, 500
    return {"customer": customer.to_dict()}
