# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Sale
from ..validation import MAX_AMOUNT_CENTS, ConflictError, NotFoundError, ValidationError


CUSTOMER_MUTABLE_FIELDS = {"name", "email", "phone", "address"}


def _require_unique_email(email: str | None, exclude_id: int | None = None) -> None:
    if not email:
        return
    query = db.session.query(Customer).filter(
        Customer.email == email,
        Customer.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise ConflictError(f"Customer email '{email}' already exists")


def list_customers(search: str | None = None) -> list[Customer]:
    query = db.session.query(Customer).filter(Customer.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            Customer.name.ilike(like) | Customer.email.ilike(like) | Customer.phone.ilike(like)
        )
    return query.order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def get_customer_by_email(email: str) -> Customer:
    customer = db.session.query(Customer).filter_by(email=email, is_active=True).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def get_customer_by_phone(phone: str) -> Customer:
    customer = db.session.query(Customer).filter_by(phone=phone, is_active=True).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(*, patch: dict) -> Customer:
    _require_unique_email(patch.get("email"))
    customer = Customer(is_active=True, loyalty_points=0, credit_balance_cents=0)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(*, customer_id: int, patch: dict) -> Customer:
    customer = get_customer(customer_id)
    if not customer.is_active:
        raise ValidationError("Cannot update inactive customer")
    if "email" in patch:
        _require_unique_email(patch["email"], exclude_id=customer.id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.commit()
    return customer


def delete_customer(*, customer_id: int) -> Customer:
    """Soft delete; sales keep pointing at the row."""
    customer = get_customer(customer_id)
    customer.is_active = False
    db.session.commit()
    return customer


def purchase_history(customer_id: int) -> dict:
    customer = get_customer(customer_id)
    sales = (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer.id, Sale.is_completed.is_(True))
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )
    return {
        "customer": customer.to_dict(),
        "total_purchases_cents": sum(s.total_cents for s in sales),
        "total_transactions": len(sales),
        "loyalty_points": customer.loyalty_points,
        "credit_balance_cents": customer.credit_balance_cents,
        "sales": [s.to_dict(include_items=False) for s in sales],
    }


def update_loyalty_points(*, customer_id: int, delta: int) -> Customer:
    """Add (or remove) points. The balance bottoms out at zero."""
    customer = get_customer(customer_id)
    points = max(customer.loyalty_points + delta, 0)
    if points > MAX_AMOUNT_CENTS:
        raise ValidationError(f"Loyalty points cannot exceed {MAX_AMOUNT_CENTS}")
    customer.loyalty_points = points
    db.session.commit()
    return customer


def update_credit_balance(*, customer_id: int, delta_cents: int) -> Customer:
    customer = get_customer(customer_id)
    new_balance = customer.credit_balance_cents + delta_cents
    if new_balance < 0:
        raise ValidationError("Credit balance cannot be negative")
    if new_balance > MAX_AMOUNT_CENTS:
        raise ValidationError(f"Credit balance cannot exceed {MAX_AMOUNT_CENTS}")
    customer.credit_balance_cents = new_balance
    db.session.commit()
    return customer


def top_customers(limit: int = 10) -> list[dict]:
    """Active customers ranked by total spent on completed sales."""
    total = func.coalesce(func.sum(Sale.total_cents), 0)
    rows = (
        db.session.query(Customer, total.label("total_spent"), func.count(Sale.id))
        .join(Sale, Sale.customer_id == Customer.id)
        .filter(Customer.is_active.is_(True), Sale.is_completed.is_(True))
        .group_by(Customer.id)
        .order_by(total.desc(), Customer.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "customer_id": c.id,
            "customer_name": c.name,
            "email": c.email,
            "total_spent_cents": int(spent or 0),
            "transaction_count": int(count or 0),
            "loyalty_points": c.loyalty_points,
        }
        for c, spent, count in rows
    ]


def customers_with_credit() -> list[Customer]:
    return (
        db.session.query(Customer)
        .filter(Customer.is_active.is_(True), Customer.credit_balance_cents > 0)
        .order_by(Customer.credit_balance_cents.desc())
        .all()
    )
