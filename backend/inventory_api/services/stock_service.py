# Overview: Service-layer operations for stock levels and the stock movement log.

"""
Stock invariants (authoritative)

- Product.stock_quantity is the on-hand count. It is never negative.
- Every change to stock_quantity appends exactly one StockMovement carrying
  previous_quantity and new_quantity, in the same DB transaction.
- PURCHASE and RETURN add quantity. SALE, TRANSFER and DAMAGE subtract it.
  ADJUSTMENT sets quantity as the new absolute level (stock counts).
- StockMovement rows are append-only.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import (
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_DAMAGE,
    MOVEMENT_PURCHASE,
    MOVEMENT_RETURN,
    MOVEMENT_SALE,
    MOVEMENT_TRANSFER,
    MOVEMENT_TYPES,
)
from ..validation import MAX_AMOUNT_CENTS, NotFoundError
from inventory_api.time_utils import utcnow


ADDITIVE_TYPES = (MOVEMENT_PURCHASE, MOVEMENT_RETURN)
SUBTRACTIVE_TYPES = (MOVEMENT_SALE, MOVEMENT_TRANSFER, MOVEMENT_DAMAGE)


class StockError(Exception):
    """Raised for invalid stock operations."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStockError(StockError):
    """Raised when a change would take stock below zero."""


def _apply(movement_type: str, current: int, quantity: int) -> int:
    if movement_type in ADDITIVE_TYPES:
        return current + quantity
    if movement_type in SUBTRACTIVE_TYPES:
        return current - quantity
    if movement_type == MOVEMENT_ADJUSTMENT:
        return quantity
    raise StockError(f"Invalid movement_type: {movement_type}")


def _claim(product_id: int) -> Product | None:
    """
    Write-lock the product row and return it with its committed stock.

    The lock comes from an UPDATE rather than SELECT ... FOR UPDATE because
    SQLite ignores the latter. Once the UPDATE has run no other transaction
    can change the row, so the stock read back here is the value to build on.
    """
    claimed = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if not claimed.rowcount:
        return None
    return db.session.get(Product, product_id, populate_existing=True)


def _record(
    product_id: int,
    quantity: int,
    movement_type: str,
    reference: str | None,
    user_id: int | None,
    notes: str | None,
) -> StockMovement:
    product = _claim(product_id)
    if product is None:
        raise NotFoundError("Product not found")

    previous = product.stock_quantity
    new_quantity = _apply(movement_type, previous, quantity)
    if new_quantity < 0:
        raise InsufficientStockError(
            f"Insufficient stock for product {product.name}",
            details={
                "product_id": product.id,
                "product_name": product.name,
                "available": previous,
                "requested": quantity,
            },
        )
    if new_quantity > MAX_AMOUNT_CENTS:
        raise StockError(f"Stock level cannot exceed {MAX_AMOUNT_CENTS}")

    product.stock_quantity = new_quantity
    movement = StockMovement(
        product_id=product.id,
        movement_type=movement_type,
        quantity=quantity,
        previous_quantity=previous,
        new_quantity=new_quantity,
        reference=reference,
        notes=notes,
        created_by_user_id=user_id,
        created_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def update_stock(
    *,
    product_id: int,
    quantity: int,
    movement_type: str,
    reference: str | None = None,
    user_id: int | None = None,
    notes: str | None = None,
    commit: bool = True,
) -> StockMovement:
    """
    Change a product's stock and record the movement.

    Pass commit=False to join an outer transaction (the sale flow does this);
    the caller then owns commit/rollback. The product row stays write-locked
    until that transaction ends, so concurrent changes queue up instead of
    overwriting each other.

    Raises:
        NotFoundError: product does not exist
        StockError: bad movement type or quantity
        InsufficientStockError: the result would be negative
    """
    if movement_type not in MOVEMENT_TYPES:
        raise StockError(f"Invalid movement_type: {movement_type}")
    if quantity is None or quantity < 0:
        raise StockError("quantity must be >= 0")
    if quantity > MAX_AMOUNT_CENTS:
        raise StockError(f"quantity cannot exceed {MAX_AMOUNT_CENTS}")
    if movement_type != MOVEMENT_ADJUSTMENT and quantity == 0:
        raise StockError("quantity must be > 0")

    try:
        movement = _record(product_id, quantity, movement_type, reference, user_id, notes)
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except Exception:
        if commit:
            db.session.rollback()
        raise

    if commit:
        current_app.logger.info(
            "Stock %s for product %s: %s -> %s (ref=%s)",
            movement_type, product_id, movement.previous_quantity, movement.new_quantity, reference,
        )
    return movement


def check_stock_availability(product_id: int, quantity: int) -> bool:
    """True when the product exists and has at least `quantity` on hand."""
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        return False
    return product.stock_quantity >= quantity


def list_movements(product_id: int, limit: int | None = None) -> list[StockMovement]:
    """Movements for a product, newest first."""
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise NotFoundError("Product not found")

    query = (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()
