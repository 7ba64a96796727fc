# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Products Service

Products are soft-deleted (is_active=False). SKU and barcode are unique
across all products, active or not, because sale history keeps pointing at
them. stock_quantity is never patched directly: the initial level is booked
as an ADJUSTMENT movement and later changes go through stock_service.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Category, Product, Supplier
from ..models.inventory import MOVEMENT_ADJUSTMENT
from ..validation import ConflictError, NotFoundError, ValidationError
from inventory_api.time_utils import utcnow
from . import stock_service

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "sku",
    "barcode",
    "price_cents",
    "cost_price_cents",
    "min_stock_level",
    "category_id",
    "supplier_id",
    "image_url",
    "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _require_active_refs(patch: dict) -> None:
    if "category_id" in patch:
        category = db.session.query(Category).filter_by(id=patch["category_id"]).first()
        if not category or not category.is_active:
            raise ValidationError("category_id must reference an active category")
    if "supplier_id" in patch:
        supplier = db.session.query(Supplier).filter_by(id=patch["supplier_id"]).first()
        if not supplier or not supplier.is_active:
            raise ValidationError("supplier_id must reference an active supplier")


def _require_unique(patch: dict, exclude_id: int | None = None) -> None:
    for field, label in (("sku", "SKU"), ("barcode", "Barcode")):
        if field not in patch:
            continue
        query = db.session.query(Product).filter(getattr(Product, field) == patch[field])
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first():
            raise ConflictError(f"{label} already exists.")


def list_products(
    *,
    category_id: int | None = None,
    supplier_id: int | None = None,
    search: str | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if supplier_id:
        query = query.filter(Product.supplier_id == supplier_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Product.name.ilike(like),
            Product.sku.ilike(like),
            Product.barcode.ilike(like),
            Product.description.ilike(like),
        ))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    p = db.session.query(Product).filter_by(id=product_id).first()
    if not p:
        raise NotFoundError("Product not found")
    return p


def get_product_by_sku(sku: str) -> Product:
    p = db.session.query(Product).filter_by(sku=sku).first()
    if not p:
        raise NotFoundError("Product not found")
    return p


def get_product_by_barcode(barcode: str) -> Product:
    p = db.session.query(Product).filter_by(barcode=barcode).first()
    if not p:
        raise NotFoundError("Product not found")
    return p


def create_product(*, patch: dict, user_id: int | None = None) -> Product:
    """
    Create product using a validated patch dict.

    An initial stock_quantity in the patch is recorded as an ADJUSTMENT
    movement in the same transaction.

    Raises:
        ConflictError: SKU or barcode already exists
        ValidationError: category/supplier missing or inactive
    """
    _require_unique(patch)
    _require_active_refs(patch)

    initial_stock = patch.get("stock_quantity") or 0

    p = Product(stock_quantity=0)
    apply_product_patch(p, patch)

    try:
        db.session.add(p)
        db.session.flush()

        if initial_stock:
            stock_service.update_stock(
                product_id=p.id,
                quantity=initial_stock,
                movement_type=MOVEMENT_ADJUSTMENT,
                reference="Initial stock",
                user_id=user_id,
                commit=False,
            )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Product %s created (sku=%s)", p.id, p.sku)
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Raises:
        NotFoundError: product does not exist
        ConflictError: SKU or barcode taken by another product
        ValidationError: stock_quantity in patch, or bad category/supplier
    """
    if "stock_quantity" in patch:
        raise ValidationError("stock_quantity can only be changed through stock updates")

    p = get_product(product_id)
    _require_unique(patch, exclude_id=p.id)
    if patch.get("is_active", p.is_active):
        # An active product, including one being reactivated, needs live references
        _require_active_refs({
            "category_id": patch.get("category_id", p.category_id),
            "supplier_id": patch.get("supplier_id", p.supplier_id),
        })
    else:
        _require_active_refs(patch)

    apply_product_patch(p, patch)
    p.updated_at = utcnow()

    db.session.commit()
    return p


def delete_product(*, product_id: int) -> Product:
    """Soft delete."""
    p = get_product(product_id)
    p.is_active = False
    p.updated_at = utcnow()
    db.session.commit()
    current_app.logger.info("Product %s deactivated", p.id)
    return p


def low_stock_products() -> list[Product]:
    """Active products at or below their minimum level."""
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .filter(Product.stock_quantity <= Product.min_stock_level)
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )


def out_of_stock_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .filter(Product.stock_quantity == 0)
        .order_by(Product.name.asc())
        .all()
    )
