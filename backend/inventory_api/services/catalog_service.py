# Overview: Service-layer operations for categories and suppliers.

"""
Catalog Service

Categories and suppliers are soft-deleted. Names are unique among active
rows (an inactive row does not block reuse of its name). Deactivation is
refused while active products still point at the row, so no active product
ever references an inactive category or supplier.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Category, Product, Sale, SaleItem, Supplier
from inventory_api.time_utils import to_utc_z, utcnow
from ..validation import ConflictError, NotFoundError, ValidationError


CATEGORY_MUTABLE_FIELDS = {"name", "description"}
SUPPLIER_MUTABLE_FIELDS = {"name", "contact_person", "email", "phone", "address"}


def _active_product_counts(fk_column) -> dict[int, int]:
    rows = (
        db.session.query(fk_column, func.count(Product.id))
        .filter(Product.is_active.is_(True))
        .group_by(fk_column)
        .all()
    )
    return {ref_id: count for ref_id, count in rows}


def _require_unique_active(model, field: str, value, exclude_id: int | None = None, label: str = "Name") -> None:
    if value is None:
        return
    query = db.session.query(model).filter(
        getattr(model, field) == value,
        model.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise ConflictError(f"{label} '{value}' already exists")


def _apply(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k in allowed:
            setattr(obj, k, v)


# =============================================================================
# Categories
# =============================================================================

def list_categories() -> list[tuple[Category, int]]:
    """Active categories with their active product counts."""
    counts = _active_product_counts(Product.category_id)
    categories = (
        db.session.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.name.asc())
        .all()
    )
    return [(c, counts.get(c.id, 0)) for c in categories]


def get_category(category_id: int) -> Category:
    category = db.session.query(Category).filter_by(id=category_id).first()
    if not category:
        raise NotFoundError("Category not found")
    return category


def create_category(*, patch: dict) -> Category:
    _require_unique_active(Category, "name", patch.get("name"), label="Category")
    category = Category(is_active=True)
    _apply(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.add(category)
    db.session.commit()
    return category


def update_category(*, category_id: int, patch: dict) -> Category:
    category = get_category(category_id)
    if not category.is_active:
        raise ValidationError("Cannot update inactive category")
    if "name" in patch:
        _require_unique_active(Category, "name", patch["name"], exclude_id=category.id, label="Category")
    _apply(category, patch, CATEGORY_MUTABLE_FIELDS)
    db.session.commit()
    return category


def delete_category(*, category_id: int) -> Category:
    category = get_category(category_id)
    in_use = (
        db.session.query(Product)
        .filter(Product.category_id == category.id, Product.is_active.is_(True))
        .count()
    )
    if in_use:
        raise ValidationError(f"Category has {in_use} active product(s) and cannot be deleted")
    category.is_active = False
    db.session.commit()
    return category


def products_in_category(category_id: int) -> list[Product]:
    get_category(category_id)
    return (
        db.session.query(Product)
        .filter(Product.category_id == category_id, Product.is_active.is_(True))
        .order_by(Product.name.asc())
        .all()
    )


# =============================================================================
# Suppliers
# =============================================================================

def list_suppliers() -> list[tuple[Supplier, int]]:
    """Active suppliers with their active product counts."""
    counts = _active_product_counts(Product.supplier_id)
    suppliers = (
        db.session.query(Supplier)
        .filter(Supplier.is_active.is_(True))
        .order_by(Supplier.name.asc())
        .all()
    )
    return [(s, counts.get(s.id, 0)) for s in suppliers]


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
    if not supplier:
        raise NotFoundError("Supplier not found")
    return supplier


def create_supplier(*, patch: dict) -> Supplier:
    _require_unique_active(Supplier, "name", patch.get("name"), label="Supplier")
    if patch.get("email"):
        _require_unique_active(Supplier, "email", patch["email"], label="Supplier email")
    supplier = Supplier(is_active=True)
    _apply(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(*, supplier_id: int, patch: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    if not supplier.is_active:
        raise ValidationError("Cannot update inactive supplier")
    if "name" in patch:
        _require_unique_active(Supplier, "name", patch["name"], exclude_id=supplier.id, label="Supplier")
    if patch.get("email"):
        _require_unique_active(Supplier, "email", patch["email"], exclude_id=supplier.id, label="Supplier email")
    _apply(supplier, patch, SUPPLIER_MUTABLE_FIELDS)
    db.session.commit()
    return supplier


def delete_supplier(*, supplier_id: int) -> Supplier:
    supplier = get_supplier(supplier_id)
    in_use = (
        db.session.query(Product)
        .filter(Product.supplier_id == supplier.id, Product.is_active.is_(True))
        .count()
    )
    if in_use:
        raise ValidationError(f"Supplier has {in_use} active product(s) and cannot be deleted")
    supplier.is_active = False
    db.session.commit()
    return supplier


def products_by_supplier(supplier_id: int) -> list[Product]:
    get_supplier(supplier_id)
    return (
        db.session.query(Product)
        .filter(Product.supplier_id == supplier_id, Product.is_active.is_(True))
        .order_by(Product.name.asc())
        .all()
    )


# =============================================================================
# Search, statistics and bulk status
# =============================================================================

MIN_SEARCH_LENGTH = 2
TOP_GROUPS = 5


def _search(model, term: str | None, fields: tuple[str, ...]) -> list:
    term = (term or "").strip()
    if not term:
        raise ValidationError("Search term is required")
    if len(term) < MIN_SEARCH_LENGTH:
        raise ValidationError(f"Search term must be at least {MIN_SEARCH_LENGTH} characters long")
    like = f"%{term}%"
    return (
        db.session.query(model)
        .filter(model.is_active.is_(True))
        .filter(or_(*(getattr(model, f).ilike(like) for f in fields)))
        .order_by(model.name.asc())
        .all()
    )


def search_categories(term: str | None) -> list[Category]:
    """Active categories whose name or description contains term (case-insensitive)."""
    return _search(Category, term, ("name", "description"))


def search_suppliers(term: str | None) -> list[Supplier]:
    return _search(Supplier, term, ("name", "contact_person", "email", "phone"))


def _stock_value(products) -> int:
    return sum(p.stock_quantity * p.cost_price_cents for p in products)


def _product_stats(products: list[Product]) -> dict:
    """Shared numbers for one category's or supplier's products (inactive ones included)."""
    active = [p for p in products if p.is_active]
    prices = [p.price_cents for p in products]
    return {
        "total_products": len(products),
        "active_products": len(active),
        "inactive_products": len(products) - len(active),
        "total_inventory_value_cents": _stock_value(products),
        "total_stock_quantity": sum(p.stock_quantity for p in products),
        "average_price_cents": sum(prices) // len(prices) if prices else 0,
        "average_cost_price_cents": sum(p.cost_price_cents for p in products) // len(products) if products else 0,
        "low_stock_products": sum(1 for p in active if p.is_low_stock),
        "out_of_stock_products": sum(1 for p in active if p.is_out_of_stock),
        "price_range": {"min_cents": min(prices), "max_cents": max(prices)} if prices else None,
    }


def _top_groups(products: list[Product], key, name) -> list[dict]:
    groups: dict[int, dict] = {}
    for p in products:
        group = groups.setdefault(key(p), {"id": key(p), "name": name(p), "product_count": 0})
        group["product_count"] += 1
    ranked = sorted(groups.values(), key=lambda g: (-g["product_count"], g["name"]))
    return ranked[:TOP_GROUPS]


def category_statistics(category_id: int) -> dict:
    category = get_category(category_id)
    products = db.session.query(Product).filter(Product.category_id == category.id).all()
    return {
        "category_id": category.id,
        "category_name": category.name,
        "description": category.description,
        **_product_stats(products),
        "top_suppliers": _top_groups(products, lambda p: p.supplier_id, lambda p: p.supplier.name),
        "generated_at": to_utc_z(utcnow()),
    }


def supplier_statistics(supplier_id: int) -> dict:
    supplier = get_supplier(supplier_id)
    products = db.session.query(Product).filter(Product.supplier_id == supplier.id).all()
    return {
        "supplier_id": supplier.id,
        "supplier_name": supplier.name,
        **_product_stats(products),
        "categories": _top_groups(products, lambda p: p.category_id, lambda p: p.category.name),
        "generated_at": to_utc_z(utcnow()),
    }


def _low_stock_rows(fk_column) -> dict[int, list[Product]]:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .filter(Product.stock_quantity <= Product.min_stock_level)
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )
    grouped: dict[int, list[Product]] = {}
    for p in products:
        grouped.setdefault(getattr(p, fk_column.key), []).append(p)
    return grouped


def _low_stock_product(p: Product) -> dict:
    return {
        "product_id": p.id,
        "product_name": p.name,
        "sku": p.sku,
        "current_stock": p.stock_quantity,
        "min_stock_level": p.min_stock_level,
    }


def categories_with_low_stock() -> list[dict]:
    """Active categories holding at least one active low-stock product."""
    grouped = _low_stock_rows(Product.category_id)
    counts = _active_product_counts(Product.category_id)
    rows = []
    for category, _ in list_categories():
        low = grouped.get(category.id)
        if not low:
            continue
        rows.append({
            "category_id": category.id,
            "category_name": category.name,
            "total_products": counts.get(category.id, 0),
            "low_stock_product_count": len(low),
            "out_of_stock_product_count": sum(1 for p in low if p.is_out_of_stock),
            "low_stock_value_cents": _stock_value(low),
            "low_stock_products": [
                {**_low_stock_product(p), "supplier_name": p.supplier.name} for p in low
            ],
        })
    return rows


def suppliers_with_low_stock() -> list[dict]:
    """Active suppliers with active low-stock products, with contact details for reordering."""
    grouped = _low_stock_rows(Product.supplier_id)
    rows = []
    for supplier, _ in list_suppliers():
        low = grouped.get(supplier.id)
        if not low:
            continue
        rows.append({
            "supplier_id": supplier.id,
            "supplier_name": supplier.name,
            "contact_person": supplier.contact_person,
            "email": supplier.email,
            "phone": supplier.phone,
            "low_stock_product_count": len(low),
            "out_of_stock_product_count": sum(1 for p in low if p.is_out_of_stock),
            "low_stock_products": [_low_stock_product(p) for p in low],
        })
    return rows


def category_performance(
    category_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 5,
) -> dict:
    """
    Completed sales of a category's products over [start, end).

    Defaults to the 30 days up to now. Cancelled sales are excluded.
    """
    category = get_category(category_id)
    end = end or utcnow()
    start = start or end - timedelta(days=30)

    revenue = func.coalesce(func.sum(SaleItem.line_total_cents), 0)
    quantity = func.coalesce(func.sum(SaleItem.quantity), 0)
    base = (
        db.session.query(SaleItem)
        .select_from(SaleItem)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .join(Product, SaleItem.product_id == Product.id)
        .filter(
            Product.category_id == category.id,
            Sale.is_completed.is_(True),
            Sale.sale_date >= start,
            Sale.sale_date < end,
        )
    )
    total_revenue, total_quantity, transactions = base.with_entities(
        revenue, quantity, func.count(func.distinct(Sale.id))
    ).one()
    top = (
        base.with_entities(Product.id, Product.name, Product.sku, quantity.label("qty"), revenue.label("rev"))
        .group_by(Product.id, Product.name, Product.sku)
        .order_by(revenue.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )

    products = products_in_category(category.id)
    return {
        "category_id": category.id,
        "category_name": category.name,
        "period": {"start": to_utc_z(start), "end": to_utc_z(end)},
        "sales": {
            "revenue_cents": int(total_revenue),
            "quantity_sold": int(total_quantity),
            "transactions": int(transactions),
        },
        "top_products": [
            {"product_id": pid, "product_name": pname, "sku": sku, "quantity_sold": int(qty), "revenue_cents": int(rev)}
            for pid, pname, sku, qty, rev in top
        ],
        "inventory": {
            "total_products": len(products),
            "total_inventory_value_cents": _stock_value(products),
            "total_stock_quantity": sum(p.stock_quantity for p in products),
        },
        "stock_alerts": [
            {**_low_stock_product(p), "alert_level": "Out of Stock" if p.is_out_of_stock else "Low Stock"}
            for p in products
            if p.is_low_stock
        ],
    }


def categories_summary() -> dict:
    total = db.session.query(Category).count()
    rows = list_categories()
    values = dict(
        db.session.query(Product.category_id, func.sum(Product.stock_quantity * Product.cost_price_cents))
        .filter(Product.is_active.is_(True))
        .group_by(Product.category_id)
        .all()
    )
    stocked = [(c, n) for c, n in rows if n]
    ranked = sorted(stocked, key=lambda row: (-int(values.get(row[0].id) or 0), row[0].name))
    return {
        "total_categories": total,
        "active_categories": len(rows),
        "inactive_categories": total - len(rows),
        "categories_with_products": len(stocked),
        "empty_categories": len(rows) - len(stocked),
        "top_categories": [
            {
                "category_id": c.id,
                "category_name": c.name,
                "product_count": n,
                "inventory_value_cents": int(values.get(c.id) or 0),
            }
            for c, n in ranked[:TOP_GROUPS]
        ],
        "generated_at": to_utc_z(utcnow()),
    }


def supplier_contact(supplier_id: int) -> dict:
    supplier = get_supplier(supplier_id)
    return {
        "supplier_id": supplier.id,
        "name": supplier.name,
        "contact_person": supplier.contact_person,
        "email": supplier.email,
        "phone": supplier.phone,
        "address": supplier.address,
        "is_active": supplier.is_active,
    }


def _reactivate(model, row, label: str) -> None:
    if row.is_active:
        return
    _require_unique_active(model, "name", row.name, exclude_id=row.id, label=label)
    if getattr(row, "email", None):
        _require_unique_active(model, "email", row.email, exclude_id=row.id, label=f"{label} email")
    row.is_active = True
    db.session.commit()


def _bulk_status(ids: list[int], is_active: bool, *, get, deactivate, model, label: str) -> dict:
    """
    Apply one status to many rows, each independently.

    A row that cannot change (missing, still in use, name taken) is reported
    and skipped; the others still go through.
    """
    results = []
    for row_id in ids:
        try:
            if is_active:
                _reactivate(model, get(row_id), label)
            else:
                deactivate(row_id)
        except (NotFoundError, ValidationError, ConflictError) as e:
            db.session.rollback()
            current_app.logger.warning("Bulk status: %s %s not updated: %s", label, row_id, e)
            results.append({"id": row_id, "success": False, "error": str(e)})
            continue
        results.append({"id": row_id, "success": True, "is_active": is_active})

    succeeded = sum(1 for r in results if r["success"])
    current_app.logger.info(
        "Bulk status: %d of %d %s row(s) set is_active=%s", succeeded, len(ids), label.lower(), is_active
    )
    return {
        "results": results,
        "total_processed": len(ids),
        "successful": succeeded,
        "failed": len(ids) - succeeded,
    }


def bulk_update_category_status(*, category_ids: list[int], is_active: bool) -> dict:
    return _bulk_status(
        category_ids,
        is_active,
        get=get_category,
        deactivate=lambda i: delete_category(category_id=i),
        model=Category,
        label="Category",
    )


def bulk_update_supplier_status(*, supplier_ids: list[int], is_active: bool) -> dict:
    return _bulk_status(
        supplier_ids,
        is_active,
        get=get_supplier,
        deactivate=lambda i: delete_supplier(supplier_id=i),
        model=Supplier,
        label="Supplier",
    )
