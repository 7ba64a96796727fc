# Overview: Service-layer operations for reporting; read-only aggregate queries.

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem
from ..models.sales import PAYMENT_METHODS
from ..validation import ValidationError
from inventory_api.time_utils import parse_iso_datetime, to_utc_z
from .customer_service import top_customers as _top_customers


ALERT_CRITICAL = "Critical"
ALERT_LOW = "Low"


def parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    """
    Parse query-string bounds into a half-open [start, end) range.

    A date-only end ("2026-10-17") covers that whole day.
    """
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 dates")

    if end_dt is not None and end and len(end.strip()) == 10:
        end_dt = end_dt + timedelta(days=1)
    if start_dt and end_dt and end_dt <= start_dt:
        raise ValidationError("end must be after start")
    return start_dt, end_dt


def _completed_sales(start: datetime | None, end: datetime | None):
    query = db.session.query(Sale).filter(Sale.is_completed.is_(True))
    if start:
        query = query.filter(Sale.sale_date >= start)
    if end:
        query = query.filter(Sale.sale_date < end)
    return query


def _completed_items(start: datetime | None, end: datetime | None):
    query = (
        db.session.query(SaleItem)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(Sale.is_completed.is_(True))
    )
    if start:
        query = query.filter(Sale.sale_date >= start)
    if end:
        query = query.filter(Sale.sale_date < end)
    return query


def pct(part: int, whole: int) -> float:
    return round(part / whole * 100.0, 2) if whole else 0.0


def top_selling_products(
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 10,
) -> list[dict]:
    qty = func.sum(SaleItem.quantity)
    query = (
        db.session.query(
            Product.id,
            Product.name,
            Product.sku,
            qty.label("quantity_sold"),
            func.sum(SaleItem.line_total_cents).label("revenue_cents"),
        )
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(Sale.is_completed.is_(True))
    )
    if start:
        query = query.filter(Sale.sale_date >= start)
    if end:
        query = query.filter(Sale.sale_date < end)

    rows = (
        query.group_by(Product.id, Product.name, Product.sku)
        .order_by(qty.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": row.id,
            "product_name": row.name,
            "sku": row.sku,
            "quantity_sold": int(row.quantity_sold or 0),
            "revenue_cents": int(row.revenue_cents or 0),
        }
        for row in rows
    ]


def sales_report(start: datetime | None = None, end: datetime | None = None) -> dict:
    sales = _completed_sales(start, end).order_by(Sale.sale_date.asc(), Sale.id.asc()).all()

    total_sales = sum(s.total_cents for s in sales)
    count = len(sales)

    by_method = []
    for method in PAYMENT_METHODS:
        matching = [s for s in sales if s.payment_method == method]
        if not matching:
            continue
        amount = sum(s.total_cents for s in matching)
        by_method.append({
            "payment_method": method,
            "amount_cents": amount,
            "count": len(matching),
            "percentage": pct(amount, total_sales),
        })

    daily: "OrderedDict[str, dict]" = OrderedDict()
    for s in sales:
        day = s.sale_date.date().isoformat()
        row = daily.setdefault(day, {"date": day, "total_cents": 0, "transactions": 0})
        row["total_cents"] += s.total_cents
        row["transactions"] += 1

    return {
        "start": to_utc_z(start) if start else None,
        "end": to_utc_z(end) if end else None,
        "total_sales_cents": total_sales,
        "total_discount_cents": sum(s.discount_cents for s in sales),
        "total_tax_cents": sum(s.tax_cents for s in sales),
        "total_transactions": count,
        "average_sale_cents": (total_sales // count) if count else 0,
        "payment_methods": by_method,
        "daily_sales": list(daily.values()),
        "top_products": top_selling_products(start, end, limit=10),
    }


def stock_alerts() -> list[dict]:
    """Active products at or below minimum stock; empty shelves first."""
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .filter(Product.stock_quantity <= Product.min_stock_level)
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )
    return [
        {
            "product_id": p.id,
            "product_name": p.name,
            "sku": p.sku,
            "current_stock": p.stock_quantity,
            "min_stock_level": p.min_stock_level,
            "category_name": p.category.name if p.category else None,
            "supplier_name": p.supplier.name if p.supplier else None,
            "alert_level": ALERT_CRITICAL if p.stock_quantity == 0 else ALERT_LOW,
        }
        for p in products
    ]


def inventory_report() -> dict:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )

    rows = []
    total_value = 0
    for p in products:
        value = p.stock_quantity * p.cost_price_cents
        total_value += value
        rows.append({
            "product_id": p.id,
            "product_name": p.name,
            "sku": p.sku,
            "category_name": p.category.name if p.category else None,
            "stock_quantity": p.stock_quantity,
            "min_stock_level": p.min_stock_level,
            "cost_price_cents": p.cost_price_cents,
            "price_cents": p.price_cents,
            "stock_value_cents": value,
            "is_low_stock": p.is_low_stock,
            "is_out_of_stock": p.is_out_of_stock,
        })

    return {
        "total_products": len(products),
        "total_inventory_value_cents": total_value,
        "low_stock_count": sum(1 for p in products if p.is_low_stock),
        "out_of_stock_count": sum(1 for p in products if p.is_out_of_stock),
        "products": rows,
    }


def customer_report(start: datetime | None = None, end: datetime | None = None) -> dict:
    active = db.session.query(Customer).filter(Customer.is_active.is_(True))

    new_query = db.session.query(func.count(Customer.id))
    if start:
        new_query = new_query.filter(Customer.created_at >= start)
    if end:
        new_query = new_query.filter(Customer.created_at < end)

    totals = active.with_entities(
        func.count(Customer.id),
        func.coalesce(func.sum(Customer.loyalty_points), 0),
        func.coalesce(func.sum(Customer.credit_balance_cents), 0),
    ).one()

    return {
        "start": to_utc_z(start) if start else None,
        "end": to_utc_z(end) if end else None,
        "total_customers": int(totals[0] or 0),
        "new_customers": int(new_query.scalar() or 0),
        "total_loyalty_points": int(totals[1] or 0),
        "total_credit_balance_cents": int(totals[2] or 0),
        "top_customers": _top_customers(limit=10),
    }


def profitability_report(start: datetime | None = None, end: datetime | None = None) -> dict:
    """
    Revenue from completed sale lines; cost of goods uses each product's
    current cost price.
    """
    items = _completed_items(start, end).all()

    revenue = sum(i.line_total_cents for i in items)
    cogs = sum(i.quantity * (i.product.cost_price_cents if i.product else 0) for i in items)
    profit = revenue - cogs

    return {
        "start": to_utc_z(start) if start else None,
        "end": to_utc_z(end) if end else None,
        "revenue_cents": revenue,
        "cost_of_goods_cents": cogs,
        "gross_profit_cents": profit,
        "profit_margin_pct": pct(profit, revenue),
    }


def top_customers(limit: int = 10) -> list[dict]:
    return _top_customers(limit=limit)
