# Overview: Home-screen numbers; composes the sales and reporting queries.

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Product, Sale
from inventory_api.time_utils import day_bounds, month_bounds, to_utc_z, utcnow
from . import reporting_service, sales_service


def weekly_sales(now: datetime | None = None) -> list[dict]:
    """Completed-sale totals for the last 7 days, oldest first, zero-filled."""
    today_start, _ = day_bounds(now)
    series = []
    for offset in range(6, -1, -1):
        start = today_start - timedelta(days=offset)
        end = start + timedelta(days=1)
        summary = sales_service.sales_summary(start, end)
        series.append({
            "date": start.date().isoformat(),
            "total_cents": summary["total_sales_cents"],
            "transactions": summary["total_transactions"],
        })
    return series


def monthly_sales(now: datetime | None = None) -> list[dict]:
    """Completed-sale totals per day over the last 30 days, oldest first. Days without sales are omitted."""
    today_start, tomorrow = day_bounds(now)
    start = today_start - timedelta(days=30)
    day = func.date(Sale.sale_date)
    rows = (
        db.session.query(day, func.coalesce(func.sum(Sale.total_cents), 0), func.count(Sale.id))
        .filter(Sale.is_completed.is_(True), Sale.sale_date >= start, Sale.sale_date < tomorrow)
        .group_by(day)
        .order_by(day.asc())
        .all()
    )
    return [
        {"date": str(d), "total_cents": int(total), "transactions": int(count)}
        for d, total, count in rows
    ]


def _change_pct(current: int, previous: int) -> float:
    if not previous:
        return 0.0
    return round((current - previous) / previous * 100.0, 2)


def _comparison(current: dict, previous: dict) -> dict:
    return {
        "revenue_change_pct": _change_pct(current["total_sales_cents"], previous["total_sales_cents"]),
        "transaction_change_pct": _change_pct(current["total_transactions"], previous["total_transactions"]),
    }


def sales_comparison(now: datetime | None = None) -> dict:
    """Today against yesterday and this month against last month, completed sales only."""
    now = now or utcnow()
    day_start, day_end = day_bounds(now)
    month_start, month_end = month_bounds(now)
    last_month_start, _ = month_bounds(month_start - timedelta(days=1))

    today = sales_service.sales_summary(day_start, day_end)
    yesterday = sales_service.sales_summary(day_start - timedelta(days=1), day_start)
    this_month = sales_service.sales_summary(month_start, month_end)
    last_month = sales_service.sales_summary(last_month_start, month_start)

    def _period(summary: dict) -> dict:
        return {"revenue_cents": summary["total_sales_cents"], "transactions": summary["total_transactions"]}

    return {
        "daily": {"today": _period(today), "yesterday": _period(yesterday), **_comparison(today, yesterday)},
        "monthly": {
            "this_month": _period(this_month),
            "last_month": _period(last_month),
            **_comparison(this_month, last_month),
        },
        "generated_at": to_utc_z(now),
    }


def inventory_health(alert_limit: int = 5) -> dict:
    """
    Split active products into healthy, low and out-of-stock buckets.

    Low means at or under the minimum level but not empty. Values are stock
    at cost price.
    """
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )
    out = [p for p in products if p.is_out_of_stock]
    low = [p for p in products if p.is_low_stock and not p.is_out_of_stock]
    healthy = [p for p in products if not p.is_low_stock]

    def _value(items) -> int:
        return sum(p.stock_quantity * p.cost_price_cents for p in items)

    def _bucket(items) -> dict:
        return {
            "count": len(items),
            "percentage": reporting_service.pct(len(items), len(products)),
            "value_cents": _value(items),
        }

    total_value = _value(products)
    return {
        "overview": {
            "total_products": len(products),
            "total_inventory_value_cents": total_value,
            "average_product_value_cents": total_value // len(products) if products else 0,
        },
        "stock_levels": {"healthy": _bucket(healthy), "low_stock": _bucket(low), "out_of_stock": _bucket(out)},
        "alerts": {
            "critical": [
                {"product_id": p.id, "name": p.name, "sku": p.sku, "category_name": p.category.name}
                for p in out[:alert_limit]
            ],
            "warning": [
                {
                    "product_id": p.id,
                    "name": p.name,
                    "sku": p.sku,
                    "current_stock": p.stock_quantity,
                    "min_stock_level": p.min_stock_level,
                    "category_name": p.category.name,
                }
                for p in low[:alert_limit]
            ],
        },
    }

def dashboard_stats(now: datetime | None = None) -> dict:
    now = now or utcnow()
    day_start, day_end = day_bounds(now)
    month_start, month_end = month_bounds(now)

    today = sales_service.sales_summary(day_start, day_end)
    month = sales_service.sales_summary(month_start, month_end)

    active_products = db.session.query(Product).filter(Product.is_active.is_(True)).count()
    active_customers = db.session.query(Customer).filter(Customer.is_active.is_(True)).count()

    alerts = reporting_service.stock_alerts()
    recent = (
        db.session.query(Sale)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .limit(10)
        .all()
    )

    return {
        "today_sales_cents": today["total_sales_cents"],
        "today_transactions": today["total_transactions"],
        "month_sales_cents": month["total_sales_cents"],
        "month_transactions": month["total_transactions"],
        "total_products": active_products,
        "total_customers": active_customers,
        "low_stock_count": len(alerts),
        "weekly_sales": weekly_sales(now),
        "top_products_today": reporting_service.top_selling_products(day_start, day_end, limit=5),
        "critical_alerts": [a for a in alerts if a["alert_level"] == reporting_service.ALERT_CRITICAL],
        "recent_sales": [s.to_dict(include_items=False) for s in recent],
    }
