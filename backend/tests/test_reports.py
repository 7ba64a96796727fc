"""
Reports and dashboard aggregates.
"""

from datetime import datetime

from conftest import make_product
from inventory_api.services import dashboard_service, reporting_service, sales_service


DAY_1 = datetime(2026, 10, 14, 10, 0)
DAY_2 = datetime(2026, 10, 15, 16, 0)


def _sell(customer, user, product, quantity, method="CASH", now=DAY_1, **kwargs):
    return sales_service.create_sale(
        customer_id=customer.id,
        items=[{"product_id": product.id, "quantity": quantity, "unit_price_cents": product.price_cents}],
        payment_method=method,
        paid_cents=0,
        user_id=user.id,
        now=now,
        **kwargs,
    )


def test_parse_range_date_only_end_is_inclusive():
    start, end = reporting_service.parse_range("2026-10-01", "2026-10-31")
    assert start == datetime(2026, 10, 1)
    assert end == datetime(2026, 11, 1)


def test_sales_report(db_session, admin_user, customer, product, second_product):
    _sell(customer, admin_user, product, 3, "CASH", DAY_1, tax_cents=100)
    _sell(customer, admin_user, second_product, 4, "CARD", DAY_2, discount_cents=50)
    cancelled = _sell(customer, admin_user, product, 1, "CARD", DAY_2)
    sales_service.cancel_sale(cancelled.id, admin_user.id)

    report = reporting_service.sales_report(datetime(2026, 10, 1), datetime(2026, 11, 1))

    # 3000 + 100 tax; 4 * 250 - 50 discount
    assert report["total_sales_cents"] == 3100 + 950
    assert report["total_transactions"] == 2
    assert report["total_tax_cents"] == 100
    assert report["total_discount_cents"] == 50
    assert report["average_sale_cents"] == (3100 + 950) // 2

    methods = {m["payment_method"]: m for m in report["payment_methods"]}
    assert methods["CASH"]["amount_cents"] == 3100
    assert methods["CARD"]["count"] == 1
    assert round(methods["CASH"]["percentage"] + methods["CARD"]["percentage"]) == 100

    assert [d["date"] for d in report["daily_sales"]] == ["2026-10-14", "2026-10-15"]
    assert report["top_products"][0]["product_id"] == second_product.id
    assert report["top_products"][0]["quantity_sold"] == 4


def test_range_excludes_outside_sales(db_session, admin_user, customer, product):
    _sell(customer, admin_user, product, 1, now=datetime(2026, 9, 30, 23, 59))
    report = reporting_service.sales_report(datetime(2026, 10, 1), datetime(2026, 11, 1))
    assert report["total_transactions"] == 0
    assert report["average_sale_cents"] == 0


def test_inventory_report(db_session, product, second_product):
    report = reporting_service.inventory_report()
    assert report["total_products"] == 2
    # 10 * 600 + 5 * 100
    assert report["total_inventory_value_cents"] == 6500
    assert report["low_stock_count"] == 0


def test_profitability(db_session, admin_user, customer, product):
    _sell(customer, admin_user, product, 2)
    report = reporting_service.profitability_report()
    assert report["revenue_cents"] == 2000
    assert report["cost_of_goods_cents"] == 1200
    assert report["gross_profit_cents"] == 800
    assert report["profit_margin_pct"] == 40.0


def test_customer_report(db_session, admin_user, customer, product):
    _sell(customer, admin_user, product, 1)
    report = reporting_service.customer_report()
    assert report["total_customers"] == 1
    assert report["top_customers"][0]["total_spent_cents"] == 1000


def test_stock_alert_levels(db_session, product, second_product):
    product.stock_quantity = 0
    second_product.stock_quantity = 1
    db_session.commit()

    alerts = {a["sku"]: a["alert_level"] for a in reporting_service.stock_alerts()}
    assert alerts == {"COLA-330": "Critical", "WATER-500": "Low"}


def test_dashboard_stats(db_session, admin_user, customer, product):
    now = datetime(2026, 10, 15, 18, 0)
    _sell(customer, admin_user, product, 2, now=datetime(2026, 10, 15, 9, 0))
    _sell(customer, admin_user, product, 1, now=datetime(2026, 10, 3, 9, 0))

    stats = dashboard_service.dashboard_stats(now)
    assert stats["today_sales_cents"] == 2000
    assert stats["today_transactions"] == 1
    assert stats["month_sales_cents"] == 3000
    assert stats["month_transactions"] == 2
    assert stats["total_products"] == 1
    assert stats["total_customers"] == 1
    assert len(stats["weekly_sales"]) == 7
    assert stats["weekly_sales"][-1] == {"date": "2026-10-15", "total_cents": 2000, "transactions": 1}
    assert stats["top_products_today"][0]["quantity_sold"] == 2
    assert len(stats["recent_sales"]) == 2


def test_dashboard_endpoint(client, cashier_headers):
    resp = client.get("/api/dashboard/stats", headers=cashier_headers)
    assert resp.status_code == 200
    assert "weekly_sales" in resp.get_json()


def test_reports_endpoints(client, manager_headers, product):
    for path in (
        "/api/reports/sales?start=2026-10-01&end=2026-10-31",
        "/api/reports/inventory",
        "/api/reports/customers",
        "/api/reports/profitability",
        "/api/reports/top-products",
        "/api/reports/top-customers",
        "/api/reports/stock-alerts",
    ):
        assert client.get(path, headers=manager_headers).status_code == 200, path

    bad = client.get("/api/reports/sales?start=2026-10-31&end=2026-10-01", headers=manager_headers)
    assert bad.status_code == 400


def test_monthly_sales_groups_by_day(db_session, admin_user, customer, product):
    now = datetime(2026, 10, 15, 18, 0)
    _sell(customer, admin_user, product, 2, now=datetime(2026, 10, 15, 9, 0))
    _sell(customer, admin_user, product, 1, now=datetime(2026, 10, 3, 9, 0))
    _sell(customer, admin_user, product, 1, now=datetime(2026, 9, 10, 9, 0))
    cancelled = _sell(customer, admin_user, product, 1, now=datetime(2026, 10, 3, 11, 0))
    sales_service.cancel_sale(cancelled.id, admin_user.id)

    assert dashboard_service.monthly_sales(now) == [
        {"date": "2026-10-03", "total_cents": 1000, "transactions": 1},
        {"date": "2026-10-15", "total_cents": 2000, "transactions": 1},
    ]


def test_sales_comparison(db_session, admin_user, customer, product):
    now = datetime(2026, 10, 15, 18, 0)
    _sell(customer, admin_user, product, 2, now=datetime(2026, 10, 15, 9, 0))
    _sell(customer, admin_user, product, 1, now=datetime(2026, 10, 14, 9, 0))
    _sell(customer, admin_user, product, 1, now=datetime(2026, 9, 10, 9, 0))

    comparison = dashboard_service.sales_comparison(now)
    assert comparison["daily"]["today"] == {"revenue_cents": 2000, "transactions": 1}
    assert comparison["daily"]["yesterday"] == {"revenue_cents": 1000, "transactions": 1}
    assert comparison["daily"]["revenue_change_pct"] == 100.0
    assert comparison["daily"]["transaction_change_pct"] == 0.0
    assert comparison["monthly"]["this_month"] == {"revenue_cents": 3000, "transactions": 2}
    assert comparison["monthly"]["last_month"] == {"revenue_cents": 1000, "transactions": 1}
    assert comparison["monthly"]["revenue_change_pct"] == 200.0


def test_sales_comparison_without_history(db_session):
    comparison = dashboard_service.sales_comparison(datetime(2026, 1, 5, 12, 0))
    assert comparison["daily"]["revenue_change_pct"] == 0.0
    assert comparison["monthly"]["last_month"] == {"revenue_cents": 0, "transactions": 0}


def test_inventory_health_buckets(db_session, category, supplier, product, second_product):
    make_product(db_session, category, supplier, sku="LOW", stock=1, min_stock=2)
    make_product(db_session, category, supplier, sku="GONE", stock=0, min_stock=2)

    health = dashboard_service.inventory_health()
    assert health["overview"] == {
        "total_products": 4,
        "total_inventory_value_cents": 7100,
        "average_product_value_cents": 1775,
    }
    levels = health["stock_levels"]
    assert levels["healthy"] == {"count": 2, "percentage": 50.0, "value_cents": 6500}
    assert levels["low_stock"] == {"count": 1, "percentage": 25.0, "value_cents": 600}
    assert levels["out_of_stock"] == {"count": 1, "percentage": 25.0, "value_cents": 0}
    assert [a["sku"] for a in health["alerts"]["critical"]] == ["GONE"]
    assert health["alerts"]["warning"][0]["current_stock"] == 1


def test_inventory_health_empty_catalog(db_session):
    health = dashboard_service.inventory_health()
    assert health["overview"]["average_product_value_cents"] == 0
    assert health["stock_levels"]["healthy"]["percentage"] == 0.0


def test_dashboard_trend_endpoints(client, cashier_headers, product):
    for path in ("/api/dashboard/monthly-sales", "/api/dashboard/sales-comparison", "/api/dashboard/inventory-health"):
        assert client.get(path, headers=cashier_headers).status_code == 200, path
