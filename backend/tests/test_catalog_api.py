"""
Products, categories and suppliers through the HTTP API.
"""

from datetime import datetime

import pytest

from inventory_api.models import Category, Product, StockMovement, Supplier
from inventory_api.services import sales_service


def _product_payload(category, supplier, **overrides):
    payload = {
        "name": "Orange Juice 1L",
        "sku": "OJ-1L",
        "barcode": "4000000000011",
        "price_cents": 349,
        "cost_price_cents": 180,
        "stock_quantity": 24,
        "min_stock_level": 6,
        "category_id": category.id,
        "supplier_id": supplier.id,
    }
    payload.update(overrides)
    return payload


class TestProducts:

    def test_create_books_initial_stock(self, client, db_session, manager_headers, category, supplier):
        resp = client.post("/api/products", json=_product_payload(category, supplier), headers=manager_headers)
        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["stock_quantity"] == 24
        assert product["category_name"] == "Beverages"
        assert product["supplier_name"] == "Acme Wholesale"

        movement = db_session.query(StockMovement).filter_by(product_id=product["id"]).one()
        assert movement.movement_type == "ADJUSTMENT"
        assert movement.previous_quantity == 0
        assert movement.new_quantity == 24

    def test_missing_required_fields(self, client, manager_headers, category, supplier):
        resp = client.post("/api/products", json={"name": "Nameless"}, headers=manager_headers)
        assert resp.status_code == 400
        assert "Missing required fields" in resp.get_json()["error"]

    def test_unknown_field_rejected(self, client, manager_headers, category, supplier):
        resp = client.post(
            "/api/products",
            json=_product_payload(category, supplier, is_low_stock=True),
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_price_must_be_integer_cents(self, client, manager_headers, category, supplier):
        resp = client.post(
            "/api/products",
            json=_product_payload(category, supplier, price_cents=3.49),
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_duplicate_sku_conflict(self, client, manager_headers, category, supplier, product):
        resp = client.post(
            "/api/products",
            json=_product_payload(category, supplier, sku=product.sku),
            headers=manager_headers,
        )
        assert resp.status_code == 409

    def test_duplicate_barcode_conflict(self, client, manager_headers, category, supplier, product):
        resp = client.post(
            "/api/products",
            json=_product_payload(category, supplier, barcode=product.barcode),
            headers=manager_headers,
        )
        assert resp.status_code == 409

    def test_inactive_category_rejected(self, client, db_session, manager_headers, category, supplier):
        category.is_active = False
        db_session.commit()
        resp = client.post("/api/products", json=_product_payload(category, supplier), headers=manager_headers)
        assert resp.status_code == 400

    def test_update_cannot_touch_stock(self, client, manager_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"stock_quantity": 99}, headers=manager_headers)
        assert resp.status_code == 400

    def test_oversized_stock_rejected(self, client, manager_headers, category, supplier):
        resp = client.post(
            "/api/products",
            json=_product_payload(category, supplier, stock_quantity=10**20),
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_update_price(self, client, manager_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"price_cents": 1299}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["product"]["price_cents"] == 1299

    def test_soft_delete(self, client, db_session, manager_headers, product):
        resp = client.delete(f"/api/products/{product.id}", headers=manager_headers)
        assert resp.status_code == 200
        assert db_session.get(Product, product.id).is_active is False

        listed = client.get("/api/products", headers=manager_headers).get_json()
        assert listed["count"] == 0

    def test_reactivation_refused_under_inactive_category(self, client, db_session, manager_headers, category, product):
        assert client.delete(f"/api/products/{product.id}", headers=manager_headers).status_code == 200
        assert client.delete(f"/api/categories/{category.id}", headers=manager_headers).status_code == 200

        resp = client.put(f"/api/products/{product.id}", json={"is_active": True}, headers=manager_headers)
        assert resp.status_code == 400
        assert "active category" in resp.get_json()["error"]
        assert db_session.get(Product, product.id).is_active is False

    def test_reactivation_with_live_references(self, client, db_session, manager_headers, product):
        client.delete(f"/api/products/{product.id}", headers=manager_headers)
        resp = client.put(f"/api/products/{product.id}", json={"is_active": True}, headers=manager_headers)
        assert resp.status_code == 200
        assert db_session.get(Product, product.id).is_active is True

    def test_lookup_by_sku_and_barcode(self, client, cashier_headers, product):
        assert client.get(f"/api/products/sku/{product.sku}", headers=cashier_headers).status_code == 200
        resp = client.get(f"/api/products/barcode/{product.barcode}", headers=cashier_headers)
        assert resp.get_json()["product"]["id"] == product.id
        assert client.get("/api/products/sku/NOPE", headers=cashier_headers).status_code == 404

    def test_search_and_filters(self, client, cashier_headers, product, second_product):
        resp = client.get("/api/products?search=WATER", headers=cashier_headers)
        assert [p["sku"] for p in resp.get_json()["items"]] == ["WATER-500"]

    def test_low_and_out_of_stock(self, client, db_session, cashier_headers, product, second_product):
        product.stock_quantity = 0
        second_product.stock_quantity = 2
        second_product.min_stock_level = 2
        db_session.commit()

        low = client.get("/api/products/low-stock", headers=cashier_headers).get_json()
        assert {p["sku"] for p in low["items"]} == {"COLA-330", "WATER-500"}

        out = client.get("/api/products/out-of-stock", headers=cashier_headers).get_json()
        assert [p["sku"] for p in out["items"]] == ["COLA-330"]

    def test_get_missing_product(self, client, cashier_headers):
        assert client.get("/api/products/999", headers=cashier_headers).status_code == 404


class TestStockEndpoint:

    def test_purchase(self, client, manager_headers, product):
        resp = client.post(
            f"/api/products/{product.id}/stock",
            json={"quantity": 12, "movement_type": "PURCHASE", "reference": "PO-77"},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["product"]["stock_quantity"] == 22
        assert body["movement"]["reference"] == "PO-77"

    def test_damage_beyond_stock(self, client, manager_headers, product):
        resp = client.post(
            f"/api/products/{product.id}/stock",
            json={"quantity": 11, "movement_type": "DAMAGE"},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"]["available"] == 10

    def test_oversized_quantity_rejected(self, client, db_session, manager_headers, product):
        resp = client.post(
            f"/api/products/{product.id}/stock",
            json={"quantity": 10**20, "movement_type": "PURCHASE"},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert "cannot exceed" in resp.get_json()["error"]
        assert db_session.query(StockMovement).count() == 0

    def test_bad_movement_type(self, client, manager_headers, product):
        resp = client.post(
            f"/api/products/{product.id}/stock",
            json={"quantity": 1, "movement_type": "TELEPORT"},
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_movement_history(self, client, manager_headers, product):
        client.post(
            f"/api/products/{product.id}/stock",
            json={"quantity": 3, "movement_type": "ADJUSTMENT"},
            headers=manager_headers,
        )
        resp = client.get(f"/api/products/{product.id}/movements", headers=manager_headers)
        items = resp.get_json()["items"]
        assert len(items) == 1
        assert items[0]["new_quantity"] == 3

    def test_availability(self, client, cashier_headers, product):
        resp = client.get(f"/api/products/{product.id}/availability?quantity=11", headers=cashier_headers)
        assert resp.get_json()["available"] is False


class TestCategories:

    def test_list_includes_active_product_counts(self, client, cashier_headers, category, product, second_product):
        resp = client.get("/api/categories", headers=cashier_headers)
        items = resp.get_json()["items"]
        assert items[0]["name"] == "Beverages"
        assert items[0]["product_count"] == 2

    def test_duplicate_active_name(self, client, manager_headers, category):
        resp = client.post("/api/categories", json={"name": "Beverages"}, headers=manager_headers)
        assert resp.status_code == 409

    def test_name_reusable_after_delete(self, client, manager_headers, category):
        assert client.delete(f"/api/categories/{category.id}", headers=manager_headers).status_code == 200
        resp = client.post("/api/categories", json={"name": "Beverages"}, headers=manager_headers)
        assert resp.status_code == 201

    def test_delete_refused_while_in_use(self, client, manager_headers, category, product):
        resp = client.delete(f"/api/categories/{category.id}", headers=manager_headers)
        assert resp.status_code == 400

    def test_products_in_category(self, client, cashier_headers, category, product):
        resp = client.get(f"/api/categories/{category.id}/products", headers=cashier_headers)
        assert resp.get_json()["count"] == 1


class TestSuppliers:

    def test_create_and_update(self, client, manager_headers):
        resp = client.post(
            "/api/suppliers",
            json={"name": "Fresh Farms", "email": "hello@fresh.test", "contact_person": "Sam"},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        supplier_id = resp.get_json()["supplier"]["id"]

        resp = client.put(f"/api/suppliers/{supplier_id}", json={"phone": "555-0199"}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["supplier"]["phone"] == "555-0199"

    def test_duplicate_email(self, client, manager_headers, supplier):
        resp = client.post(
            "/api/suppliers",
            json={"name": "Other", "email": supplier.email},
            headers=manager_headers,
        )
        assert resp.status_code == 409

    def test_invalid_email(self, client, manager_headers):
        resp = client.post("/api/suppliers", json={"name": "Other", "email": "nope"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_delete_refused_while_in_use(self, client, manager_headers, supplier, product):
        resp = client.delete(f"/api/suppliers/{supplier.id}", headers=manager_headers)
        assert resp.status_code == 400

    def test_products_by_supplier(self, client, manager_headers, supplier, product):
        resp = client.get(f"/api/suppliers/{supplier.id}/products", headers=manager_headers)
        assert [p["sku"] for p in resp.get_json()["items"]] == [product.sku]


def _sell_on(product, quantity, customer, user, when):
    return sales_service.create_sale(
        customer_id=customer.id,
        items=[{"product_id": product.id, "quantity": quantity, "unit_price_cents": product.price_cents}],
        payment_method="CASH",
        paid_cents=0,
        user_id=user.id,
        now=when,
    )


class TestCatalogInsights:

    def test_category_search(self, client, cashier_headers, category):
        resp = client.get("/api/categories/search?term=drink", headers=cashier_headers)
        assert [c["name"] for c in resp.get_json()["items"]] == ["Beverages"]
        assert client.get("/api/categories/search?term=d", headers=cashier_headers).status_code == 400
        assert client.get("/api/categories/search", headers=cashier_headers).status_code == 400

    def test_supplier_search_matches_email(self, client, manager_headers, supplier):
        resp = client.get("/api/suppliers/search?term=orders@", headers=manager_headers)
        assert resp.get_json()["count"] == 1
        resp = client.get("/api/suppliers/search?term=nothing-here", headers=manager_headers)
        assert resp.get_json()["count"] == 0

    def test_category_statistics(self, client, cashier_headers, category, supplier, product, second_product):
        resp = client.get(f"/api/categories/{category.id}/statistics", headers=cashier_headers)
        stats = resp.get_json()
        assert stats["total_products"] == 2
        assert stats["total_inventory_value_cents"] == 6500
        assert stats["average_price_cents"] == 625
        assert stats["price_range"] == {"min_cents": 250, "max_cents": 1000}
        assert stats["top_suppliers"] == [{"id": supplier.id, "name": "Acme Wholesale", "product_count": 2}]
        assert client.get("/api/categories/999/statistics", headers=cashier_headers).status_code == 404

    def test_supplier_statistics_counts_inactive_products(
        self, client, db_session, manager_headers, category, supplier, product, second_product
    ):
        second_product.is_active = False
        db_session.commit()
        stats = client.get(f"/api/suppliers/{supplier.id}/statistics", headers=manager_headers).get_json()
        assert (stats["active_products"], stats["inactive_products"]) == (1, 1)
        assert stats["categories"][0]["name"] == "Beverages"

    def test_with_low_stock(self, client, db_session, manager_headers, cashier_headers, category, supplier, product, second_product):
        second_product.stock_quantity = 1
        db_session.commit()

        rows = client.get("/api/categories/with-low-stock", headers=manager_headers).get_json()["items"]
        assert len(rows) == 1
        assert rows[0]["total_products"] == 2
        assert [p["sku"] for p in rows[0]["low_stock_products"]] == ["WATER-500"]
        assert rows[0]["low_stock_value_cents"] == 100

        rows = client.get("/api/suppliers/with-low-stock", headers=manager_headers).get_json()["items"]
        assert rows[0]["email"] == "orders@acme.test"
        assert client.get("/api/categories/with-low-stock", headers=cashier_headers).status_code == 403

    def test_category_performance_counts_completed_sales(
        self, client, db_session, manager_headers, admin_user, customer, category, product, second_product
    ):
        sale = sales_service.create_sale(
            customer_id=customer.id,
            items=[
                {"product_id": product.id, "quantity": 2, "unit_price_cents": 1000},
                {"product_id": second_product.id, "quantity": 1, "unit_price_cents": 250},
            ],
            payment_method="CASH",
            paid_cents=0,
            user_id=admin_user.id,
            now=datetime(2026, 10, 14, 10, 0),
        )
        cancelled = _sell_on(product, 1, customer, admin_user, datetime(2026, 10, 14, 11, 0))
        sales_service.cancel_sale(cancelled.id, admin_user.id)
        _sell_on(product, 1, customer, admin_user, datetime(2026, 9, 1, 11, 0))

        resp = client.get(
            f"/api/categories/{category.id}/performance?start=2026-10-01&end=2026-10-31",
            headers=manager_headers,
        )
        body = resp.get_json()
        assert body["sales"] == {"revenue_cents": 2250, "quantity_sold": 3, "transactions": 1}
        assert body["top_products"][0]["product_id"] == product.id
        assert body["top_products"][0]["revenue_cents"] == sale.items[0].line_total_cents
        assert body["inventory"]["total_stock_quantity"] == 7 + 4

    def test_categories_summary(self, client, db_session, cashier_headers, category, product):
        db_session.add_all([
            Category(name="Snacks", is_active=True),
            Category(name="Retired", is_active=False),
        ])
        db_session.commit()

        summary = client.get("/api/categories/summary", headers=cashier_headers).get_json()
        assert summary["total_categories"] == 3
        assert (summary["active_categories"], summary["inactive_categories"]) == (2, 1)
        assert (summary["categories_with_products"], summary["empty_categories"]) == (1, 1)
        assert summary["top_categories"] == [
            {"category_id": category.id, "category_name": "Beverages", "product_count": 1, "inventory_value_cents": 6000}
        ]

    def test_supplier_contact(self, client, manager_headers, supplier):
        contact = client.get(f"/api/suppliers/{supplier.id}/contact", headers=manager_headers).get_json()["contact"]
        assert contact["email"] == "orders@acme.test"
        assert client.get("/api/suppliers/999/contact", headers=manager_headers).status_code == 404


class TestBulkStatus:

    def test_each_category_handled_on_its_own(self, client, db_session, admin_headers, category, product):
        empty = Category(name="Snacks", is_active=True)
        db_session.add(empty)
        db_session.commit()

        resp = client.post(
            "/api/categories/bulk-status-update",
            json={"category_ids": [category.id, empty.id, 999], "is_active": False},
            headers=admin_headers,
        )
        body = resp.get_json()
        assert resp.status_code == 200
        assert (body["total_processed"], body["successful"], body["failed"]) == (3, 1, 2)
        assert [r["success"] for r in body["results"]] == [False, True, False]
        assert db_session.get(Category, category.id).is_active is True
        assert db_session.get(Category, empty.id).is_active is False

    def test_reactivation_blocked_by_active_name(self, client, db_session, admin_headers, category):
        twin = Category(name="Beverages", is_active=False)
        db_session.add(twin)
        db_session.commit()

        body = client.post(
            "/api/categories/bulk-status-update",
            json={"category_ids": [twin.id], "is_active": True},
            headers=admin_headers,
        ).get_json()
        assert body["failed"] == 1
        assert db_session.get(Category, twin.id).is_active is False

    def test_supplier_reactivation(self, client, db_session, admin_headers, supplier):
        supplier.is_active = False
        db_session.commit()
        body = client.post(
            "/api/suppliers/bulk-status-update",
            json={"supplier_ids": [supplier.id, supplier.id], "is_active": True},
            headers=admin_headers,
        ).get_json()
        assert (body["total_processed"], body["successful"]) == (1, 1)
        assert db_session.get(Supplier, supplier.id).is_active is True

    @pytest.mark.parametrize(
        "payload",
        [{}, {"category_ids": [], "is_active": False}, {"category_ids": [1], "is_active": "no"}, {"category_ids": [0], "is_active": True}],
    )
    def test_bad_payload(self, client, admin_headers, payload):
        resp = client.post("/api/categories/bulk-status-update", json=payload, headers=admin_headers)
        assert resp.status_code == 400

    def test_admin_only(self, client, manager_headers, category):
        resp = client.post(
            "/api/categories/bulk-status-update",
            json={"category_ids": [category.id], "is_active": False},
            headers=manager_headers,
        )
        assert resp.status_code == 403
