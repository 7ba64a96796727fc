"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Cashier role denied manager-level operations (403)
- Admin and manager roles can perform privileged operations
- Health endpoint is public
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("POST", "/api/products/1/stock"),
            ("GET", "/api/categories"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/customers"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("POST", "/api/sales/1/cancel"),
            ("GET", "/api/reports/sales"),
            ("GET", "/api/dashboard/stats"),
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/register"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"


# =============================================================================
# CASHIER DENIED MANAGER OPERATIONS - 403
# =============================================================================


class TestCashierDenied:
    """Cashier role cannot manage catalog, stock, cancellations or reports."""

    def test_cannot_create_product(self, client, cashier_headers):
        resp = client.post("/api/products", json={"name": "x"}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_update_stock(self, client, cashier_headers):
        resp = client.post(
            "/api/products/1/stock",
            json={"quantity": 10, "movement_type": "PURCHASE"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_create_category(self, client, cashier_headers):
        resp = client.post("/api/categories", json={"name": "Evil"}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_list_suppliers(self, client, cashier_headers):
        resp = client.get("/api/suppliers", headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_cancel_sale(self, client, cashier_headers):
        resp = client.post("/api/sales/1/cancel", headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_view_reports(self, client, cashier_headers):
        resp = client.get("/api/reports/sales", headers=cashier_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_roles"] == ["admin", "manager"]

    def test_cannot_register_users(self, client, cashier_headers):
        resp = client.post(
            "/api/auth/register",
            json={"username": "x", "email": "x@x.com", "password": "P@ssw0rd123!", "full_name": "X"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403


class TestManagerLimits:

    def test_manager_cannot_register_users(self, client, manager_headers):
        resp = client.post(
            "/api/auth/register",
            json={"username": "x", "email": "x@x.com", "password": "P@ssw0rd123!", "full_name": "X"},
            headers=manager_headers,
        )
        assert resp.status_code == 403


# =============================================================================
# PRIVILEGED ACCESS - 200
# =============================================================================


class TestPrivilegedAccess:

    def test_cashier_can_read_catalog(self, client, cashier_headers):
        assert client.get("/api/products", headers=cashier_headers).status_code == 200
        assert client.get("/api/categories", headers=cashier_headers).status_code == 200
        assert client.get("/api/customers", headers=cashier_headers).status_code == 200

    def test_manager_can_view_reports(self, client, manager_headers):
        assert client.get("/api/reports/sales", headers=manager_headers).status_code == 200
        assert client.get("/api/reports/inventory", headers=manager_headers).status_code == 200

    def test_admin_can_list_suppliers(self, client, admin_headers):
        assert client.get("/api/suppliers", headers=admin_headers).status_code == 200


# =============================================================================
# PUBLIC ENDPOINTS - NO AUTH REQUIRED
# =============================================================================


class TestPublicEndpoints:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"
