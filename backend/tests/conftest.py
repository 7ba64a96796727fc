"""
Pytest fixtures for inventory backend tests.

Provides test database setup, users with tokens per role, a small catalog
and test client.
"""

import pytest
from inventory_api import create_app
from inventory_api.config import TestingConfig
from inventory_api.extensions import db
from inventory_api.models import Category, Customer, Product, Supplier
from inventory_api.services import session_service
from inventory_api.services.auth_service import create_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(username: str, role: str):
    return create_user(
        username=username,
        email=f"{username}@shop.test",
        password=PASSWORD,
        full_name=username.title(),
        role=role,
    )


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user("admin", "admin")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return _make_user("manager", "manager")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return _make_user("cashier", "cashier")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def _headers_for(user) -> dict:
    _, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture(scope='function')
def manager_headers(manager_user):
    return _headers_for(manager_user)


@pytest.fixture(scope='function')
def cashier_headers(cashier_user):
    return _headers_for(cashier_user)


@pytest.fixture(scope='function')
def category(db_session):
    c = Category(name="Beverages", description="Drinks", is_active=True)
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def supplier(db_session):
    s = Supplier(name="Acme Wholesale", email="orders@acme.test", is_active=True)
    db_session.add(s)
    db_session.commit()
    return s


def make_product(db_session, category, supplier, *, sku: str, stock: int = 10,
                 price_cents: int = 1000, cost_cents: int = 600, min_stock: int = 2) -> Product:
    p = Product(
        name=f"Product {sku}",
        sku=sku,
        barcode=f"BC-{sku}",
        price_cents=price_cents,
        cost_price_cents=cost_cents,
        stock_quantity=stock,
        min_stock_level=min_stock,
        category_id=category.id,
        supplier_id=supplier.id,
        is_active=True,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def product(db_session, category, supplier):
    return make_product(db_session, category, supplier, sku="COLA-330", stock=10)


@pytest.fixture(scope='function')
def second_product(db_session, category, supplier):
    return make_product(db_session, category, supplier, sku="WATER-500", stock=5, price_cents=250, cost_cents=100)


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Jane Buyer", email="jane@example.test", phone="555-0100", is_active=True)
    db_session.add(c)
    db_session.commit()
    return c
