"""
Pytest fixtures for ModernPOS backend tests.

Provides test database setup, tenant fixtures, products and a test client.
"""

import pytest
from modernpos import create_app
from modernpos.config import TestConfig
from modernpos.extensions import db
from modernpos.services.catalog_sync import ProductView
from modernpos.services.inventory_service import create_product
from modernpos.services.tenant_service import OperatorIdentity, add_employee, register_business


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        app.extensions["modernpos.sessions"].close_all()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Open operator sessions hold catalog subscriptions from earlier tests
        app.extensions["modernpos.sessions"].close_all()

        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def owner():
    return OperatorIdentity(id="owner-a", email="owner@cafe-a.test")


@pytest.fixture(scope='function')
def other_owner():
    return OperatorIdentity(id="owner-b", email="owner@cafe-b.test")


@pytest.fixture(scope='function')
def business(db_session, owner):
    """Business A (first tenant), keyed by its owner's id."""
    return register_business(owner, "Cafe A", phone_number="0700000001")


@pytest.fixture(scope='function')
def other_business(db_session, other_owner):
    """Business B (second tenant)."""
    return register_business(other_owner, "Cafe B")


@pytest.fixture(scope='function')
def cashier(db_session, business):
    """Employee of business A; signs in with a different identity id."""
    add_employee(business.id, "Ann Cashier", "Ann@Cafe-A.test")
    return OperatorIdentity(id="uid-ann", email="ann@cafe-a.test")


@pytest.fixture(scope='function')
def espresso(db_session, business, owner):
    return create_product(
        business.id,
        {"name": "Espresso", "price": "3.50", "category": "Beverages", "stock": 10},
        actor=owner,
    )


@pytest.fixture(scope='function')
def latte(db_session, business, owner):
    return create_product(
        business.id,
        {"name": "Latte", "price": "4.75", "category": "Beverages", "stock": 5},
        actor=owner,
    )


def view_of(product) -> ProductView:
    """Catalog view of a product as the cart sees it."""
    return ProductView.from_model(product)


def operator_headers(operator: OperatorIdentity, session_id: str | None = None) -> dict:
    """Helper to create identity headers for an operator."""
    headers = {"X-Operator-Id": operator.id}
    if operator.email:
        headers["X-Operator-Email"] = operator.email
    if session_id:
        headers["X-Session-Id"] = session_id
    return headers
