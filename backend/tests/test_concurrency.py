# Overview: Pytest coverage for concurrent finalization against a file-backed SQLite database.

"""
Two operators race for the last unit of a product. Each runs in its own
thread with its own app context (and therefore its own scoped session).
Exactly one sale may commit; the loser sees SaleFailed and nothing of its
attempt lands. A single cart submitted twice at once also commits once.
"""

import threading

import pytest
from modernpos import create_app
from modernpos.config import TestConfig
from modernpos.extensions import db
from modernpos.models import Product, Sale
from modernpos.services.cart_service import Cart
from modernpos.services.catalog_sync import ProductView
from modernpos.services.inventory_service import create_product
from modernpos.services.sales_service import EmptyCart, SaleFailed, SaleFinalizer
from modernpos.services.tenant_service import OperatorIdentity, add_employee, register_business


@pytest.fixture
def file_app(tmp_path):
    app = create_app(
        TestConfig,
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'pos.sqlite3'}",
        SQLITE_BUSY_TIMEOUT_SECONDS=30,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _race(app, business_id, operators, view):
    barrier = threading.Barrier(len(operators))
    results = []
    lock = threading.Lock()

    def worker(operator):
        with app.app_context():
            cart = Cart()
            cart.add(view)
            barrier.wait()
            try:
                sale = SaleFinalizer().finalize(cart, business_id, operator, "Card", tax_rate_percent=8)
                outcome = ("ok", sale.id, cart.is_empty)
            except SaleFailed as e:
                outcome = ("failed", e.details, cart.quantity_of(view.id))
            finally:
                db.session.remove()
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=worker, args=(op,)) for op in operators]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_last_unit_is_sold_exactly_once(file_app):
    owner = OperatorIdentity(id="owner-c", email="owner@c.test")
    cashier = OperatorIdentity(id="uid-cashier", email="cashier@c.test")

    with file_app.app_context():
        business = register_business(owner, "Cafe C")
        add_employee(business.id, "Cashier", cashier.email)
        product = create_product(business.id, {"name": "Last Croissant", "price": "3.25", "category": "Pastries", "stock": 1})
        view = ProductView.from_model(product)
        business_id = business.id
        db.session.remove()

    results = _race(file_app, business_id, [owner, cashier], view)

    assert len(results) == 2
    winners = [r for r in results if r[0] == "ok"]
    losers = [r for r in results if r[0] == "failed"]
    assert len(winners) == 1
    assert len(losers) == 1

    # Winner's cart cleared; loser's cart kept
    assert winners[0][2] is True
    assert losers[0][2] == 1

    with file_app.app_context():
        assert db.session.get(Product, view.id).stock == 0
        sales = db.session.query(Sale).all()
        assert [s.id for s in sales] == [winners[0][1]]
        db.session.remove()


def test_concurrent_sales_never_oversell(file_app):
    owner = OperatorIdentity(id="owner-d", email="owner@d.test")
    operators = [owner] + [OperatorIdentity(id=f"uid-{n}", email=f"c{n}@d.test") for n in range(5)]

    with file_app.app_context():
        business = register_business(owner, "Cafe D")
        for op in operators[1:]:
            add_employee(business.id, op.id, op.email)
        product = create_product(business.id, {"name": "Muffin", "price": "2.95", "category": "Pastries", "stock": 3})
        view = ProductView.from_model(product)
        business_id = business.id
        db.session.remove()

    results = _race(file_app, business_id, operators, view)

    assert len(results) == 6
    assert sum(1 for r in results if r[0] == "ok") == 3

    with file_app.app_context():
        assert db.session.get(Product, view.id).stock == 0
        assert db.session.query(Sale).count() == 3
        db.session.remove()


def test_double_submit_of_one_cart_commits_once(file_app):
    owner = OperatorIdentity(id="owner-e", email="owner@e.test")

    with file_app.app_context():
        business = register_business(owner, "Cafe E")
        product = create_product(business.id, {"name": "Bagel", "price": "2.50", "category": "Pastries", "stock": 5})
        view = ProductView.from_model(product)
        business_id = business.id
        db.session.remove()

    # One session's cart and finalizer, submitted twice at once
    cart = Cart()
    cart.add(view)
    finalizer = SaleFinalizer()
    barrier = threading.Barrier(2)
    results = []
    lock = threading.Lock()

    def worker():
        with file_app.app_context():
            barrier.wait()
            try:
                sale = finalizer.finalize(cart, business_id, owner, "Card", tax_rate_percent=8)
                outcome = ("ok", sale.id)
            except EmptyCart:
                outcome = ("empty", None)
            finally:
                db.session.remove()
            with lock:
                results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(r[0] for r in results) == ["empty", "ok"]
    assert cart.is_empty

    with file_app.app_context():
        assert db.session.get(Product, view.id).stock == 4
        assert db.session.query(Sale).count() == 1
        db.session.remove()
