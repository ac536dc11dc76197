# Overview: Pytest coverage for cart stock bounds, latest-stock checks and persistence.

import random
from decimal import Decimal

import pytest
from modernpos.services.cart_service import Cart
from modernpos.services.catalog_sync import ProductView
from modernpos.services.state_store import MemoryStateStore


class FakeCatalog:
    """Stock source keyed by product id; tests replace records to simulate pushes."""

    def __init__(self, *products):
        self.products = {p.id: p for p in products}

    def get_product(self, product_id):
        return self.products.get(product_id)

    def update(self, product_id, **changes):
        current = self.products[product_id]
        data = {**current.__dict__, **changes}
        self.products[product_id] = ProductView(**data)


def _product(product_id=1, stock=3, price="3.50", name="Espresso"):
    return ProductView(id=product_id, name=name, price=Decimal(price), category="Beverages", stock=stock)


class TestAdd:
    def test_add_creates_row_then_increments(self):
        catalog = FakeCatalog(_product(stock=3))
        cart = Cart(stock_source=catalog.get_product)

        assert cart.add(catalog.get_product(1)) is True
        assert cart.add(catalog.get_product(1)) is True

        assert len(cart) == 1
        assert cart.quantity_of(1) == 2

    def test_add_out_of_stock_is_noop(self):
        catalog = FakeCatalog(_product(stock=0))
        cart = Cart(stock_source=catalog.get_product)

        assert cart.add(catalog.get_product(1)) is False
        assert cart.is_empty

    def test_add_caps_at_stock(self):
        catalog = FakeCatalog(_product(stock=2))
        cart = Cart(stock_source=catalog.get_product)

        results = [cart.add(catalog.get_product(1)) for _ in range(4)]

        assert results == [True, True, False, False]
        assert cart.quantity_of(1) == 2

    def test_add_uses_latest_stock_not_passed_copy(self):
        catalog = FakeCatalog(_product(stock=5))
        stale = catalog.get_product(1)
        cart = Cart(stock_source=catalog.get_product)
        cart.add(stale)

        catalog.update(1, stock=1)

        assert cart.add(stale) is False
        assert cart.quantity_of(1) == 1

    def test_price_is_captured_at_add_time(self):
        catalog = FakeCatalog(_product(price="3.50"))
        cart = Cart(stock_source=catalog.get_product)
        cart.add(catalog.get_product(1))

        catalog.update(1, price=Decimal("9.99"))
        cart.add(catalog.get_product(1))

        assert cart.get(1).price == Decimal("3.50")

    def test_add_without_stock_source_uses_passed_product(self):
        cart = Cart()
        assert cart.add(_product(stock=1)) is True
        assert cart.add(_product(stock=1)) is False


class TestUpdateQuantity:
    def test_increase_within_stock(self):
        catalog = FakeCatalog(_product(stock=3))
        cart = Cart(stock_source=catalog.get_product)
        cart.add(catalog.get_product(1))

        assert cart.update_quantity(1, 2) is True
        assert cart.quantity_of(1) == 3

    def test_increase_past_latest_stock_rejected(self):
        catalog = FakeCatalog(_product(stock=3))
        cart = Cart(stock_source=catalog.get_product)
        cart.add(catalog.get_product(1))
        catalog.update(1, stock=1)

        assert cart.update_quantity(1, 1) is False
        assert cart.quantity_of(1) == 1

    def test_increase_for_product_gone_from_catalog_rejected(self):
        catalog = FakeCatalog(_product(stock=3))
        cart = Cart(stock_source=catalog.get_product)
        cart.add(catalog.get_product(1))
        del catalog.products[1]

        assert cart.update_quantity(1, 1) is False

    def test_decrease_to_zero_removes_row(self):
        catalog = FakeCatalog(_product(stock=3))
        cart = Cart(stock_source=catalog.get_product)
        cart.add(catalog.get_product(1))
        cart.add(catalog.get_product(1))

        assert cart.update_quantity(1, -5) is True
        assert cart.get(1) is None
        assert cart.is_empty

    def test_decrease_allowed_when_stock_dropped(self):
        catalog = FakeCatalog(_product(stock=3))
        cart = Cart(stock_source=catalog.get_product)
        for _ in range(3):
            cart.add(catalog.get_product(1))
        catalog.update(1, stock=0)

        assert cart.update_quantity(1, -1) is True
        assert cart.quantity_of(1) == 2

    def test_unknown_row_and_zero_delta_are_noops(self):
        cart = Cart()
        assert cart.update_quantity(42, 1) is False
        cart.add(_product(stock=2))
        assert cart.update_quantity(1, 0) is False


class TestPersistence:
    def test_cart_survives_restart(self):
        store = MemoryStateStore()
        catalog = FakeCatalog(_product(1, stock=3), _product(2, stock=3, name="Latte", price="4.75"))

        cart = Cart(stock_source=catalog.get_product, store=store, key="cart:a:op:default")
        cart.add(catalog.get_product(2))
        cart.add(catalog.get_product(1))
        cart.add(catalog.get_product(1))

        restored = Cart(stock_source=catalog.get_product, store=store, key="cart:a:op:default")

        assert [(i.product_id, i.quantity) for i in restored.items] == [(2, 1), (1, 2)]
        assert restored.get(2).price == Decimal("4.75")

    def test_keys_isolate_carts(self):
        store = MemoryStateStore()
        Cart(store=store, key="cart:a").add(_product(stock=3))

        assert Cart(store=store, key="cart:b").is_empty

    def test_clear_and_remove_are_persisted(self):
        store = MemoryStateStore()
        cart = Cart(store=store, key="k")
        cart.add(_product(1, stock=3))
        cart.add(_product(2, stock=3))

        assert cart.remove(1) is True
        assert cart.remove(1) is False
        assert [i.product_id for i in Cart(store=store, key="k").items] == [2]

        cart.clear()
        assert Cart(store=store, key="k").is_empty


def test_to_dict_reports_item_count():
    cart = Cart()
    cart.add(_product(1, stock=3))
    cart.add(_product(1, stock=3))

    data = cart.to_dict()
    assert data["item_count"] == 2
    assert data["items"][0] == {
        "product_id": 1,
        "name": "Espresso",
        "price": "3.50",
        "category": "Beverages",
        "quantity": 2,
    }


class TestRandomSequences:
    @pytest.mark.parametrize("seed", [1, 7, 42, 2024, 31337])
    def test_quantities_never_exceed_stock(self, seed):
        rng = random.Random(seed)
        catalog = FakeCatalog(*[_product(pid, stock=rng.randint(0, 6), name=f"P{pid}") for pid in (1, 2, 3)])
        cart = Cart(stock_source=catalog.get_product)

        for _ in range(300):
            pid = rng.choice((1, 2, 3))
            if rng.random() < 0.5:
                cart.add(catalog.get_product(pid))
            else:
                cart.update_quantity(pid, rng.randint(-3, 3))

            for item in cart.items:
                assert 0 < item.quantity <= catalog.get_product(item.product_id).stock

    @pytest.mark.parametrize("seed", [3, 11, 99])
    def test_increases_respect_latest_stock_while_stock_moves(self, seed):
        rng = random.Random(seed)
        catalog = FakeCatalog(*[_product(pid, stock=rng.randint(0, 6), name=f"P{pid}") for pid in (1, 2)])
        cart = Cart(stock_source=catalog.get_product)

        for _ in range(300):
            pid = rng.choice((1, 2))
            before = cart.quantity_of(pid)
            roll = rng.random()
            if roll < 0.2:
                catalog.update(pid, stock=rng.randint(0, 6))
                continue
            if roll < 0.6:
                cart.add(catalog.get_product(pid))
            else:
                cart.update_quantity(pid, rng.randint(-3, 3))

            after = cart.quantity_of(pid)
            if after > before:
                assert after <= catalog.get_product(pid).stock
            assert all(item.quantity > 0 for item in cart.items)
