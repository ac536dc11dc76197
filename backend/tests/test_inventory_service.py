# Overview: Pytest coverage for product creation, restocking and stock status reporting.

import pytest
from modernpos.services.inventory_service import (
    STATUS_CRITICAL,
    STATUS_LOW,
    STATUS_OK,
    ProductNotFound,
    StockConflict,
    ValidationError,
    create_product,
    get_product,
    list_products,
    restock_product,
    stock_report,
    stock_status,
)
from modernpos.services.settings_service import update_settings


class TestCreateProduct:
    def test_create_records_creator_and_cents(self, business, owner):
        product = create_product(
            business.id,
            {"name": " Mocha ", "price": "5.25", "category": "Beverages", "stock": "60", "barcode": " 123 "},
            actor=owner,
        )

        assert product.name == "Mocha"
        assert product.price_cents == 525
        assert str(product.price) == "5.25"
        assert product.stock == 60
        assert product.barcode == "123"
        assert product.created_by_id == owner.id
        assert product.created_by_email == owner.email
        assert product.to_dict()["price"] == "5.25"

    def test_stock_defaults_to_zero(self, business):
        product = create_product(business.id, {"name": "Soup", "price": 5.95, "category": "Food"})
        assert product.stock == 0
        assert product.price_cents == 595

    @pytest.mark.parametrize(
        "payload",
        [
            {"price": "1", "category": "Food"},
            {"name": "X", "price": "1"},
            {"name": "X", "category": "Food"},
            {"name": "X", "price": "-1", "category": "Food"},
            {"name": "X", "price": "abc", "category": "Food"},
            {"name": "X", "price": "1", "category": "Food", "stock": -1},
            {"name": "X", "price": "1", "category": "Food", "stock": True},
            {"name": "X", "price": "1", "category": "Food", "stock": 1.5},
            {"name": "X", "price": "1", "category": "Food", "sku": "nope"},
            {"name": 12, "price": "1", "category": "Food"},
        ],
    )
    def test_invalid_payloads_rejected(self, business, payload):
        with pytest.raises(ValidationError):
            create_product(business.id, payload)
        assert list_products(business.id) == []

    def test_unknown_business_rejected(self, db_session):
        with pytest.raises(ProductNotFound):
            create_product("missing", {"name": "X", "price": "1", "category": "Food"})


class TestRestock:
    def test_positive_and_negative_deltas(self, business, espresso):
        assert restock_product(business.id, espresso.id, 5).stock == 15
        assert restock_product(business.id, espresso.id, -15).stock == 0

    def test_below_zero_is_conflict(self, business, espresso):
        with pytest.raises(StockConflict) as excinfo:
            restock_product(business.id, espresso.id, -11)

        assert excinfo.value.details["stock"] == 10
        assert get_product(business.id, espresso.id).stock == 10

    def test_version_bumps_on_each_write(self, business, espresso):
        before = espresso.version_id
        product = restock_product(business.id, espresso.id, 1)
        assert product.version_id == before + 1

    @pytest.mark.parametrize("delta", [0, "3", 1.0, True, None])
    def test_invalid_delta(self, business, espresso, delta):
        with pytest.raises(ValidationError):
            restock_product(business.id, espresso.id, delta)

    def test_other_business_product_not_found(self, business, other_business, espresso):
        with pytest.raises(ProductNotFound):
            restock_product(other_business.id, espresso.id, 1)


class TestStockStatus:
    @pytest.mark.parametrize(
        "stock,expected",
        [(0, STATUS_CRITICAL), (1, STATUS_LOW), (10, STATUS_LOW), (11, STATUS_OK)],
    )
    def test_thresholds(self, stock, expected):
        assert stock_status(stock, 10) == expected

    def test_report_uses_business_threshold(self, business, espresso, latte):
        create_product(business.id, {"name": "Salad", "price": "8.50", "category": "Food", "stock": 0})

        report = stock_report(business.id)
        assert report["threshold"] == 10
        assert report["counts"] == {STATUS_CRITICAL: 1, STATUS_LOW: 2, STATUS_OK: 0}

        update_settings(business.id, {"low_stock_threshold": 5})
        report = stock_report(business.id)
        assert report["threshold"] == 5
        assert report["counts"] == {STATUS_CRITICAL: 1, STATUS_LOW: 1, STATUS_OK: 1}
        assert [p["name"] for p in report["products"]] == ["Espresso", "Latte", "Salad"]


def test_list_products_is_tenant_scoped_and_sorted(business, other_business, latte, espresso):
    create_product(other_business.id, {"name": "Americano", "price": "3", "category": "Beverages"})

    assert [p.name for p in list_products(business.id)] == ["Espresso", "Latte"]
