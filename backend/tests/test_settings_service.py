# Overview: Pytest coverage for business settings defaults, merge updates and validation.

import pytest
from decimal import Decimal

from modernpos.extensions import db
from modernpos.models import BusinessSetting
from modernpos.services import settings_service
from modernpos.services.settings_service import SettingsNotFoundError, SettingsValidationError


def test_defaults_come_from_config(app, business):
    settings = settings_service.get_settings(business.id)

    assert settings["tax_rate"] == app.config["DEFAULT_TAX_RATE_PERCENT"]
    assert settings["currency"] == app.config["DEFAULT_CURRENCY"]
    assert settings["low_stock_threshold"] == app.config["DEFAULT_LOW_STOCK_THRESHOLD"]
    assert settings["enable_notifications"] is True
    assert settings["require_manager_approval"] is False


def test_update_only_touches_given_keys(business, owner):
    settings_service.update_settings(business.id, {"store_name": "Corner Cafe"}, actor_id=owner.id)
    settings = settings_service.update_settings(business.id, {"tax_rate": "16.0"})

    assert settings["store_name"] == "Corner Cafe"
    assert settings["tax_rate"] == "16"
    assert settings_service.get_tax_rate(business.id) == Decimal("16")

    rows = db.session.query(BusinessSetting).filter_by(business_id=business.id).all()
    assert sorted(r.key for r in rows) == ["store_name", "tax_rate"]


def test_update_overwrites_existing_value(business):
    settings_service.update_settings(business.id, {"low_stock_threshold": 5})
    settings_service.update_settings(business.id, {"low_stock_threshold": "7"})

    assert settings_service.get_settings(business.id)["low_stock_threshold"] == 7
    assert db.session.query(BusinessSetting).filter_by(business_id=business.id).count() == 1


def test_values_are_coerced(business):
    settings = settings_service.update_settings(
        business.id,
        {"currency": " usd ", "enable_notifications": "off", "accent_color": "#00ff00"},
    )

    assert settings["currency"] == "USD"
    assert settings["enable_notifications"] is False
    assert settings["accent_color"] == "#00ff00"


@pytest.mark.parametrize(
    "changes",
    [
        {},
        {"unknown_key": 1},
        {"tax_rate": "101"},
        {"tax_rate": -1},
        {"tax_rate": "eight"},
        {"low_stock_threshold": -1},
        {"low_stock_threshold": True},
        {"accent_color": "red"},
        {"store_name": "  "},
        {"enable_notifications": "maybe"},
    ],
)
def test_invalid_updates_rejected(business, changes):
    with pytest.raises(SettingsValidationError):
        settings_service.update_settings(business.id, changes)
    assert settings_service.get_stored_settings(business.id) == {}


def test_settings_are_tenant_scoped(business, other_business):
    settings_service.update_settings(business.id, {"tax_rate": 16})

    assert settings_service.get_settings(other_business.id)["tax_rate"] == "8"


def test_unknown_business(db_session):
    with pytest.raises(SettingsNotFoundError):
        settings_service.update_settings("missing", {"tax_rate": 1})
