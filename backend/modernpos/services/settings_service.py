from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

from flask import current_app, has_app_context

from ..extensions import db
from ..models import Business, BusinessSetting
from ..money import to_decimal
from .concurrency import run_with_retry


COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

KEY_STORE_NAME = "store_name"
KEY_CURRENCY = "currency"
KEY_TAX_RATE = "tax_rate"
KEY_LOW_STOCK_THRESHOLD = "low_stock_threshold"
KEY_ACCENT_COLOR = "accent_color"
KEY_ENABLE_NOTIFICATIONS = "enable_notifications"
KEY_ENABLE_LOW_STOCK_ALERTS = "enable_low_stock_alerts"
KEY_REQUIRE_MANAGER_APPROVAL = "require_manager_approval"

BOOL_KEYS = {KEY_ENABLE_NOTIFICATIONS, KEY_ENABLE_LOW_STOCK_ALERTS, KEY_REQUIRE_MANAGER_APPROVAL}


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


class SettingsNotFoundError(SettingsError):
    pass


def default_settings() -> dict[str, Any]:
    """Defaults from app config (or built-ins outside an app context)."""
    config = current_app.config if has_app_context() else {}
    return {
        KEY_STORE_NAME: config.get("DEFAULT_STORE_NAME", "ModernPOS Store"),
        KEY_CURRENCY: config.get("DEFAULT_CURRENCY", "KES"),
        KEY_TAX_RATE: str(config.get("DEFAULT_TAX_RATE_PERCENT", "8")),
        KEY_LOW_STOCK_THRESHOLD: int(config.get("DEFAULT_LOW_STOCK_THRESHOLD", 10)),
        KEY_ACCENT_COLOR: "#FF6347",
        KEY_ENABLE_NOTIFICATIONS: True,
        KEY_ENABLE_LOW_STOCK_ALERTS: True,
        KEY_REQUIRE_MANAGER_APPROVAL: False,
    }


def _coerce_bool(key: str, v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s in {"true", "1", "yes", "on"}:
            return True
        if s in {"false", "0", "no", "off"}:
            return False
    raise SettingsValidationError(f"{key}: expected boolean")


def _coerce_value(key: str, v: Any) -> Any:
    if key in BOOL_KEYS:
        return _coerce_bool(key, v)

    if key == KEY_TAX_RATE:
        try:
            rate = to_decimal(v)
        except ValueError:
            raise SettingsValidationError(f"{key}: expected a number")
        if rate < 0 or rate > 100:
            raise SettingsValidationError(f"{key}: must be between 0 and 100")
        # Stored as a string so JSON keeps the exact decimal
        return format(rate.normalize(), "f")

    if key == KEY_LOW_STOCK_THRESHOLD:
        if isinstance(v, bool):
            raise SettingsValidationError(f"{key}: expected integer")
        if isinstance(v, float) and int(v) == v:
            v = int(v)
        if isinstance(v, str):
            try:
                v = int(v.strip())
            except ValueError:
                raise SettingsValidationError(f"{key}: expected integer")
        if not isinstance(v, int):
            raise SettingsValidationError(f"{key}: expected integer")
        if v < 0:
            raise SettingsValidationError(f"{key}: must be >= 0")
        return v

    if key == KEY_ACCENT_COLOR:
        if not isinstance(v, str) or not COLOR_RE.match(v.strip()):
            raise SettingsValidationError(f"{key}: expected hex color like #FF6347")
        return v.strip()

    if key == KEY_CURRENCY:
        if not isinstance(v, str) or not v.strip():
            raise SettingsValidationError(f"{key}: expected currency label")
        return v.strip().upper()

    if key == KEY_STORE_NAME:
        if not isinstance(v, str) or not v.strip():
            raise SettingsValidationError(f"{key}: must not be empty")
        return v.strip()

    raise SettingsValidationError(f"Unknown setting: {key}")


def get_stored_settings(business_id: str, session=None) -> dict[str, Any]:
    """Only the keys the business has written (a partial document)."""
    session = session or db.session
    rows = session.query(BusinessSetting).filter_by(business_id=business_id).all()
    return {row.key: row.value for row in rows}


def get_settings(business_id: str) -> dict[str, Any]:
    """Effective settings: defaults overlaid with stored keys."""
    effective = default_settings()
    effective.update(get_stored_settings(business_id))
    return effective


def get_tax_rate(business_id: str) -> Decimal:
    return to_decimal(get_settings(business_id)[KEY_TAX_RATE])


def update_settings(business_id: str, changes: dict[str, Any], actor_id: str | None = None) -> dict[str, Any]:
    """
    Merge-update: validate and upsert only the keys present in `changes`.

    Keys not named in `changes` keep their stored value.
    """
    if not isinstance(changes, dict) or not changes:
        raise SettingsValidationError("No settings provided")

    defaults = default_settings()
    unknown = sorted(k for k in changes if k not in defaults)
    if unknown:
        raise SettingsValidationError(f"Unknown setting: {', '.join(unknown)}")

    coerced = {key: _coerce_value(key, value) for key, value in changes.items()}

    def _op():
        if db.session.get(Business, business_id) is None:
            raise SettingsNotFoundError("Business not found")

        existing = {
            row.key: row
            for row in db.session.query(BusinessSetting)
            .filter(BusinessSetting.business_id == business_id, BusinessSetting.key.in_(list(coerced)))
            .all()
        }
        for key, value in coerced.items():
            row = existing.get(key)
            if row is None:
                db.session.add(BusinessSetting(business_id=business_id, key=key, value=value, updated_by_id=actor_id))
            else:
                row.value = value
                row.updated_by_id = actor_id
        db.session.commit()

    run_with_retry(_op)
    return get_settings(business_id)
