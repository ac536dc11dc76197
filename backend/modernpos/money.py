"""
Money helpers.

Authoritative storage is integer cents; arithmetic is done on Decimal and
only quantized to cents (half-up) where a value is recorded.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")

# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


def to_decimal(value) -> Decimal:
    """Convert user or stored input to Decimal without passing through binary floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a monetary amount: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"not a monetary amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"not a monetary amount: {value!r}")
    return result


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value) -> int:
    return int(quantize_money(value) * 100)


def from_cents(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: int | None) -> str | None:
    value = from_cents(cents)
    return None if value is None else str(value)
