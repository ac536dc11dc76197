from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..money import quantize_money, to_decimal


@dataclass(frozen=True)
class Totals:
    """Unrounded cart totals; callers quantize for display or recording."""
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def rounded(self) -> "Totals":
        """Cent values as recorded on a sale: total is the sum of the rounded parts."""
        subtotal = quantize_money(self.subtotal)
        tax = quantize_money(self.tax)
        return Totals(subtotal=subtotal, tax=tax, total=subtotal + tax)

    def to_dict(self) -> dict:
        return {"subtotal": str(self.subtotal), "tax": str(self.tax), "total": str(self.total)}


def compute_totals(items: Iterable, tax_rate_percent) -> Totals:
    """
    subtotal = sum(price * quantity) using the price carried by each item,
    tax = subtotal * rate / 100, total = subtotal + tax.
    """
    rate = to_decimal(tax_rate_percent)
    if rate < 0 or rate > 100:
        raise ValueError("tax rate must be between 0 and 100")

    subtotal = Decimal("0")
    for item in items:
        subtotal += to_decimal(item.price) * item.quantity

    tax = subtotal * rate / Decimal(100)
    return Totals(subtotal=subtotal, tax=tax, total=subtotal + tax)
