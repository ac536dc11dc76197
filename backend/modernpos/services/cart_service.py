# Overview: Per-session cart of selected products, bounded by the latest synchronized stock.

"""
Cart rules

- One row per product; adding a product already present increments it.
- add() is a no-op for products without stock and silently caps at stock.
- update_quantity() rejects an increase past stock, clamps at 0, and drops
  rows that reach 0.
- Every stock check uses the latest record from the stock source (the live
  catalog), not the copy captured when the row was first added.
- The price carried by a row is the price at add time.

The limits are advisory; SaleFinalizer re-checks stock when it commits.
Mutations are in-memory and applied in call order; each one is written
through to the state store so the cart survives restarts.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, replace
from decimal import Decimal
from threading import RLock
from typing import Callable, Iterator

from ..money import to_decimal
from .state_store import MemoryStateStore, StateStore


class CartError(ValueError):
    pass


@dataclass(frozen=True)
class CartItem:
    product_id: int
    name: str
    price: Decimal
    category: str
    quantity: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": str(self.price),
            "category": self.category,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            product_id=int(data["product_id"]),
            name=data["name"],
            price=to_decimal(data["price"]),
            category=data.get("category") or "",
            quantity=int(data["quantity"]),
        )


class Cart:
    def __init__(
        self,
        stock_source: Callable[[int], object] | None = None,
        store: StateStore | None = None,
        key: str = "cart",
    ):
        self._stock_source = stock_source
        self._store = store if store is not None else MemoryStateStore()
        self._key = key
        self._lock = RLock()
        self._items: OrderedDict[int, CartItem] = OrderedDict()

        for data in self._store.load(self._key, default=[]) or []:
            item = CartItem.from_dict(data)
            if item.quantity > 0:
                self._items[item.product_id] = item

    # -- read side ---------------------------------------------------------------

    @property
    def lock(self) -> RLock:
        """Held by SaleFinalizer from validation until the cart is cleared."""
        return self._lock

    @property
    def items(self) -> list[CartItem]:
        with self._lock:
            return list(self._items.values())

    def get(self, product_id: int) -> CartItem | None:
        return self._items.get(product_id)

    def quantity_of(self, product_id: int) -> int:
        item = self._items.get(product_id)
        return item.quantity if item else 0

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CartItem]:
        return iter(self.items)

    def to_dict(self) -> dict:
        items = self.items
        return {
            "items": [item.to_dict() for item in items],
            "item_count": sum(item.quantity for item in items),
        }

    # -- mutations -------------------------------------------------------------

    def _latest(self, product_id: int, fallback=None):
        if self._stock_source is not None:
            latest = self._stock_source(product_id)
            if latest is not None:
                return latest
        return fallback

    def add(self, product) -> bool:
        """Add one unit of `product`. Returns False when nothing changed."""
        with self._lock:
            latest = self._latest(product.id, fallback=product)
            if latest.stock <= 0:
                return False

            existing = self._items.get(product.id)
            if existing is not None:
                if existing.quantity + 1 > latest.stock:
                    return False
                self._items[product.id] = replace(existing, quantity=existing.quantity + 1)
            else:
                self._items[product.id] = CartItem(
                    product_id=product.id,
                    name=latest.name,
                    price=to_decimal(latest.price),
                    category=getattr(latest, "category", "") or "",
                    quantity=1,
                )
            self._persist()
            return True

    def update_quantity(self, product_id: int, delta: int) -> bool:
        """Adjust a row by `delta`. Returns False when nothing changed."""
        with self._lock:
            existing = self._items.get(product_id)
            if existing is None or delta == 0:
                return False

            new_quantity = existing.quantity + delta
            if delta > 0:
                latest = self._latest(product_id)
                if latest is None or new_quantity > latest.stock:
                    return False

            new_quantity = max(0, new_quantity)
            if new_quantity == 0:
                del self._items[product_id]
            else:
                self._items[product_id] = replace(existing, quantity=new_quantity)
            self._persist()
            return True

    def remove(self, product_id: int) -> bool:
        with self._lock:
            if self._items.pop(product_id, None) is None:
                return False
            self._persist()
            return True

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._persist()

    def _persist(self) -> None:
        self._store.save(self._key, [item.to_dict() for item in self._items.values()])
