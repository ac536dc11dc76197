# Overview: Live, tenant-scoped read views of products, employees and settings.

"""
CatalogSync keeps three read views for one business current:

- products   tuple[ProductView, ...]
- employees  tuple[EmployeeView, ...]
- settings   dict (defaults overlaid with stored keys)

Each view is refreshed when the change feed reports a committed change to
its collection. A refresh loads the full collection and swaps it in with a
single assignment, so readers see the previous snapshot or the new one,
never a mix. A load that finishes after a later-started one is dropped.
Settings are merged on arrival: the stored (possibly partial) document is
overlaid onto the last known settings.

Refresh failures are logged; the last good snapshot stays visible. bind()
to a different business, unbind() and close() tear the subscriptions down
and clear the views.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from threading import RLock
from types import MappingProxyType
from typing import Callable, Mapping

from sqlalchemy.orm import Session

from ..extensions import change_feed as default_feed, db
from ..models import Employee, Product
from ..money import from_cents
from .settings_service import default_settings, get_stored_settings

logger = logging.getLogger("modernpos.catalog")

PRODUCTS = "products"
EMPLOYEES = "employees"
SETTINGS = "settings"
VIEWS = (PRODUCTS, EMPLOYEES, SETTINGS)


@dataclass(frozen=True)
class ProductView:
    id: int
    name: str
    price: Decimal
    category: str
    stock: int
    image: str | None = None
    description: str | None = None
    barcode: str | None = None

    @classmethod
    def from_model(cls, product: Product) -> "ProductView":
        return cls(
            id=product.id,
            name=product.name,
            price=from_cents(product.price_cents),
            category=product.category,
            stock=product.stock,
            image=product.image,
            description=product.description,
            barcode=product.barcode,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "category": self.category,
            "stock": self.stock,
            "image": self.image,
            "description": self.description,
            "barcode": self.barcode,
        }


@dataclass(frozen=True)
class EmployeeView:
    id: int
    name: str
    email: str
    role: str
    status: str
    phone: str | None = None

    @classmethod
    def from_model(cls, employee: Employee) -> "EmployeeView":
        return cls(
            id=employee.id,
            name=employee.name,
            email=employee.email,
            role=employee.role,
            status=employee.status,
            phone=employee.phone,
        )


class CatalogLoader:
    """Reads full collections with a short-lived session of its own."""

    def __init__(self, engine=None):
        self._engine = engine if engine is not None else db.engine

    def load_products(self, business_id: str) -> list[ProductView]:
        with Session(self._engine) as session:
            rows = (
                session.query(Product)
                .filter_by(business_id=business_id)
                .order_by(Product.name, Product.id)
                .all()
            )
            return [ProductView.from_model(p) for p in rows]

    def load_employees(self, business_id: str) -> list[EmployeeView]:
        with Session(self._engine) as session:
            rows = (
                session.query(Employee)
                .filter_by(business_id=business_id)
                .order_by(Employee.name, Employee.id)
                .all()
            )
            return [EmployeeView.from_model(e) for e in rows]

    def load_settings(self, business_id: str) -> dict:
        with Session(self._engine) as session:
            return get_stored_settings(business_id, session=session)


class _ProductSnapshot:
    __slots__ = ("items", "by_id")

    def __init__(self, items=()):
        self.items = tuple(items)
        self.by_id = MappingProxyType({p.id: p for p in self.items})


class CatalogSync:
    def __init__(self, loader: CatalogLoader | None = None, feed=None, defaults: Mapping | None = None):
        self._loader = loader if loader is not None else CatalogLoader()
        self._feed = feed if feed is not None else default_feed
        self._defaults = dict(defaults) if defaults is not None else default_settings()
        self._lock = RLock()
        # Per-view load tickets: a load only lands if no later one already has
        self._issued = dict.fromkeys(VIEWS, 0)
        self._applied = dict.fromkeys(VIEWS, 0)
        self._subscriptions = []
        self._listeners: list[Callable[[str, object], None]] = []
        self._business_id: str | None = None
        self._products = _ProductSnapshot()
        self._employees: tuple[EmployeeView, ...] = ()
        self._settings = MappingProxyType(dict(self._defaults))

    # -- read side -------------------------------------------------------------

    @property
    def business_id(self) -> str | None:
        return self._business_id

    @property
    def is_bound(self) -> bool:
        return self._business_id is not None

    @property
    def products(self) -> tuple[ProductView, ...]:
        return self._products.items

    @property
    def employees(self) -> tuple[EmployeeView, ...]:
        return self._employees

    @property
    def settings(self) -> Mapping:
        return self._settings

    def get_product(self, product_id: int) -> ProductView | None:
        return self._products.by_id.get(product_id)

    def add_listener(self, listener: Callable[[str, object], None]) -> Callable[[], None]:
        """Register listener(view_name, snapshot); returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def _remove():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _remove

    # -- lifecycle ---------------------------------------------------------------

    def bind(self, business_id: str) -> None:
        """Scope the views to a business; a different business tears down the old scope first."""
        with self._lock:
            if self._business_id == business_id:
                return
            if self._business_id is not None:
                self._teardown()

            self._business_id = business_id
            self._subscriptions = [
                self._feed.subscribe(PRODUCTS, business_id, lambda: self.refresh(PRODUCTS, business_id)),
                self._feed.subscribe(EMPLOYEES, business_id, lambda: self.refresh(EMPLOYEES, business_id)),
                self._feed.subscribe(SETTINGS, business_id, lambda: self.refresh(SETTINGS, business_id)),
            ]
            logger.info("Catalog bound to business %s", business_id)

        for view in VIEWS:
            self.refresh(view, business_id)

    def unbind(self) -> None:
        with self._lock:
            if self._business_id is not None:
                logger.info("Catalog unbound from business %s", self._business_id)
            self._teardown()

    close = unbind

    def _teardown(self) -> None:
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions = []
        self._business_id = None
        self._products = _ProductSnapshot()
        self._employees = ()
        self._settings = MappingProxyType(dict(self._defaults))

    # -- refresh -------------------------------------------------------------------

    def refresh(self, view: str, business_id: str | None = None) -> bool:
        """
        Reload one view. Returns False when the load failed (last snapshot kept),
        when the scope moved on while loading, or when a load that started
        later has already been applied.
        """
        business_id = business_id or self._business_id
        if business_id is None:
            return False
        if view not in VIEWS:
            raise ValueError(f"unknown view: {view}")

        with self._lock:
            self._issued[view] += 1
            ticket = self._issued[view]

        try:
            if view == PRODUCTS:
                loaded = _ProductSnapshot(self._loader.load_products(business_id))
            elif view == EMPLOYEES:
                loaded = tuple(self._loader.load_employees(business_id))
            else:
                loaded = self._loader.load_settings(business_id)
        except Exception:
            logger.error("Failed to refresh %s for business %s", view, business_id, exc_info=True)
            return False

        with self._lock:
            if self._business_id != business_id:
                return False
            if ticket < self._applied[view]:
                logger.debug("Dropped out-of-order %s load for business %s", view, business_id)
                return False
            self._applied[view] = ticket
            if view == PRODUCTS:
                self._products = loaded
                snapshot = loaded.items
            elif view == EMPLOYEES:
                self._employees = loaded
                snapshot = loaded
            else:
                merged = dict(self._settings)
                merged.update(loaded)
                self._settings = MappingProxyType(merged)
                snapshot = self._settings
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(view, snapshot)
            except Exception:
                logger.error("Catalog listener failed for %s", view, exc_info=True)
        return True
