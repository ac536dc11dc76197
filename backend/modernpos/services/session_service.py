"""
Operator sessions: one resolved tenant scope plus the catalog, cart and
finalizer that act inside it.

Everything a session needs is passed in; the registry itself is created by
create_app() and kept in app.extensions["modernpos.sessions"].

LIFECYCLE:
- open() resolves the tenant and binds the catalog
- an identity change (different email for the same operator id) re-resolves
  and rebinds; the old session is closed once the new one is bound
- resolution and catalog binding run outside the registry lock, so one
  operator opening a session never stalls another operator's requests
- close() tears down catalog subscriptions and clears the views
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable

from .cart_service import Cart, CartError
from .catalog_sync import CatalogSync
from .pricing_service import Totals, compute_totals
from .sales_service import SaleFinalizer, SalesHistory
from .settings_service import KEY_TAX_RATE
from .state_store import MemoryStateStore, StateStore
from .tenant_service import NoTenantFound, OperatorIdentity, TenantResolver

logger = logging.getLogger("modernpos.sessions")

DEFAULT_SESSION_KEY = "default"


class PosSession:
    def __init__(
        self,
        operator: OperatorIdentity,
        business_id: str,
        catalog: CatalogSync,
        cart: Cart,
        finalizer: SaleFinalizer,
        session_key: str = DEFAULT_SESSION_KEY,
    ):
        self.operator = operator
        self.business_id = business_id
        self.catalog = catalog
        self.cart = cart
        self.finalizer = finalizer
        self.session_key = session_key
        self.closed = False

    @property
    def history(self) -> SalesHistory | None:
        return self.finalizer.history

    @property
    def tax_rate(self):
        return self.catalog.settings[KEY_TAX_RATE]

    def add_to_cart(self, product_id: int) -> bool:
        product = self.catalog.get_product(product_id)
        if product is None:
            raise CartError("Product not found")
        return self.cart.add(product)

    def totals(self) -> Totals:
        return compute_totals(self.cart.items, self.tax_rate)

    def finalize(self, payment_type: str, amount_tendered=None, sale_id: str | None = None):
        return self.finalizer.finalize(
            self.cart,
            self.business_id,
            self.operator,
            payment_type,
            amount_tendered,
            tax_rate_percent=self.tax_rate,
            sale_id=sale_id,
        )

    def close(self) -> None:
        if not self.closed:
            self.catalog.close()
            self.closed = True


class SessionRegistry:
    def __init__(
        self,
        resolver_factory: Callable[[], TenantResolver] = TenantResolver,
        catalog_factory: Callable[[], CatalogSync] = CatalogSync,
        store_factory: Callable[[], StateStore] = MemoryStateStore,
    ):
        self._resolver_factory = resolver_factory
        self._catalog_factory = catalog_factory
        self._store_factory = store_factory
        self._store: StateStore | None = None
        self._sessions: dict[tuple[str, str], PosSession] = {}
        self._lock = Lock()

    def _state_store(self) -> StateStore:
        with self._lock:
            if self._store is None:
                self._store = self._store_factory()
            return self._store

    def open(self, operator: OperatorIdentity, session_key: str | None = None) -> PosSession:
        """
        Return the operator's session, creating it if needed.

        Raises NoTenantFound (or AmbiguousTenantError) when the identity maps
        to no single business; no session is kept in that case.
        """
        key = (operator.id, session_key or DEFAULT_SESSION_KEY)
        with self._lock:
            existing = self._sessions.get(key)
            if existing is not None and not existing.closed and existing.operator == operator:
                return existing

        # Resolve and bind outside the registry lock; other sessions keep serving
        try:
            business_id = self._resolver_factory().resolve(operator)
        except NoTenantFound:
            with self._lock:
                stale = self._sessions.get(key)
                if stale is not None and stale.operator != operator:
                    del self._sessions[key]
                else:
                    stale = None
            if stale is not None:
                stale.close()
            raise
        session = self._build(operator, business_id, key[1])

        with self._lock:
            current = self._sessions.get(key)
            if current is not None and not current.closed and current.operator == operator:
                winner, loser = current, session
            else:
                if current is not None:
                    logger.info("Operator %s identity changed; re-resolving tenant", operator.id)
                self._sessions[key] = session
                winner, loser = session, current

        if loser is not None:
            loser.close()
        return winner

    def get(self, operator_id: str, session_key: str | None = None) -> PosSession | None:
        return self._sessions.get((operator_id, session_key or DEFAULT_SESSION_KEY))

    def close(self, operator_id: str, session_key: str | None = None) -> None:
        with self._lock:
            session = self._sessions.pop((operator_id, session_key or DEFAULT_SESSION_KEY), None)
        if session is not None:
            session.close()

    def __len__(self) -> int:
        return len(self._sessions)

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    def _build(self, operator: OperatorIdentity, business_id: str, session_key: str) -> PosSession:
        store = self._state_store()
        scope = f"{business_id}:{operator.id}:{session_key}"

        catalog = self._catalog_factory()
        catalog.bind(business_id)

        cart = Cart(stock_source=catalog.get_product, store=store, key=f"cart:{scope}")
        history = SalesHistory(store=store, key=f"sales:{scope}")
        finalizer = SaleFinalizer(history=history)

        logger.info("Opened session for operator %s in business %s", operator.id, business_id)
        return PosSession(operator, business_id, catalog, cart, finalizer, session_key=session_key)
