# Overview: In-process change feed; publishes committed tenant/collection changes to subscribers.

"""
Change feed for tenant-scoped collections.

Models opt in by declaring a ``__collection__`` name and a ``business_id``
column. SQLAlchemy session events record which (collection, business_id)
pairs a flush touched; the pairs are published only after the enclosing
transaction commits and are discarded on rollback, so subscribers never hear
about state that did not land.

Delivery rules:
- Handlers run sequentially in the committing thread
- A failing handler is logged and does not stop delivery to the others
- A closed subscription receives nothing further
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger("modernpos.change_feed")

_PENDING_KEY = "modernpos.pending_changes"


class Subscription:
    """Handle returned by ChangeFeed.subscribe(); close() is the explicit teardown."""

    def __init__(self, feed: "ChangeFeed", collection: str, business_id: str, handler: Callable[[], None]):
        self.feed = feed
        self.collection = collection
        self.business_id = business_id
        self.handler = handler
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.feed._remove(self)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Subscription {self.collection}:{self.business_id} {state}>"


class ChangeFeed:
    def __init__(self):
        self._subscribers: dict[tuple[str, str], list[Subscription]] = {}
        self._lock = Lock()
        self._installed = False

    def init_app(self, app) -> None:
        app.extensions["modernpos.change_feed"] = self
        self.install()

    def install(self) -> None:
        """Attach the session listeners once per process."""
        with self._lock:
            if self._installed:
                return
            event.listen(Session, "after_flush", self._after_flush)
            event.listen(Session, "after_commit", self._after_commit)
            event.listen(Session, "after_rollback", self._after_rollback)
            self._installed = True

    def subscribe(self, collection: str, business_id: str, handler: Callable[[], None]) -> Subscription:
        subscription = Subscription(self, collection, business_id, handler)
        with self._lock:
            self._subscribers.setdefault((collection, business_id), []).append(subscription)
        logger.debug("Subscribed to %s for business %s", collection, business_id)
        return subscription

    def subscriber_count(self, collection: str, business_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get((collection, business_id), []))

    def publish(self, collection: str, business_id: str) -> int:
        """Notify every open subscription for the pair; returns how many handlers failed."""
        with self._lock:
            targets = list(self._subscribers.get((collection, business_id), []))

        failed = 0
        for subscription in targets:
            if subscription.closed:
                continue
            try:
                subscription.handler()
            except Exception:
                failed += 1
                logger.error(
                    "Subscriber failed for %s (business %s)",
                    collection,
                    business_id,
                    exc_info=True,
                )
        return failed

    def _remove(self, subscription: Subscription) -> None:
        key = (subscription.collection, subscription.business_id)
        with self._lock:
            remaining = [s for s in self._subscribers.get(key, []) if s is not subscription]
            if remaining:
                self._subscribers[key] = remaining
            else:
                self._subscribers.pop(key, None)

    # -- session event hooks -------------------------------------------------

    def _after_flush(self, session, flush_context) -> None:
        touched = session.info.setdefault(_PENDING_KEY, set())
        for obj in list(session.new) + list(session.dirty) + list(session.deleted):
            collection = getattr(type(obj), "__collection__", None)
            business_id = getattr(obj, "business_id", None)
            if collection and business_id:
                touched.add((collection, business_id))

    def _after_commit(self, session) -> None:
        touched = session.info.pop(_PENDING_KEY, None)
        if not touched:
            return
        for collection, business_id in sorted(touched):
            self.publish(collection, business_id)

    def _after_rollback(self, session) -> None:
        session.info.pop(_PENDING_KEY, None)
