# Overview: Durable key-value port for per-session state (cart contents, local sales history).

from __future__ import annotations

import copy
from threading import Lock
from typing import Any

from sqlalchemy.orm import Session

from ..extensions import db
from ..models import SessionState


class StateStore:
    """Port: values are JSON-compatible (dicts, lists, strings, numbers)."""

    def load(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def save(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStateStore(StateStore):
    """Process-local store; state lives as long as the instance."""

    def __init__(self):
        self._data: dict[str, Any] = {}
        self._lock = Lock()

    def load(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def save(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class DatabaseStateStore(StateStore):
    """
    Stores each key as a JSON row in session_state.

    Uses its own short transactions so a save never commits (or is rolled
    back with) unrelated work pending on the request session.
    """

    def __init__(self, engine=None):
        self._engine = engine if engine is not None else db.engine

    def load(self, key: str, default: Any = None) -> Any:
        with Session(self._engine) as session:
            row = session.get(SessionState, key)
            if row is None:
                return default
            return row.value

    def save(self, key: str, value: Any) -> None:
        with Session(self._engine) as session, session.begin():
            row = session.get(SessionState, key)
            if row is None:
                session.add(SessionState(key=key, value=value))
            else:
                row.value = value

    def delete(self, key: str) -> None:
        with Session(self._engine) as session, session.begin():
            row = session.get(SessionState, key)
            if row is not None:
                session.delete(row)
