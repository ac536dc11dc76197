from __future__ import annotations

from ..extensions import db


class SessionState(db.Model):
    """Durable key-value slot for per-session state (cart contents, local sales history)."""
    __tablename__ = "session_state"

    key = db.Column(db.String(255), primary_key=True)
    value = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
