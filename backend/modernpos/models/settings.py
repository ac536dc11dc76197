from __future__ import annotations

from ..extensions import db
from modernpos.time_utils import to_utc_z


class BusinessSetting(db.Model):
    """
    Key-value settings at the business level.

    One row per stored key; a business that never wrote a key falls back to
    the configured default, so an update only ever touches the keys it names.
    """
    __tablename__ = "business_settings"
    __collection__ = "settings"
    __table_args__ = (
        db.UniqueConstraint("business_id", "key", name="uq_business_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.String(128), db.ForeignKey("businesses.id"), nullable=False, index=True)

    key = db.Column(db.String(128), nullable=False)
    value = db.Column(db.JSON, nullable=True)

    updated_by_id = db.Column(db.String(128), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "business_id": self.business_id,
            "key": self.key,
            "value": self.value,
            "updated_by_id": self.updated_by_id,
            "updated_at": to_utc_z(self.updated_at),
        }
