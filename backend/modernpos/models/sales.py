from __future__ import annotations

from ..extensions import db
from modernpos.money import format_cents
from modernpos.time_utils import to_utc_z


class Sale(db.Model):
    """
    Finalized sale. Immutable once written.

    The id is generated before the write transaction opens, so a retried
    finalize carrying the same id finds the existing row instead of selling
    the same cart twice.
    """
    __tablename__ = "sales"
    __collection__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_business_created", "business_id", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    business_id = db.Column(db.String(128), db.ForeignKey("businesses.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    tax_rate = db.Column(db.String(16), nullable=False)  # percentage as entered, e.g. "16"

    payment_type = db.Column(db.String(16), nullable=False, index=True)  # Cash, Card
    amount_tendered_cents = db.Column(db.Integer, nullable=True)  # Cash only
    change_due_cents = db.Column(db.Integer, nullable=True)  # Cash only

    # Operator attribution
    operator_id = db.Column(db.String(128), nullable=False)
    operator_email = db.Column(db.String(255), nullable=True)

    business = db.relationship("Business", backref=db.backref("sales", lazy=True))
    lines = db.relationship("SaleLine", back_populates="sale", lazy=True, order_by="SaleLine.position")

    def __repr__(self) -> str:
        return f"<Sale id={self.id!r} total_cents={self.total_cents} business_id={self.business_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "date": to_utc_z(self.created_at),
            "items": [line.to_dict() for line in sorted(self.lines, key=lambda l: l.position)],
            "subtotal": format_cents(self.subtotal_cents),
            "tax_rate": self.tax_rate,
            "tax": format_cents(self.tax_cents),
            "total": format_cents(self.total_cents),
            "payment_type": self.payment_type,
            "amount_tendered": format_cents(self.amount_tendered_cents),
            "change_due": format_cents(self.change_due_cents),
            "operator_id": self.operator_id,
            "operator_email": self.operator_email,
        }


class SaleLine(db.Model):
    """Snapshot of one cart line at sale time; not a live reference to the product row."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "category": self.category,
            "price": format_cents(self.unit_price_cents),
            "quantity": self.quantity,
            "line_total": format_cents(self.line_total_cents),
        }
