from __future__ import annotations

from ..extensions import db
from modernpos.money import from_cents, format_cents
from modernpos.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data with its on-hand stock count.

    MULTI-TENANT: Products are scoped to a business via business_id.

    STOCK DISCIPLINE:
    - stock is only changed inside a write transaction, after a locked read
      of the current value (SaleFinalizer, inventory_service.restock_product)
    - version_id makes a write based on a stale read fail with StaleDataError
    - stock and price can never be negative (CHECK constraints)
    """
    __tablename__ = "products"
    __collection__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_business_name", "business_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.String(128), db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    stock = db.Column(db.Integer, nullable=False, default=0)

    image = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)

    created_by_id = db.Column(db.String(128), nullable=True)
    created_by_email = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    business = db.relationship("Business", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def price(self):
        return from_cents(self.price_cents)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock} business_id={self.business_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "price": format_cents(self.price_cents),
            "price_cents": self.price_cents,
            "category": self.category,
            "stock": self.stock,
            "image": self.image,
            "description": self.description,
            "barcode": self.barcode,
            "created_by_id": self.created_by_id,
            "created_by_email": self.created_by_email,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
