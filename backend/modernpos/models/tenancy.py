from __future__ import annotations

from ..extensions import db
from modernpos.time_utils import to_utc_z


class Business(db.Model):
    """
    Tenant record, keyed by the owning operator's identity id.

    MULTI-TENANT: business.id is the partition key carried by every product,
    employee, setting and sale row. A record only makes its operator an owner
    once it carries a non-empty business_name.
    """
    __tablename__ = "businesses"

    id = db.Column(db.String(128), primary_key=True)
    business_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True, index=True)
    phone_number = db.Column(db.String(64), nullable=True)
    role = db.Column(db.String(32), nullable=False, default="owner")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Business id={self.id!r} name={self.business_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_name": self.business_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }


class Employee(db.Model):
    """
    Employee provisioned by an owner.

    Emails are stored normalized (trimmed, lower-cased) and are unique within
    a business; they are the only link between an employee and the identity
    they later sign in with.
    """
    __tablename__ = "employees"
    __collection__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("business_id", "email", name="uq_employees_business_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.String(128), db.ForeignKey("businesses.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(64), nullable=True)
    role = db.Column(db.String(64), nullable=False, default="Cashier")
    status = db.Column(db.String(32), nullable=False, default="Active")

    created_by_id = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    business = db.relationship("Business", backref=db.backref("employees", lazy=True))

    def __repr__(self) -> str:
        return f"<Employee id={self.id} email={self.email!r} business_id={self.business_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
