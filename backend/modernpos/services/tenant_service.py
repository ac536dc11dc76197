"""
Multi-Tenant Service: Tenant Resolution, Registration and Employees

Owners and employees sign in through the same identity provider but are
stored under different partitions:
- an owner's business record is keyed by the owner's own identity id
- an employee record lives under its business and is matched by email,
  since the employee's identity id is unknown when the owner provisions them

RESOLUTION ORDER (first match wins):
1. Business record keyed by operator.id with a non-empty business_name -> owner
2. Employee record whose normalized email equals the operator's -> its business
3. Otherwise NoTenantFound

Emails go through normalize_email() both when employees are written and when
identities are resolved.

USAGE:
    from modernpos.services.tenant_service import OperatorIdentity, resolve_tenant

    business_id = resolve_tenant(OperatorIdentity(id=uid, email=email))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func

from ..extensions import db
from ..models import Business, Employee

logger = logging.getLogger("modernpos.tenants")


class TenantResolutionError(Exception):
    """Base class for tenant scope failures."""
    pass


class NoTenantFound(TenantResolutionError):
    """Raised when an operator identity maps to no business."""
    pass


class AmbiguousTenantError(NoTenantFound):
    """Raised when an employee email is provisioned under more than one business."""

    def __init__(self, message: str, business_ids: list[str] | None = None):
        super().__init__(message)
        self.business_ids = business_ids or []


class TenantRegistrationError(ValueError):
    """Raised for invalid owner signup or employee provisioning input."""
    pass


@dataclass(frozen=True)
class OperatorIdentity:
    """Opaque identity handed over by the authentication collaborator."""
    id: str
    email: str | None = None


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    normalized = email.strip().lower()
    return normalized or None


class TenantResolver:
    """Maps an operator identity to exactly one business id."""

    def __init__(self, session=None):
        self._session = session if session is not None else db.session

    def resolve(self, operator: OperatorIdentity) -> str:
        if operator is None or not operator.id:
            raise NoTenantFound("No operator identity")

        business = self._session.get(Business, operator.id)
        if business is not None and (business.business_name or "").strip():
            logger.debug("Operator %s resolved as owner", operator.id)
            return business.id

        email = normalize_email(operator.email)
        if email is None:
            raise NoTenantFound("No business found for operator")

        rows = (
            self._session.query(Employee.business_id)
            .filter(func.lower(func.trim(Employee.email)) == email)
            .distinct()
            .order_by(Employee.business_id)
            .all()
        )
        business_ids = [row.business_id for row in rows]

        if not business_ids:
            logger.info("No business found for operator %s", operator.id)
            raise NoTenantFound("No business found for operator")

        if len(business_ids) > 1:
            logger.warning(
                "Employee email for operator %s is provisioned under %d businesses",
                operator.id,
                len(business_ids),
            )
            raise AmbiguousTenantError(
                "Operator email is registered with more than one business",
                business_ids=business_ids,
            )

        logger.debug("Operator %s resolved as employee of %s", operator.id, business_ids[0])
        return business_ids[0]


def resolve_tenant(operator: OperatorIdentity) -> str:
    """Resolve against the request-scoped session."""
    return TenantResolver().resolve(operator)


def register_business(
    operator: OperatorIdentity,
    business_name: str,
    phone_number: str | None = None,
) -> Business:
    """
    Owner signup: create (or complete) the business record keyed by the operator id.

    A record that already carries a business name is not overwritten.
    """
    if operator is None or not operator.id:
        raise TenantRegistrationError("Operator identity required")

    name = business_name.strip() if isinstance(business_name, str) else ""
    if not name:
        raise TenantRegistrationError("business_name required")

    business = db.session.get(Business, operator.id)
    if business is not None and (business.business_name or "").strip():
        raise TenantRegistrationError("Business already registered for this operator")

    if business is None:
        business = Business(id=operator.id)
        db.session.add(business)

    business.business_name = name
    business.email = normalize_email(operator.email)
    business.phone_number = (phone_number or "").strip() or None
    business.role = "owner"

    db.session.commit()
    logger.info("Registered business %s", business.id)
    return business


def add_employee(
    business_id: str,
    name: str,
    email: str,
    phone: str | None = None,
    role: str = "Cashier",
    status: str = "Active",
    actor: OperatorIdentity | None = None,
) -> Employee:
    """Provision an employee under a business; the email is stored normalized."""
    if db.session.get(Business, business_id) is None:
        raise TenantRegistrationError("Business not found")

    name = name.strip() if isinstance(name, str) else ""
    if not name:
        raise TenantRegistrationError("name required")

    normalized = normalize_email(email) if isinstance(email, str) else None
    if normalized is None or "@" not in normalized:
        raise TenantRegistrationError("valid email required")

    duplicate = db.session.query(Employee).filter_by(business_id=business_id, email=normalized).first()
    if duplicate is not None:
        raise TenantRegistrationError("An employee with this email already exists")

    employee = Employee(
        business_id=business_id,
        name=name,
        email=normalized,
        phone=(phone or "").strip() or None,
        role=role or "Cashier",
        status=status or "Active",
        created_by_id=actor.id if actor else None,
    )
    db.session.add(employee)
    db.session.commit()
    return employee


def list_employees(business_id: str) -> list[Employee]:
    return (
        db.session.query(Employee)
        .filter_by(business_id=business_id)
        .order_by(Employee.name)
        .all()
    )
