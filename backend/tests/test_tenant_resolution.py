# Overview: Pytest coverage for tenant resolution, owner signup and employee provisioning.

"""
Tenant Resolution Tests

Verifies that:
1. An owner resolves to the business keyed by their own identity id
2. An employee resolves through their (normalized) email
3. Unknown identities and ambiguous emails never produce a tenant
"""

import pytest
from modernpos.extensions import db
from modernpos.models import Business
from modernpos.services.tenant_service import (
    AmbiguousTenantError,
    NoTenantFound,
    OperatorIdentity,
    TenantRegistrationError,
    add_employee,
    list_employees,
    normalize_email,
    register_business,
    resolve_tenant,
)


class TestOwnerResolution:
    def test_owner_resolves_to_own_business(self, business, owner):
        assert resolve_tenant(owner) == business.id == owner.id

    def test_owner_wins_over_employee_record(self, business, other_business, owner):
        """An owner who is also provisioned elsewhere stays in their own business."""
        add_employee(other_business.id, "Owner A Moonlighting", owner.email)
        assert resolve_tenant(owner) == business.id

    def test_business_without_name_is_not_owner(self, db_session):
        db_session.add(Business(id="half-signed-up", business_name="  "))
        db_session.commit()

        with pytest.raises(NoTenantFound):
            resolve_tenant(OperatorIdentity(id="half-signed-up", email="x@example.test"))


class TestEmployeeResolution:
    def test_employee_resolves_by_email(self, business, cashier):
        assert resolve_tenant(cashier) == business.id

    def test_email_match_is_case_and_whitespace_insensitive(self, business, cashier):
        operator = OperatorIdentity(id="uid-ann", email="  ANN@cafe-a.TEST ")
        assert resolve_tenant(operator) == business.id

    def test_unknown_identity_has_no_tenant(self, business):
        with pytest.raises(NoTenantFound):
            resolve_tenant(OperatorIdentity(id="stranger", email="nobody@example.test"))

    def test_identity_without_email_has_no_tenant(self, business):
        with pytest.raises(NoTenantFound):
            resolve_tenant(OperatorIdentity(id="stranger"))

    def test_missing_identity(self, db_session):
        with pytest.raises(NoTenantFound):
            resolve_tenant(None)

    def test_email_in_two_businesses_is_ambiguous(self, business, other_business):
        add_employee(business.id, "Sam", "sam@shared.test")
        add_employee(other_business.id, "Sam", "SAM@shared.test")

        with pytest.raises(AmbiguousTenantError) as excinfo:
            resolve_tenant(OperatorIdentity(id="uid-sam", email="sam@shared.test"))

        assert sorted(excinfo.value.business_ids) == sorted([business.id, other_business.id])
        assert isinstance(excinfo.value, NoTenantFound)


class TestRegistration:
    def test_register_business_sets_owner_fields(self, db_session):
        operator = OperatorIdentity(id="new-owner", email=" Owner@New.TEST ")
        business = register_business(operator, "  New Cafe ", phone_number="0711")

        stored = db.session.get(Business, "new-owner")
        assert stored is business
        assert stored.business_name == "New Cafe"
        assert stored.email == "owner@new.test"
        assert stored.role == "owner"
        assert stored.phone_number == "0711"

    def test_register_requires_name(self, db_session):
        with pytest.raises(TenantRegistrationError):
            register_business(OperatorIdentity(id="x"), "   ")

    def test_register_twice_is_rejected(self, business, owner):
        with pytest.raises(TenantRegistrationError):
            register_business(owner, "Another Name")
        assert db.session.get(Business, owner.id).business_name == "Cafe A"


class TestEmployees:
    def test_employee_email_is_stored_normalized(self, business):
        employee = add_employee(business.id, "Bo", "  Bo@Cafe-A.Test")
        assert employee.email == "bo@cafe-a.test"
        assert employee.role == "Cashier"
        assert employee.status == "Active"

    def test_duplicate_email_in_business_rejected(self, business):
        add_employee(business.id, "Bo", "bo@cafe-a.test")
        with pytest.raises(TenantRegistrationError):
            add_employee(business.id, "Bo Again", "BO@cafe-a.test")

    def test_invalid_email_rejected(self, business):
        with pytest.raises(TenantRegistrationError):
            add_employee(business.id, "Bo", "not-an-email")

    def test_unknown_business_rejected(self, db_session):
        with pytest.raises(TenantRegistrationError):
            add_employee("missing", "Bo", "bo@example.test")

    def test_list_employees_is_tenant_scoped(self, business, other_business):
        add_employee(business.id, "Bo", "bo@a.test")
        add_employee(other_business.id, "Cy", "cy@b.test")

        names = [e.name for e in list_employees(business.id)]
        assert names == ["Bo"]


def test_normalize_email():
    assert normalize_email("  A@B.C ") == "a@b.c"
    assert normalize_email("   ") is None
    assert normalize_email(None) is None
