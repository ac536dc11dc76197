# Overview: Flask API routes for employee provisioning within the caller's business.

from flask import Blueprint, current_app, request, g

from ..decorators import require_operator, require_owner
from ..services import tenant_service
from ..services.tenant_service import TenantRegistrationError

employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("")
@require_operator
def list_employees_route():
    employees = tenant_service.list_employees(g.business_id)
    return {"items": [e.to_dict() for e in employees], "count": len(employees)}


@employees_bp.post("")
@require_operator
@require_owner
def add_employee_route():
    """
    Provision an employee. The email is the link to the identity the
    employee signs in with later.

    Body: {"name", "email", "phone" (optional), "role" (optional), "status" (optional)}
    """
    payload = request.get_json(silent=True) or {}

    try:
        employee = tenant_service.add_employee(
            g.business_id,
            payload.get("name"),
            payload.get("email"),
            phone=payload.get("phone"),
            role=payload.get("role") or "Cashier",
            status=payload.get("status") or "Active",
            actor=g.operator,
        )
    except TenantRegistrationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Employee provisioning failed")
        return {"error": "Internal server error"}, 500

    return employee.to_dict(), 201
