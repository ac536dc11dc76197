# Overview: Flask API routes for owner signup and tenant resolution.

from flask import Blueprint, current_app, request, g

from ..decorators import SESSION_ID_HEADER, require_identity, require_operator, sessions
from ..services.tenant_service import TenantRegistrationError, register_business

tenants_bp = Blueprint("tenants", __name__, url_prefix="/api/tenants")


@tenants_bp.post("/register")
@require_identity
def register_route():
    """
    Owner signup: create the business keyed by the caller's operator id.

    Body: {"business_name": str, "phone_number": str (optional)}
    """
    payload = request.get_json(silent=True) or {}

    try:
        business = register_business(
            g.operator,
            payload.get("business_name"),
            phone_number=payload.get("phone_number"),
        )
    except TenantRegistrationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Business registration failed")
        return {"error": "Internal server error"}, 500

    # A cached session for this identity was resolved before signup
    sessions().close(g.operator.id, (request.headers.get(SESSION_ID_HEADER) or "").strip() or None)

    return {"business": business.to_dict()}, 201


@tenants_bp.get("/resolve")
@require_operator
def resolve_route():
    role = "owner" if g.business_id == g.operator.id else "employee"
    return {"business_id": g.business_id, "role": role}
