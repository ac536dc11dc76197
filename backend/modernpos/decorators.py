# Overview: Request decorators that establish operator identity and tenant scope for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .services.tenant_service import AmbiguousTenantError, NoTenantFound, OperatorIdentity

OPERATOR_ID_HEADER = "X-Operator-Id"
OPERATOR_EMAIL_HEADER = "X-Operator-Email"
SESSION_ID_HEADER = "X-Session-Id"


def _operator_from_headers() -> OperatorIdentity | None:
    operator_id = (request.headers.get(OPERATOR_ID_HEADER) or "").strip()
    if not operator_id:
        return None
    email = (request.headers.get(OPERATOR_EMAIL_HEADER) or "").strip() or None
    return OperatorIdentity(id=operator_id, email=email)


def sessions():
    return current_app.extensions["modernpos.sessions"]


def require_identity(f):
    """
    Require an operator identity, without resolving a tenant.

    Sets g.operator. Returns 401 when the authentication layer supplied no
    operator id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        operator = _operator_from_headers()
        if operator is None:
            return jsonify({"error": "Authentication required"}), 401
        g.operator = operator
        return f(*args, **kwargs)

    return decorated_function


def require_operator(f):
    """
    Require an operator identity that resolves to exactly one business.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.operator: The OperatorIdentity from the request headers
    - g.business_id: The resolved tenant id - REQUIRED
    - g.pos: The operator's PosSession (catalog, cart, finalizer)

    Returns 401 without an identity and 403 when no single business matches.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        operator = _operator_from_headers()
        if operator is None:
            return jsonify({"error": "Authentication required"}), 401

        session_key = (request.headers.get(SESSION_ID_HEADER) or "").strip() or None
        try:
            pos = sessions().open(operator, session_key)
        except AmbiguousTenantError as e:
            return jsonify({"error": str(e), "business_ids": e.business_ids}), 403
        except NoTenantFound as e:
            return jsonify({"error": str(e)}), 403

        g.operator = operator
        g.business_id = pos.business_id
        g.pos = pos

        return f(*args, **kwargs)

    return decorated_function


def require_owner(f):
    """Require that the resolved operator owns the business (use after @require_operator)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if getattr(g, "business_id", None) is None or g.business_id != g.operator.id:
            return jsonify({"error": "Owner access required"}), 403
        return f(*args, **kwargs)

    return decorated_function
