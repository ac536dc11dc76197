# Overview: Flask API routes for sale finalization and sales history; parses input and returns JSON responses.

"""
Sales routes.

POST /api/sales/finalize runs the operator's SaleFinalizer against the
operator's cart. Error mapping:
- EmptyCart, InsufficientTender, InvalidPaymentType, other SaleError -> 400
- NotAuthorized -> 403
- SaleFailed -> 409 (cart preserved; retry with the same sale_id is safe)
"""
from flask import Blueprint, current_app, request, g

from ..decorators import require_operator
from ..services import reporting_service
from ..services.sales_service import InvalidPaymentType, NotAuthorized, SaleError, SaleFailed

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _error(e: SaleError, status: int):
    return {"error": str(e), "code": e.code, "details": e.details}, status


@sales_bp.post("/finalize")
@require_operator
def finalize_route():
    """
    Body: {"payment_type": "Cash"|"Card", "amount_tendered": str|number (Cash),
           "sale_id": str (optional, for retries)}
    """
    payload = request.get_json(silent=True) or {}

    try:
        sale = g.pos.finalize(
            payload.get("payment_type"),
            payload.get("amount_tendered"),
            sale_id=payload.get("sale_id"),
        )
    except NotAuthorized as e:
        return _error(e, 403)
    except SaleFailed as e:
        return _error(e, 409)
    except SaleError as e:
        return _error(e, 400)
    except Exception:
        current_app.logger.exception("Sale finalization failed")
        return {"error": "Internal server error"}, 500

    return {"sale": sale.to_dict()}, 201


@sales_bp.get("")
@require_operator
def list_sales_route():
    """
    Query params:
    - payment_type: Cash | Card | all (optional)
    - search: matches sale id or item name (optional)
    - limit: int (optional)
    """
    try:
        sales = reporting_service.list_sales(
            g.business_id,
            payment_type=request.args.get("payment_type"),
            search=request.args.get("search"),
            limit=request.args.get("limit", type=int),
        )
    except InvalidPaymentType as e:
        return _error(e, 400)

    return {"items": [s.to_dict() for s in sales], "count": len(sales)}


@sales_bp.get("/summary")
@require_operator
def summary_route():
    return reporting_service.sales_summary(g.business_id)
