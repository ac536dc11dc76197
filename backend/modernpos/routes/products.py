# Overview: Flask API routes for the product catalog and stock; parses input and returns JSON responses.

"""
Product routes.

MULTI-TENANT: Every operation is scoped to g.business_id (set by
@require_operator). Stock only changes through restock_product(), which
applies a delta to the current value under lock.
"""
from flask import Blueprint, current_app, request, g

from ..decorators import require_operator
from ..services import inventory_service
from ..services.inventory_service import ProductNotFound, StockConflict, ValidationError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_operator
def list_products():
    """List the business's products, ordered by name."""
    products = inventory_service.list_products(g.business_id)
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.post("")
@require_operator
def create_product_route():
    """
    Create a new product.

    Body: {"name", "price", "category", "stock" (optional), "image",
    "description", "barcode"}
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = inventory_service.create_product(g.business_id, payload, actor=g.operator)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ProductNotFound as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Product creation failed")
        return {"error": "Internal server error"}, 500

    return product.to_dict(), 201


@products_bp.post("/<int:product_id>/restock")
@require_operator
def restock_route(product_id: int):
    """
    Apply a stock delta. Body: {"delta": int} (negative for corrections).

    Returns 409 when the result would be negative or the row changed concurrently.
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = inventory_service.restock_product(
            g.business_id,
            product_id,
            payload.get("delta"),
            actor=g.operator,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ProductNotFound as e:
        return {"error": str(e)}, 404
    except StockConflict as e:
        return {"error": str(e), "details": e.details}, 409
    except Exception:
        current_app.logger.exception("Restock failed for product %s", product_id)
        return {"error": "Internal server error"}, 500

    return product.to_dict(), 200


@products_bp.get("/stock-report")
@require_operator
def stock_report_route():
    return inventory_service.stock_report(g.business_id)
