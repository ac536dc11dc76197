# Overview: Flask API routes for the operator's cart; all stock checks use the live catalog.

from flask import Blueprint, request, g

from ..decorators import require_operator
from ..services.cart_service import CartError

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _cart_response(changed: bool | None = None):
    pos = g.pos
    body = pos.cart.to_dict()
    try:
        body["totals"] = pos.totals().rounded().to_dict()
    except ValueError:
        body["totals"] = None
    if changed is not None:
        body["changed"] = changed
    return body


@cart_bp.get("")
@require_operator
def get_cart():
    return _cart_response()


@cart_bp.get("/totals")
@require_operator
def get_totals():
    """Subtotal, tax and total at the business's current tax rate."""
    try:
        totals = g.pos.totals()
    except ValueError as e:
        return {"error": str(e)}, 400
    body = totals.rounded().to_dict()
    body["tax_rate"] = str(g.pos.tax_rate)
    return body


@cart_bp.post("/items")
@require_operator
def add_item():
    """
    Add one unit of a product. Body: {"product_id": int}

    "changed" is false when the product is out of stock or the cart already
    holds all available units.
    """
    payload = request.get_json(silent=True) or {}
    product_id = payload.get("product_id")
    if isinstance(product_id, bool) or not isinstance(product_id, int):
        return {"error": "product_id must be an integer"}, 400

    try:
        changed = g.pos.add_to_cart(product_id)
    except CartError as e:
        return {"error": str(e)}, 404

    return _cart_response(changed), 200


@cart_bp.patch("/items/<int:product_id>")
@require_operator
def update_item(product_id: int):
    """Adjust a row by a delta. Body: {"delta": int}"""
    payload = request.get_json(silent=True) or {}
    delta = payload.get("delta")
    if isinstance(delta, bool) or not isinstance(delta, int):
        return {"error": "delta must be an integer"}, 400

    if g.pos.cart.get(product_id) is None:
        return {"error": "Product not in cart"}, 404

    changed = g.pos.cart.update_quantity(product_id, delta)
    return _cart_response(changed), 200


@cart_bp.delete("/items/<int:product_id>")
@require_operator
def remove_item(product_id: int):
    if not g.pos.cart.remove(product_id):
        return {"error": "Product not in cart"}, 404
    return _cart_response(True), 200


@cart_bp.delete("")
@require_operator
def clear_cart():
    g.pos.cart.clear()
    return _cart_response(True), 200
