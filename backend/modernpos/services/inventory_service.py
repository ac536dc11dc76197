# Overview: Service-layer operations for products and stock; encapsulates business logic and database work.

"""
Inventory invariants (authoritative)

- Product.stock is an integer >= 0 at every committed point in time.
- Stock changes only through a write transaction that reads the current
  value under lock and writes it back versioned:
    sales_service.SaleFinalizer (sale decrement, many products at once)
    restock_product (administrative delta, one product)
  There is no "read, compute, unconditional write" path.
- Products are never deleted by this service.
"""

from __future__ import annotations

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Business, Product
from ..money import MAX_PRICE_CENTS, to_cents, to_decimal
from .concurrency import begin_write, lock_for_update, run_with_retry
from .settings_service import KEY_LOW_STOCK_THRESHOLD, get_settings
from .tenant_service import OperatorIdentity

STATUS_CRITICAL = "Critical"
STATUS_LOW = "Low"
STATUS_OK = "OK"

_WRITABLE_FIELDS = {"name", "price", "category", "stock", "image", "description", "barcode"}


class CatalogError(ValueError):
    pass


class ValidationError(CatalogError):
    """400-level input problem."""


class ProductNotFound(CatalogError):
    pass


class StockConflict(CatalogError):
    """409-level: the requested stock change cannot be applied to the current value."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _parse_stock(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("stock must be an integer")
    if isinstance(value, int):
        stock = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        stock = int(value.strip())
    else:
        raise ValidationError("stock must be an integer")
    if stock < 0:
        raise ValidationError("stock must be >= 0")
    return stock


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def _parse_price_cents(value) -> int:
    try:
        price = to_decimal(value)
    except ValueError:
        raise ValidationError("price must be a number")
    if price < 0:
        raise ValidationError("price must be >= 0")
    cents = to_cents(price)
    if cents > MAX_PRICE_CENTS:
        raise ValidationError("price is too large")
    return cents


def create_product(business_id: str, data: dict, actor: OperatorIdentity | None = None) -> Product:
    """Create a product under a business. Requires name, price, category; stock defaults to 0."""
    if not isinstance(data, dict):
        raise ValidationError("product payload must be an object")

    unknown = sorted(set(data) - _WRITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}")

    name = _text(data.get("name"))
    category = _text(data.get("category"))
    if not name:
        raise ValidationError("name required")
    if not category:
        raise ValidationError("category required")
    if data.get("price") is None:
        raise ValidationError("price required")

    if db.session.get(Business, business_id) is None:
        raise ProductNotFound("Business not found")

    product = Product(
        business_id=business_id,
        name=name,
        category=category,
        price_cents=_parse_price_cents(data["price"]),
        stock=_parse_stock(data.get("stock", 0)),
        image=data.get("image") or None,
        description=data.get("description") or None,
        barcode=_text(data.get("barcode")) or None,
        created_by_id=actor.id if actor else None,
        created_by_email=actor.email if actor else None,
    )
    db.session.add(product)
    db.session.commit()
    return product


def get_product(business_id: str, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, business_id=business_id).first()
    if product is None:
        raise ProductNotFound("Product not found")
    return product


def list_products(business_id: str) -> list[Product]:
    return (
        db.session.query(Product)
        .filter_by(business_id=business_id)
        .order_by(Product.name, Product.id)
        .all()
    )


def restock_product(business_id: str, product_id: int, delta: int, actor: OperatorIdentity | None = None) -> Product:
    """
    Apply a stock delta (positive restock or negative correction).

    Same discipline as a sale: write transaction, locked read of the current
    value, reject a negative result, versioned write.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer")
    if delta == 0:
        raise ValidationError("delta must not be zero")

    def _op():
        begin_write()
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id, business_id=business_id)
        ).first()
        if product is None:
            db.session.rollback()
            raise ProductNotFound("Product not found")

        new_stock = product.stock + delta
        if new_stock < 0:
            db.session.rollback()
            raise StockConflict(
                "Stock cannot go below zero",
                details={"product_id": product_id, "stock": product.stock, "delta": delta},
            )

        product.stock = new_stock
        db.session.commit()
        return product

    try:
        return run_with_retry(_op)
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        raise StockConflict("Stock changed concurrently; try again", details={"product_id": product_id}) from exc


def stock_status(stock: int, threshold: int) -> str:
    if stock <= 0:
        return STATUS_CRITICAL
    if stock <= threshold:
        return STATUS_LOW
    return STATUS_OK


def stock_report(business_id: str) -> dict:
    """Per-product reorder status using the business's low-stock threshold."""
    threshold = int(get_settings(business_id)[KEY_LOW_STOCK_THRESHOLD])
    items = []
    counts = {STATUS_CRITICAL: 0, STATUS_LOW: 0, STATUS_OK: 0}
    for product in list_products(business_id):
        status = stock_status(product.stock, threshold)
        counts[status] += 1
        items.append({
            "id": product.id,
            "name": product.name,
            "category": product.category,
            "stock": product.stock,
            "status": status,
        })
    return {"threshold": threshold, "counts": counts, "products": items}
