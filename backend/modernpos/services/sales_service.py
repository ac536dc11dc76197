"""
Sales Service - turns a cart into a durable, stock-consistent Sale.

State machine per finalize() call:

    IDLE -> VALIDATING -> COMMITTING -> COMMITTED | FAILED

VALIDATING rejects (cart untouched, nothing written):
- EmptyCart           cart has no rows
- NotAuthorized       no business scope or no operator identity
- InsufficientTender  Cash with tendered amount below the total

COMMITTING runs one write transaction:
- re-reads every product's current stock under lock (never the cart's copy)
- new_stock = current - quantity for each product; any negative -> SaleFailed
- writes every stock change and the Sale with its lines, then commits
Either every write lands or none do. Lock loss, a concurrent version bump
or a connectivity fault all surface as SaleFailed with the cart preserved.

Submissions for the same cart are serialized on the cart lock, so a double
submit commits once and the second call finds the cart empty.

The finalizer never retries; a caller may retry with the same sale_id, and
a sale id that is already recorded is returned as-is without touching stock.
"""

from __future__ import annotations

import logging
import secrets
from contextlib import nullcontext
from threading import Lock
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..money import quantize_money, to_cents, to_decimal
from modernpos.time_utils import epoch_millis, utcnow
from .cart_service import Cart
from .concurrency import begin_write, lock_for_update
from .pricing_service import compute_totals
from .settings_service import get_tax_rate
from .state_store import MemoryStateStore, StateStore
from .tenant_service import OperatorIdentity

logger = logging.getLogger("modernpos.sales")

PAYMENT_CASH = "Cash"
PAYMENT_CARD = "Card"
PAYMENT_TYPES = {PAYMENT_CASH.lower(): PAYMENT_CASH, PAYMENT_CARD.lower(): PAYMENT_CARD}

STATE_IDLE = "IDLE"
STATE_VALIDATING = "VALIDATING"
STATE_COMMITTING = "COMMITTING"
STATE_COMMITTED = "COMMITTED"
STATE_FAILED = "FAILED"


class SaleError(Exception):
    """Raised for sale operation errors."""
    code = "SALE_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class EmptyCart(SaleError):
    code = "EMPTY_CART"


class NotAuthorized(SaleError):
    code = "NOT_AUTHORIZED"


class InsufficientTender(SaleError):
    code = "INSUFFICIENT_TENDER"


class InvalidPaymentType(SaleError):
    code = "INVALID_PAYMENT_TYPE"


class SaleFailed(SaleError):
    code = "SALE_FAILED"


class _StockShortfall(Exception):
    def __init__(self, items: list[dict]):
        super().__init__("Insufficient stock")
        self.items = items


def new_sale_id() -> str:
    """Display-ordered id: SALE-<epoch millis>-<random suffix>."""
    return f"SALE-{epoch_millis()}-{secrets.token_hex(3).upper()}"


def normalize_payment_type(payment_type: str | None) -> str:
    normalized = PAYMENT_TYPES.get((payment_type or "").strip().lower())
    if normalized is None:
        raise InvalidPaymentType(
            "payment_type must be Cash or Card",
            details={"payment_type": payment_type},
        )
    return normalized


class SalesHistory:
    """Local newest-first log of committed sales, written through a state store."""

    def __init__(self, store: StateStore | None = None, key: str = "sales", limit: int = 500):
        self._store = store if store is not None else MemoryStateStore()
        self._key = key
        self._limit = limit
        self._lock = Lock()

    def record(self, sale: dict) -> None:
        with self._lock:
            entries = self._store.load(self._key, default=[]) or []
            if any(entry.get("id") == sale.get("id") for entry in entries):
                return
            entries.insert(0, sale)
            self._store.save(self._key, entries[: self._limit])

    def entries(self) -> list[dict]:
        return list(self._store.load(self._key, default=[]) or [])

    def __len__(self) -> int:
        return len(self.entries())


class SaleFinalizer:
    def __init__(
        self,
        history: SalesHistory | None = None,
        tax_rate_source: Callable[[str], object] | None = None,
        id_factory: Callable[[], str] = new_sale_id,
        clock: Callable = utcnow,
    ):
        self.history = history
        self._tax_rate_source = tax_rate_source or get_tax_rate
        self._id_factory = id_factory
        self._clock = clock
        self.state = STATE_IDLE
        self.last_error: SaleError | None = None

    def finalize(
        self,
        cart: Cart,
        business_id: str | None,
        operator: OperatorIdentity | None,
        payment_type: str,
        amount_tendered=None,
        *,
        tax_rate_percent=None,
        sale_id: str | None = None,
    ) -> Sale:
        # One submission per cart at a time; a duplicate finds the cart empty
        guard = cart.lock if cart is not None else nullcontext()
        with guard:
            return self._finalize(cart, business_id, operator, payment_type, amount_tendered, tax_rate_percent, sale_id)

    def _finalize(self, cart, business_id, operator, payment_type, amount_tendered, tax_rate_percent, sale_id) -> Sale:
        self.state = STATE_VALIDATING
        self.last_error = None
        try:
            plan = self._validate(cart, business_id, operator, payment_type, amount_tendered, tax_rate_percent)
        except SaleError as exc:
            self._fail(exc)
            raise

        # The id exists before the transaction so a retry can be recognized
        plan["sale_id"] = sale_id or self._id_factory()
        plan["created_at"] = self._clock()

        self.state = STATE_COMMITTING
        try:
            sale, replayed = self._commit(plan)
        except _StockShortfall as exc:
            db.session.rollback()
            error = SaleFailed(
                "Could not complete sale: insufficient stock",
                details={"sale_id": plan["sale_id"], "items": exc.items},
            )
            self._fail(error)
            raise error from None
        except SaleFailed as exc:
            db.session.rollback()
            self._fail(exc)
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            error = SaleFailed(
                "Could not complete sale, please retry",
                details={"sale_id": plan["sale_id"], "reason": type(exc).__name__},
            )
            self._fail(error)
            raise error from exc

        self.state = STATE_COMMITTED
        cart.clear()
        if self.history is not None:
            self.history.record(sale.to_dict())

        if replayed:
            logger.info("Sale %s already recorded; returning existing record", sale.id)
        else:
            logger.info(
                "Sale %s committed for business %s (%d lines, total %s)",
                sale.id, business_id, len(plan["lines"]), plan["total"],
            )
        return sale

    def _fail(self, error: SaleError) -> None:
        self.state = STATE_FAILED
        self.last_error = error
        logger.warning("Sale rejected (%s): %s", error.code, error)

    def _validate(self, cart, business_id, operator, payment_type, amount_tendered, tax_rate_percent) -> dict:
        items = cart.items if cart is not None else []
        if not items:
            raise EmptyCart("Cart is empty")

        if not business_id or operator is None or not getattr(operator, "id", None):
            raise NotAuthorized("A business scope and operator identity are required")

        payment = normalize_payment_type(payment_type)

        if tax_rate_percent is None:
            tax_rate_percent = self._tax_rate_source(business_id)
        try:
            rate = to_decimal(tax_rate_percent)
            totals = compute_totals(items, rate).rounded()
        except ValueError as exc:
            raise SaleError("Invalid tax rate", details={"tax_rate": str(tax_rate_percent)}) from exc

        subtotal, tax, total = totals.subtotal, totals.tax, totals.total

        tendered = None
        change_due = None
        if payment == PAYMENT_CASH:
            if amount_tendered is None:
                raise InsufficientTender("Cash sales require the tendered amount", details={"total": str(total)})
            try:
                tendered = quantize_money(amount_tendered)
            except ValueError:
                raise InsufficientTender("Tendered amount is not a number", details={"total": str(total)})
            if tendered < total:
                raise InsufficientTender(
                    "Tendered amount is less than the total",
                    details={"total": str(total), "amount_tendered": str(tendered)},
                )
            change_due = tendered - total

        lines = [
            {
                "product_id": item.product_id,
                "name": item.name,
                "category": item.category,
                "quantity": item.quantity,
                "unit_price_cents": to_cents(item.price),
                "line_total_cents": to_cents(to_decimal(item.price) * item.quantity),
            }
            for item in items
        ]

        return {
            "business_id": business_id,
            "operator": operator,
            "payment_type": payment,
            "tax_rate": format(rate.normalize(), "f"),
            "subtotal": subtotal,
            "tax": tax,
            "total": total,
            "amount_tendered": tendered,
            "change_due": change_due,
            "lines": lines,
        }

    def _commit(self, plan: dict) -> tuple[Sale, bool]:
        business_id = plan["business_id"]

        begin_write()

        existing = db.session.get(Sale, plan["sale_id"])
        if existing is not None:
            if existing.business_id != business_id:
                raise SaleFailed("Sale id already used", details={"sale_id": plan["sale_id"]})
            db.session.rollback()
            return existing, True

        requested: dict[int, int] = {}
        for line in plan["lines"]:
            requested[line["product_id"]] = requested.get(line["product_id"], 0) + line["quantity"]

        # Lock in id order so concurrent finalizers acquire rows in the same sequence
        products: dict[int, Product] = {}
        shortfall = []
        for product_id in sorted(requested):
            product = lock_for_update(
                db.session.query(Product).filter_by(id=product_id, business_id=business_id)
            ).first()
            if product is None:
                shortfall.append({"product_id": product_id, "requested_quantity": requested[product_id], "stock": None})
                continue
            if product.stock - requested[product_id] < 0:
                shortfall.append({
                    "product_id": product_id,
                    "requested_quantity": requested[product_id],
                    "stock": product.stock,
                })
            products[product_id] = product

        if shortfall:
            raise _StockShortfall(shortfall)

        for product_id, product in products.items():
            product.stock = product.stock - requested[product_id]

        operator = plan["operator"]
        sale = Sale(
            id=plan["sale_id"],
            business_id=business_id,
            created_at=plan["created_at"],
            subtotal_cents=to_cents(plan["subtotal"]),
            tax_cents=to_cents(plan["tax"]),
            total_cents=to_cents(plan["total"]),
            tax_rate=plan["tax_rate"],
            payment_type=plan["payment_type"],
            amount_tendered_cents=to_cents(plan["amount_tendered"]) if plan["amount_tendered"] is not None else None,
            change_due_cents=to_cents(plan["change_due"]) if plan["change_due"] is not None else None,
            operator_id=operator.id,
            operator_email=operator.email,
        )
        db.session.add(sale)
        for position, line in enumerate(plan["lines"], start=1):
            db.session.add(SaleLine(sale=sale, position=position, **line))

        db.session.commit()
        return sale, False


def get_sale(business_id: str, sale_id: str) -> Sale | None:
    return db.session.query(Sale).filter_by(id=sale_id, business_id=business_id).first()


def quantity_sold(business_id: str, product_id: int) -> int:
    """Units of a product across all committed sales for the business."""
    rows = (
        db.session.query(SaleLine.quantity)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(Sale.business_id == business_id, SaleLine.product_id == product_id)
        .all()
    )
    return sum(row.quantity for row in rows)
