# Overview: Read-only sales queries for history screens and the dashboard.

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Sale, SaleLine
from ..money import format_cents
from .sales_service import PAYMENT_CARD, PAYMENT_CASH, normalize_payment_type


def list_sales(
    business_id: str,
    payment_type: str | None = None,
    search: str | None = None,
    limit: int | None = None,
) -> list[Sale]:
    """
    Sales newest first.

    search matches the sale id or any line item name, case-insensitively.
    """
    query = (
        db.session.query(Sale)
        .options(selectinload(Sale.lines))
        .filter(Sale.business_id == business_id)
    )

    if payment_type and payment_type.strip().lower() != "all":
        query = query.filter(Sale.payment_type == normalize_payment_type(payment_type))

    term = (search or "").strip().lower()
    if term:
        pattern = f"%{term}%"
        line_match = select(SaleLine.sale_id).where(db.func.lower(SaleLine.name).like(pattern))
        query = query.filter(or_(db.func.lower(Sale.id).like(pattern), Sale.id.in_(line_match)))

    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def sales_summary(business_id: str) -> dict:
    """Revenue and volume figures across all committed sales (amounts as decimal strings)."""
    sales = list_sales(business_id)

    revenue = sum(s.total_cents for s in sales)
    tax = sum(s.tax_cents for s in sales)
    count = len(sales)
    items_sold = sum(line.quantity for s in sales for line in s.lines)

    cash = [s for s in sales if s.payment_type == PAYMENT_CASH]
    card = [s for s in sales if s.payment_type == PAYMENT_CARD]

    # Average rounded half-up to the cent
    average_cents = (revenue * 2 + count) // (count * 2) if count else 0

    return {
        "total_revenue": format_cents(revenue),
        "total_tax": format_cents(tax),
        "sales_count": count,
        "average_order_value": format_cents(average_cents),
        "items_sold": items_sold,
        "cash_revenue": format_cents(sum(s.total_cents for s in cash)),
        "cash_count": len(cash),
        "card_revenue": format_cents(sum(s.total_cents for s in card)),
        "card_count": len(card),
    }
