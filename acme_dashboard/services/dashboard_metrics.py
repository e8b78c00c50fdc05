"""Helper functions for collecting dashboard and invoice list data.

Results are plain dictionaries so they can be cached between requests.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List

from sqlalchemy import String, case, cast, func, or_, select

from acme_dashboard import db
from acme_dashboard.models import Customer, Invoice


def _coalesce_scalar(statement) -> int:
    """Return an integer scalar result or ``0`` when ``None``."""

    result = db.session.execute(statement).scalar()
    return int(result or 0)


def _invoice_row(invoice: Invoice, customer: Customer) -> Dict[str, Any]:
    return {
        "id": invoice.id,
        "customer_id": invoice.customer_id,
        "name": customer.name,
        "email": customer.email,
        "image_url": customer.image_url,
        "amount": invoice.amount,
        "status": invoice.status,
        "date": invoice.date,
    }


def card_data() -> Dict[str, int]:
    """Return totals shown on the dashboard overview cards."""

    totals = db.session.execute(
        select(
            func.sum(case((Invoice.status == "paid", Invoice.amount), else_=0)),
            func.sum(case((Invoice.status == "pending", Invoice.amount), else_=0)),
        )
    ).one()
    return {
        "total_paid": int(totals[0] or 0),
        "total_pending": int(totals[1] or 0),
        "invoice_count": _coalesce_scalar(select(func.count(Invoice.id))),
        "customer_count": _coalesce_scalar(select(func.count(Customer.id))),
    }


def latest_invoices(limit: int = 5) -> List[Dict[str, Any]]:
    """Return the most recent invoices with their customer details."""

    rows = db.session.execute(
        select(Invoice, Customer)
        .join(Customer, Invoice.customer_id == Customer.id)
        .order_by(Invoice.date.desc(), Invoice.id)
        .limit(limit)
    ).all()
    return [_invoice_row(invoice, customer) for invoice, customer in rows]


def _search_filter(query: str):
    pattern = f"%{query}%"
    return or_(
        Customer.name.ilike(pattern),
        Customer.email.ilike(pattern),
        cast(Invoice.amount, String).ilike(pattern),
        Invoice.date.ilike(pattern),
        Invoice.status.ilike(pattern),
    )


def filtered_invoices(query: str = "", page: int = 1, per_page: int = 6) -> Dict[str, Any]:
    """Return one page of invoices matching ``query``.

    The search is a case-insensitive substring match over the customer
    name and email and the invoice amount, date and status.
    """

    base = select(Invoice, Customer).join(
        Customer, Invoice.customer_id == Customer.id
    )
    count = select(func.count(Invoice.id)).join(
        Customer, Invoice.customer_id == Customer.id
    )
    if query:
        base = base.where(_search_filter(query))
        count = count.where(_search_filter(query))

    total = _coalesce_scalar(count)
    pages = max(1, math.ceil(total / per_page))
    page = min(max(page, 1), pages)
    rows = db.session.execute(
        base.order_by(Invoice.date.desc(), Invoice.id)
        .limit(per_page)
        .offset((page - 1) * per_page)
    ).all()
    return {
        "items": [_invoice_row(invoice, customer) for invoice, customer in rows],
        "total": total,
        "page": page,
        "pages": pages,
    }


def customer_choices() -> List[tuple[str, str]]:
    """Return ``(id, name)`` pairs for the invoice form's customer select."""

    customers = db.session.execute(
        select(Customer.id, Customer.name).order_by(Customer.name)
    ).all()
    return [(customer_id, name) for customer_id, name in customers]
