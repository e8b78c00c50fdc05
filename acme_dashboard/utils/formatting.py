"""Template filters for money and dates."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal


def format_currency(cents) -> str:
    """Render an amount stored in cents as US dollars, e.g. ``$1,234.50``."""

    if cents is None:
        return ""
    value = Decimal(int(cents)) / 100
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_date(value, fmt: str = "%b %-d, %Y") -> str:
    """Render an ISO date string (or date) as e.g. ``Oct 19, 2026``."""

    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        value = value.date()
    # ``%-d`` is not portable, so strip the leading zero by hand.
    return value.strftime(fmt.replace("%-d", str(value.day)))


__all__ = ["format_currency", "format_date"]
