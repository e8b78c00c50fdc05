"""Utility functions for the Acme dashboard."""

from .formatting import format_currency, format_date
from .navigation import safe_local_path
from .view_cache import get_view_cache, revalidate_path

__all__ = [
    "format_currency",
    "format_date",
    "get_view_cache",
    "revalidate_path",
    "safe_local_path",
]
