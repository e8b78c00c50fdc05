"""Helpers for handling paginated views."""

from __future__ import annotations

from typing import Dict, List, Union

from flask import request

ELLIPSIS = "..."


def get_page(param: str = "page") -> int:
    """Return the requested 1-based page number, defaulting to 1."""

    value = request.args.get(param, type=int)
    if value is None or value < 1:
        return 1
    return value


def generate_pagination(current_page: int, total_pages: int) -> List[Union[int, str]]:
    """Return the page links to display, collapsing long ranges.

    Parameters
    ----------
    current_page:
        The page being viewed.
    total_pages:
        Number of pages available.

    Returns
    -------
    list
        Page numbers with ``"..."`` standing in for omitted runs, e.g.
        ``[1, "...", 4, 5, 6, "...", 10]``.
    """

    if total_pages <= 7:
        return list(range(1, total_pages + 1))
    if current_page <= 3:
        return [1, 2, 3, ELLIPSIS, total_pages - 1, total_pages]
    if current_page >= total_pages - 2:
        return [1, 2, ELLIPSIS, total_pages - 2, total_pages - 1, total_pages]
    return [
        1,
        ELLIPSIS,
        current_page - 1,
        current_page,
        current_page + 1,
        ELLIPSIS,
        total_pages,
    ]


def build_pagination_args(
    page: int,
    *,
    page_param: str = "page",
) -> Dict[str, Union[str, List[str]]]:
    """Assemble ``url_for`` arguments for a link to ``page``.

    Other query parameters of the current request are preserved.
    """

    args: Dict[str, Union[str, List[str]]] = {}
    for key, values in request.args.lists():
        if key == page_param or not values:
            continue
        if len(values) == 1:
            args[key] = values[0]
        else:
            args[key] = values
    args[page_param] = str(page)
    return args
