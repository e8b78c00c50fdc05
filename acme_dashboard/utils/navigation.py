"""Redirect target helpers."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse


def safe_local_path(target: Optional[str]) -> Optional[str]:
    """Return ``target`` if it is a path on this site, else ``None``.

    Absolute URLs and scheme-relative ``//host`` paths are rejected so
    that ``next`` parameters cannot send users off-site.
    """

    if not target:
        return None
    cleaned = target.replace("\\", "").strip()
    parsed = urlparse(cleaned)
    if parsed.scheme or parsed.netloc:
        return None
    if not cleaned.startswith("/") or cleaned.startswith("//"):
        return None
    return cleaned
