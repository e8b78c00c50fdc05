"""Utility helpers shared across the test-suite."""

from __future__ import annotations

import re
from fnmatch import fnmatch
from typing import Any


USER_EMAIL = "user@nextmail.com"
USER_PASSWORD = "123456"

_CSRF_RE = re.compile(r'name=["\']csrf_token["\'][^>]*value=["\']([^"\']+)["\']', re.IGNORECASE)


def extract_csrf_token(response: Any, *, required: bool = True) -> str:
    """Return the first CSRF token found in ``response`` HTML content."""

    if hasattr(response, "data"):
        html: str = response.data.decode("utf-8")
    elif isinstance(response, (bytes, bytearray)):
        html = response.decode("utf-8")
    else:
        html = str(response)
    match = _CSRF_RE.search(html)
    if not match:
        if required:
            raise AssertionError("CSRF token not found in response")
        return ""
    return match.group(1)


def login(client, email: str, password: str, **kwargs):
    """Helper to login a user in tests, respecting CSRF protection."""

    login_page = client.get("/login")
    token = extract_csrf_token(login_page, required=False)
    form_data = {"email": email, "password": password}
    if token:
        form_data["csrf_token"] = token
    return client.post("/login", data=form_data, **kwargs)


class InMemoryRedis:
    """Just enough of the redis client API for the shared view cache."""

    def __init__(self):
        self.values = {}
        self.expiries = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, ex=None):
        self.values[key] = value
        self.expiries[key] = ex

    def incr(self, key):
        self.values[key] = str(int(self.values.get(key, 0)) + 1)
        return int(self.values[key])

    def scan_iter(self, match=None):
        return (key for key in list(self.values) if fnmatch(key, match or "*"))
