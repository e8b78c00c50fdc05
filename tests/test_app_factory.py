import os
import runpy

import pytest

from acme_dashboard import _database_uri, create_app, db
from acme_dashboard.utils.formatting import format_currency, format_date
from acme_dashboard.utils.navigation import safe_local_path

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def test_security_headers(client):
    response = client.get("/login")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert "nonce-" in response.headers["Content-Security-Policy"]
    assert "Strict-Transport-Security" not in response.headers


def test_options_requests_blocked(client):
    assert client.open("/login", method="OPTIONS").status_code == 405


def test_secret_key_required_outside_demo(monkeypatch, tmp_path):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        create_app([], {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path}/x.db"})


def test_database_url_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SECRET_KEY", "testsecret")
    url = f"sqlite:///{tmp_path}/env.db"
    monkeypatch.setenv("DATABASE_URL", url)
    app = create_app(["--demo"])
    assert app.config["SQLALCHEMY_DATABASE_URI"] == url
    assert app.config["SESSION_COOKIE_SECURE"] is False


def test_legacy_postgres_scheme_is_rewritten(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://user:pw@db.example.com/acme")
    assert _database_uri("/unused") == "postgresql://user:pw@db.example.com/acme"


def test_database_path_fallback(monkeypatch, tmp_path):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_PATH", raising=False)
    assert _database_uri(str(tmp_path)) == f"sqlite:///{tmp_path / 'acme.db'}"


def test_format_currency():
    assert format_currency(4250) == "$42.50"
    assert format_currency(123456789) == "$1,234,567.89"
    assert format_currency(-5) == "-$0.05"
    assert format_currency(None) == ""


def test_format_date():
    assert format_date("2026-10-09") == "Oct 9, 2026"
    assert format_date("not a date") == "not a date"
    assert format_date("") == ""


@pytest.mark.parametrize(
    "target, expected",
    [
        ("/dashboard/invoices?page=2", "/dashboard/invoices?page=2"),
        ("https://evil.example.com/", None),
        ("//evil.example.com/", None),
        ("/\\evil.example.com", None),
        ("dashboard", None),
        (None, None),
    ],
)
def test_safe_local_path(target, expected):
    assert safe_local_path(target) == expected


def test_gunicorn_runs_one_worker_without_shared_cache(monkeypatch):
    config_path = os.path.join(BASE_DIR, "gunicorn.conf.py")
    monkeypatch.setenv("WEB_CONCURRENCY", "4")

    monkeypatch.delenv("VIEW_CACHE_REDIS_URL", raising=False)
    assert runpy.run_path(config_path)["workers"] == 1

    monkeypatch.setenv("VIEW_CACHE_REDIS_URL", "redis://localhost:6379/0")
    assert runpy.run_path(config_path)["workers"] == 4


def test_sqlite_connections_enforce_foreign_keys(app):
    with db.engine.connect() as connection:
        assert connection.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
