import logging
import os
import secrets
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, Response, g, render_template, request
from flask_bootstrap import Bootstrap5
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import CSRFProtect
from flask_wtf.csrf import CSRFError
from sqlalchemy import event

load_dotenv()
db = SQLAlchemy()
login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = None
storage_uri = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
limiter = Limiter(key_func=get_remote_address, storage_uri=storage_uri)
csrf = CSRFProtect()

INVOICES_PATH = "/dashboard/invoices"


def _get_bool_env(var_name: str, default: bool = False) -> bool:
    """Return a boolean environment variable value."""

    value = os.getenv(var_name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


DEFAULT_CSP_TEMPLATE = (
    "default-src 'self'; "
    "img-src 'self' data:; "
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "script-src 'self' https://cdn.jsdelivr.net 'nonce-{nonce}'; "
    "font-src 'self' data:; "
    "frame-ancestors 'self'; "
    "form-action 'self'; "
    "object-src 'none'; "
    "base-uri 'self'"
)
NAV_LINKS = {
    "dashboard.overview": "Home",
    "invoices.view_invoices": "Invoices",
}


@login_manager.user_loader
def load_user(user_id):
    """Retrieve a user by ID for Flask-Login."""
    from acme_dashboard.models import User

    return db.session.get(User, user_id)


def _database_uri(base_dir: str) -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        # Heroku-style URLs use the deprecated ``postgres`` scheme.
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        return url
    db_path = os.getenv("DATABASE_PATH") or os.path.join(base_dir, "acme.db")
    db_path = os.path.abspath(db_path)
    os.makedirs(os.path.dirname(db_path), exist_ok=True)
    return f"sqlite:///{db_path}"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
    # SQLite ignores REFERENCES clauses unless enabled per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_app(args: list, test_config: dict | None = None):
    """Application factory used by Flask.

    ``test_config`` is applied after the environment has been read and
    before any extension is initialised.
    """
    app = Flask(__name__)
    demo = "--demo" in args
    app.config["DEMO"] = demo

    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        if not demo:
            raise RuntimeError("SECRET_KEY environment variable not set")
        secret_key = secrets.token_hex(32)
    app.config["SECRET_KEY"] = secret_key

    session_cookie_secure = _get_bool_env(
        "SESSION_COOKIE_SECURE", default=not demo
    )
    app.config["ENFORCE_HTTPS"] = _get_bool_env("ENFORCE_HTTPS", default=False)
    app.config.update(
        SESSION_COOKIE_SECURE=session_cookie_secure,
        REMEMBER_COOKIE_SECURE=session_cookie_secure,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        PERMANENT_SESSION_LIFETIME=timedelta(minutes=30),
        INVOICES_PER_PAGE=6,
        VIEW_CACHE_TTL=int(os.getenv("VIEW_CACHE_TTL", "300")),
        VIEW_CACHE_MAX_VARIANTS=int(os.getenv("VIEW_CACHE_MAX_VARIANTS", "64")),
        VIEW_CACHE_REDIS_URL=os.getenv("VIEW_CACHE_REDIS_URL"),
    )
    # Resolve paths eagerly so the tests can change directories after
    # creating the app.
    app.config["SQLALCHEMY_DATABASE_URI"] = _database_uri(os.getcwd())

    if test_config:
        app.config.update(test_config)

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    app.logger.setLevel(getattr(logging, log_level, logging.INFO))

    db.init_app(app)
    with app.app_context():
        engine = db.engine
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    from flask_migrate import Migrate

    repo_dir = os.path.abspath(
        os.path.join(os.path.dirname(__file__), os.pardir)
    )
    Migrate(app, db, directory=os.path.join(repo_dir, "migrations"))
    login_manager.init_app(app)
    if app.config.get("TESTING"):
        app.config["RATELIMIT_ENABLED"] = False
    limiter.init_app(app)
    Bootstrap5(app)
    csrf.init_app(app)

    from acme_dashboard.utils.formatting import format_currency, format_date
    from acme_dashboard.utils.view_cache import init_view_cache

    init_view_cache(app)
    app.jinja_env.filters["currency"] = format_currency
    app.jinja_env.filters["format_date"] = format_date

    @app.context_processor
    def inject_nav_links():
        """Provide navigation labels to templates."""
        return dict(NAV_LINKS=NAV_LINKS)

    @app.before_request
    def set_csp_nonce():
        """Generate a nonce for inline scripts allowed by the CSP."""

        g.csp_nonce = secrets.token_urlsafe(16)

    @app.after_request
    def apply_security_headers(response):
        """Attach standard security headers to every response."""
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if request.is_secure or app.config.get("ENFORCE_HTTPS", False):
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains; preload",
            )
        nonce = getattr(g, "csp_nonce", "") or secrets.token_urlsafe(16)
        csp_template = app.config.get(
            "CONTENT_SECURITY_POLICY", DEFAULT_CSP_TEMPLATE
        )
        response.headers.setdefault(
            "Content-Security-Policy", csp_template.format(nonce=nonce)
        )
        return response

    @app.context_processor
    def inject_csp_nonce():
        """Expose the CSP nonce to templates for inline scripts."""

        return {"csp_nonce": getattr(g, "csp_nonce", "")}

    @app.before_request
    def block_http_options():
        """Return a 405 for HTTP OPTIONS requests to reduce information leakage."""
        if request.method == "OPTIONS":
            return Response(status=405)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        """Render a helpful page when CSRF validation fails."""
        return (
            render_template(
                "errors/csrf_error.html",
                reason=error.description,
            ),
            400,
        )

    with app.app_context():
        from acme_dashboard.routes.auth_routes import auth
        from acme_dashboard.routes.dashboard_routes import dashboard
        from acme_dashboard.routes.invoice_routes import invoices

        app.register_blueprint(auth)
        app.register_blueprint(dashboard)
        app.register_blueprint(invoices)

    return app
