from flask import (
    Blueprint,
    current_app,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_required, logout_user

from acme_dashboard import limiter
from acme_dashboard.auth import authenticate
from acme_dashboard.forms import CredentialsSchema
from acme_dashboard.utils.navigation import safe_local_path

auth = Blueprint("auth", __name__)


@auth.route("/login", methods=["GET", "POST"])
@limiter.limit("5 per minute", methods=["POST"])
def login():
    """Authenticate a user and start their session."""
    if current_user.is_authenticated:
        return redirect(url_for("dashboard.overview"))

    next_url = safe_local_path(
        request.form.get("next") or request.args.get("next")
    )
    form = CredentialsSchema(request.form)
    error = None
    if request.method == "POST":
        error = authenticate(request.form)
        if error is None:
            return redirect(next_url or url_for("dashboard.overview"))

    return (
        render_template(
            "auth/login.html",
            form=form,
            error=error,
            next_url=next_url,
            demo=current_app.config["DEMO"],
        ),
        401 if error else 200,
    )


@auth.route("/logout", methods=["POST"])
@login_required
def logout():
    """Log the current user out."""
    user_id = current_user.id
    logout_user()
    current_app.logger.info("User %s signed out", user_id)
    return redirect(url_for("auth.login"))
