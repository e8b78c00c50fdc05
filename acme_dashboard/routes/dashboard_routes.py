from flask import Blueprint, redirect, render_template, url_for
from flask_login import current_user, login_required

from acme_dashboard.services.dashboard_metrics import card_data, latest_invoices

dashboard = Blueprint("dashboard", __name__)


@dashboard.route("/")
def home():
    """Landing page."""
    if current_user.is_authenticated:
        return redirect(url_for("dashboard.overview"))
    return render_template("home.html")


@dashboard.route("/dashboard")
@login_required
def overview():
    """Summary cards and the latest invoices."""
    return render_template(
        "dashboard/overview.html",
        cards=card_data(),
        latest=latest_invoices(),
    )
