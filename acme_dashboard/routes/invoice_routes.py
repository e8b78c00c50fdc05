from decimal import Decimal

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import login_required

from acme_dashboard import INVOICES_PATH, db
from acme_dashboard.forms import InvoiceSchema
from acme_dashboard.models import Invoice
from acme_dashboard.services.dashboard_metrics import (
    customer_choices,
    filtered_invoices,
)
from acme_dashboard.services.invoice_actions import get_invoice_actions
from acme_dashboard.utils.navigation import safe_local_path
from acme_dashboard.utils.pagination import (
    build_pagination_args,
    generate_pagination,
    get_page,
)
from acme_dashboard.utils.view_cache import get_view_cache

invoices = Blueprint("invoices", __name__, url_prefix=INVOICES_PATH)


def _render_form(form, result=None, invoice_id=None):
    status = 200
    if result is not None and not result.ok:
        status = 400 if result.errors else 500
    return (
        render_template(
            "invoices/form.html",
            form=form,
            customers=customer_choices(),
            result=result,
            invoice_id=invoice_id,
        ),
        status,
    )


@invoices.route("")
@login_required
def view_invoices():
    """List invoices with an optional search query."""
    query = request.args.get("query", "").strip()
    page = get_page()
    per_page = current_app.config["INVOICES_PER_PAGE"]
    data = get_view_cache().get_or_compute(
        INVOICES_PATH,
        lambda: filtered_invoices(query, page, per_page),
        variant=(query, page),
    )
    pagination = [
        (
            number,
            url_for("invoices.view_invoices", **build_pagination_args(number))
            if isinstance(number, int)
            else None,
        )
        for number in generate_pagination(data["page"], data["pages"])
    ]
    return render_template(
        "invoices/list.html",
        invoices=data["items"],
        page=data["page"],
        pages=data["pages"],
        pagination=pagination,
        query=query,
    )


@invoices.route("/create", methods=["GET", "POST"])
@login_required
def create_invoice():
    """Create an invoice."""
    if request.method == "POST":
        result = get_invoice_actions().create_invoice(request.form)
        if result.ok:
            flash("Invoice created.", "success")
            return redirect(result.redirect_to)
        return _render_form(InvoiceSchema(request.form), result)
    return _render_form(InvoiceSchema())


@invoices.route("/<invoice_id>/edit", methods=["GET", "POST"])
@login_required
def edit_invoice(invoice_id):
    """Update an invoice's customer, amount and status."""
    if request.method == "POST":
        result = get_invoice_actions().update_invoice(invoice_id, request.form)
        if result.ok:
            flash("Invoice updated.", "success")
            return redirect(result.redirect_to)
        return _render_form(InvoiceSchema(request.form), result, invoice_id)

    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        abort(404)
    form = InvoiceSchema(
        data={
            "customerId": invoice.customer_id,
            "amount": Decimal(invoice.amount) / 100,
            "status": invoice.status,
        }
    )
    return _render_form(form, invoice_id=invoice_id)


@invoices.route("/<invoice_id>/delete", methods=["POST"])
@login_required
def delete_invoice(invoice_id):
    """Delete an invoice and return to the page it was deleted from."""
    result = get_invoice_actions().delete_invoice(invoice_id)
    if not result.ok:
        flash(result.message, "danger")
    back = safe_local_path(request.form.get("next"))
    return redirect(back or url_for("invoices.view_invoices"))
