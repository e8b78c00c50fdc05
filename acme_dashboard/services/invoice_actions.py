"""Create, update and delete handlers for invoice form submissions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from acme_dashboard import INVOICES_PATH
from acme_dashboard.forms import (
    CREATE_FAILED_MESSAGE,
    UPDATE_FAILED_MESSAGE,
    validate_invoice,
)

logger = logging.getLogger(__name__)

CREATE_DB_ERROR = "Database Error: Failed to Create Invoice"
UPDATE_DB_ERROR = "Database Error: Failed to Update Invoice"
DELETE_DB_ERROR = "Database Error: Failed to Delete Invoice"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a handler call.

    On success ``redirect_to`` names where the caller should navigate, if
    anywhere. On failure ``message`` is set and ``errors`` may hold the
    per-field validation messages.
    """

    ok: bool
    message: Optional[str] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)
    redirect_to: Optional[str] = None

    @classmethod
    def success(cls, redirect_to: Optional[str] = None) -> "ActionResult":
        return cls(ok=True, redirect_to=redirect_to)

    @classmethod
    def failure(
        cls, message: str, errors: Optional[Dict[str, List[str]]] = None
    ) -> "ActionResult":
        return cls(ok=False, message=message, errors=dict(errors or {}))


def to_cents(amount: Decimal) -> int:
    """Convert a major-unit amount to integer cents, rounding half up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class InvoiceActions:
    """Invoice mutations behind injected storage and cache collaborators.

    ``store`` provides ``insert``, ``update`` and ``delete``; ``revalidate``
    marks a cached path as stale; ``today`` returns the current date.
    """

    def __init__(
        self,
        store,
        revalidate: Callable[[str], None],
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.revalidate = revalidate
        self.today = today

    def create_invoice(self, formdata) -> ActionResult:
        validation = validate_invoice(formdata, CREATE_FAILED_MESSAGE)
        if not validation.ok:
            return ActionResult.failure(validation.message, validation.errors)

        data = validation.data
        amount = to_cents(data.amount)
        invoice_date = self.today().isoformat()
        try:
            self.store.insert(data.customer_id, amount, data.status, invoice_date)
        except SQLAlchemyError:
            logger.exception("Failed to create invoice")
            return ActionResult.failure(CREATE_DB_ERROR)

        logger.info("Created invoice for customer %s", data.customer_id)
        self.revalidate(INVOICES_PATH)
        return ActionResult.success(redirect_to=INVOICES_PATH)

    def update_invoice(self, invoice_id: str, formdata) -> ActionResult:
        validation = validate_invoice(formdata, UPDATE_FAILED_MESSAGE)
        if not validation.ok:
            return ActionResult.failure(validation.message, validation.errors)

        data = validation.data
        try:
            self.store.update(
                invoice_id, data.customer_id, to_cents(data.amount), data.status
            )
        except SQLAlchemyError:
            logger.exception("Failed to update invoice %s", invoice_id)
            return ActionResult.failure(UPDATE_DB_ERROR)

        logger.info("Updated invoice %s", invoice_id)
        self.revalidate(INVOICES_PATH)
        return ActionResult.success(redirect_to=INVOICES_PATH)

    def delete_invoice(self, invoice_id: str) -> ActionResult:
        try:
            self.store.delete(invoice_id)
        except SQLAlchemyError:
            logger.exception("Failed to delete invoice %s", invoice_id)
            return ActionResult.failure(DELETE_DB_ERROR)

        logger.info("Deleted invoice %s", invoice_id)
        self.revalidate(INVOICES_PATH)
        return ActionResult.success()


def get_invoice_actions() -> InvoiceActions:
    """Build handlers bound to the current app's session and view cache."""
    from acme_dashboard import db
    from acme_dashboard.services.storage import InvoiceStore
    from acme_dashboard.utils.view_cache import revalidate_path

    return InvoiceActions(InvoiceStore(db.session), revalidate_path)
