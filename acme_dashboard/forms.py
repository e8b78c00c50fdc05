"""Form schemas for invoice submissions and credential checks.

The schemas are plain :class:`wtforms.Form` subclasses so that they can
validate any ``MultiDict`` payload, inside or outside a request. CSRF is
enforced application-wide by ``CSRFProtect`` rather than per form.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from werkzeug.datastructures import MultiDict
from wtforms import DecimalField, Form, PasswordField, RadioField, StringField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    Email,
    InputRequired,
    Length,
    StopValidation,
)

from acme_dashboard.models import INVOICE_STATUSES, MAX_AMOUNT_CENTS

CUSTOMER_REQUIRED_MESSAGE = "Please select a customer."
AMOUNT_MESSAGE = "Please enter an amount greater than $0."
STATUS_MESSAGE = "Please select an invoice status."

CREATE_FAILED_MESSAGE = "Missing Fields. Failed to Create Invoice"
UPDATE_FAILED_MESSAGE = "Missing Fields. Failed to Update Invoice"

MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS).scaleb(-2)


class AmountField(DecimalField):
    """Decimal field that leaves unparseable input as ``None``.

    Error reporting is left to the validators so that every bad amount
    yields the same message.
    """

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        try:
            self.data = Decimal(valuelist[0].strip())
        except (InvalidOperation, ValueError, AttributeError):
            self.data = None


class AmountRange:
    """Require a finite amount above ``minimum`` and at most ``maximum``.

    The lower bound is checked again after rounding to ``field.places`` so
    that an accepted amount never stores as zero.
    """

    def __init__(self, minimum, maximum, message: str | None = None):
        self.minimum = minimum
        self.maximum = maximum
        self.message = message

    def _in_range(self, value, places) -> bool:
        if value is None or not value.is_finite():
            return False
        if value <= self.minimum or value > self.maximum:
            return False
        rounded = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
        return self.minimum < rounded <= self.maximum

    def __call__(self, form, field):
        if not self._in_range(field.data, field.places):
            message = self.message or field.gettext(
                "Number must be greater than %(min)s and at most %(max)s."
            ) % {"min": self.minimum, "max": self.maximum}
            raise StopValidation(message)


class InvoiceSchema(Form):
    """Fields shared by the create and update invoice forms.

    ``id`` and ``date`` are never read from the submission: the id comes
    from the URL and the date is assigned when the invoice is created.
    """

    customerId = StringField(
        "Customer",
        validators=[DataRequired(message=CUSTOMER_REQUIRED_MESSAGE)],
    )
    amount = AmountField(
        "Amount",
        places=2,
        validators=[AmountRange(0, MAX_AMOUNT, message=AMOUNT_MESSAGE)],
    )
    status = RadioField(
        "Status",
        choices=[(status, status.title()) for status in INVOICE_STATUSES],
        validate_choice=False,
        validators=[AnyOf(INVOICE_STATUSES, message=STATUS_MESSAGE)],
    )


class CredentialsSchema(Form):
    email = StringField("Email", validators=[InputRequired(), Email()])
    password = PasswordField(
        "Password", validators=[InputRequired(), Length(min=6)]
    )


@dataclass(frozen=True)
class InvoiceData:
    customer_id: str
    amount: Decimal
    status: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a submission.

    Exactly one of ``data`` or ``errors`` is populated.
    """

    data: Optional[Any] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data is not None


def _as_multidict(formdata: Mapping[str, Any] | MultiDict | None) -> MultiDict:
    if formdata is None:
        return MultiDict()
    if isinstance(formdata, MultiDict):
        return formdata
    return MultiDict(formdata)


def validate_invoice(
    formdata: Mapping[str, Any] | MultiDict | None,
    failure_message: str = CREATE_FAILED_MESSAGE,
) -> ValidationResult:
    """Validate a raw invoice submission without raising."""

    form = InvoiceSchema(formdata=_as_multidict(formdata))
    if not form.validate():
        return ValidationResult(
            errors={name: list(errors) for name, errors in form.errors.items()},
            message=failure_message,
        )
    return ValidationResult(
        data=InvoiceData(
            customer_id=form.customerId.data.strip(),
            amount=form.amount.data,
            status=form.status.data,
        )
    )


def validate_credentials(
    formdata: Mapping[str, Any] | MultiDict | None,
) -> ValidationResult:
    """Check the shape of a login submission.

    Returns ``data`` as an ``(email, password)`` tuple when valid.
    """

    form = CredentialsSchema(formdata=_as_multidict(formdata))
    if not form.validate():
        return ValidationResult(
            errors={name: list(errors) for name, errors in form.errors.items()},
            message="Invalid credentials.",
        )
    return ValidationResult(data=(form.email.data, form.password.data))
