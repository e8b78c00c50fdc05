"""Storage capabilities injected into the invoice handlers and auth provider.

Every method issues exactly one parameterized statement and commits it. On
failure the session is rolled back and the SQLAlchemy error propagates to
the caller, which decides how to report it.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from acme_dashboard.models import Invoice, User


class _SessionStore:
    def __init__(self, session) -> None:
        self.session = session

    def _execute(self, statement):
        try:
            result = self.session.execute(statement)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        return result


class InvoiceStore(_SessionStore):
    def insert(self, customer_id: str, amount: int, status: str, date: str) -> None:
        self._execute(
            insert(Invoice).values(
                customer_id=customer_id,
                amount=amount,
                status=status,
                date=date,
            )
        )

    def update(
        self, invoice_id: str, customer_id: str, amount: int, status: str
    ) -> None:
        self._execute(
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .values(customer_id=customer_id, amount=amount, status=status)
        )

    def delete(self, invoice_id: str) -> None:
        self._execute(delete(Invoice).where(Invoice.id == invoice_id))


class UserStore(_SessionStore):
    def get_by_email(self, email: str) -> Optional[User]:
        try:
            return self.session.execute(
                select(User).where(User.email == email)
            ).scalar_one_or_none()
        except SQLAlchemyError:
            self.session.rollback()
            raise
