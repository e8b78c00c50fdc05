"""Credentials sign-in built on Flask-Login.

``sign_in`` runs a named provider against the submitted form and starts a
session for the user it returns. ``authenticate`` is what the login view
calls: it turns authentication failures into a message for the form and
lets every other exception propagate.
"""

from __future__ import annotations

import logging
import secrets
from functools import lru_cache
from typing import Dict, Optional

from flask_login import login_user
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from acme_dashboard.forms import validate_credentials

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials."
GENERIC_FAILURE_MESSAGE = "Something went wrong"


class AuthError(Exception):
    """Base class for sign-in failures reported back to the login form."""

    type = "AuthError"


class CredentialsSignin(AuthError):
    type = "CredentialsSignin"


class CallbackRouteError(AuthError):
    """A provider raised while authorizing."""

    type = "CallbackRouteError"


class InvalidProvider(AuthError):
    type = "InvalidProvider"


class UserLookupError(RuntimeError):
    """The user table could not be queried."""


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return generate_password_hash(secrets.token_urlsafe(16))


class CredentialsProvider:
    """Email and password provider checked against stored hashes."""

    name = "credentials"

    def __init__(self, users) -> None:
        self.users = users

    def get_user(self, email: str):
        try:
            return self.users.get_by_email(email)
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch user: %s", exc)
            raise UserLookupError("Failed to fetch user.") from exc

    def authorize(self, credentials):
        """Return the matching user, or ``None`` when the credentials fail.

        Every failure path looks the same to the caller so that the
        response does not reveal whether the email exists.
        """
        validation = validate_credentials(credentials)
        if validation.ok:
            email, password = validation.data
            user = self.get_user(email)
            # Unknown emails still pay for one hash check.
            stored_hash = user.password if user is not None else _dummy_hash()
            if check_password_hash(stored_hash, password) and user is not None:
                return user

        logger.info("Invalid credentials")
        return None


def _default_providers() -> Dict[str, CredentialsProvider]:
    from acme_dashboard import db
    from acme_dashboard.services.storage import UserStore

    provider = CredentialsProvider(UserStore(db.session))
    return {provider.name: provider}


def sign_in(provider_name: str, formdata, providers: Optional[dict] = None):
    """Authorize ``formdata`` with the named provider and log the user in."""
    providers = _default_providers() if providers is None else providers
    provider = providers.get(provider_name)
    if provider is None:
        raise InvalidProvider(f"Unknown provider {provider_name!r}")

    try:
        user = provider.authorize(formdata)
    except Exception as exc:
        raise CallbackRouteError(str(exc)) from exc

    if user is None:
        raise CredentialsSignin("Invalid credentials")

    login_user(user)
    logger.info("User %s signed in", user.id)
    return user


def authenticate(formdata, providers: Optional[dict] = None) -> Optional[str]:
    """Sign in with the credentials provider.

    Returns ``None`` on success, otherwise the message to show on the form.
    """
    try:
        sign_in("credentials", formdata, providers=providers)
    except AuthError as error:
        if error.type == CredentialsSignin.type:
            return INVALID_CREDENTIALS_MESSAGE
        return GENERIC_FAILURE_MESSAGE
    return None
