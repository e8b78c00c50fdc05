import pytest
from flask_login import current_user
from sqlalchemy.exc import OperationalError
from werkzeug.security import generate_password_hash

import acme_dashboard.auth as auth_module
from acme_dashboard.auth import (
    CallbackRouteError,
    CredentialsProvider,
    CredentialsSignin,
    InvalidProvider,
    UserLookupError,
    authenticate,
    sign_in,
)
from acme_dashboard.models import User
from acme_dashboard.services.storage import UserStore
from tests.utils import USER_EMAIL, USER_PASSWORD


class FakeUsers:
    def __init__(self, users=(), fail=False):
        self.users = {user.email: user for user in users}
        self.fail = fail
        self.lookups = []

    def get_by_email(self, email):
        if self.fail:
            raise OperationalError("SELECT", {}, Exception("connection refused"))
        self.lookups.append(email)
        return self.users.get(email)


def _stored_user():
    return User(
        id="u1",
        name="User",
        email=USER_EMAIL,
        password=generate_password_hash(USER_PASSWORD),
    )


def test_authorize_returns_user_for_matching_password():
    user = _stored_user()
    provider = CredentialsProvider(FakeUsers([user]))
    assert provider.authorize({"email": USER_EMAIL, "password": USER_PASSWORD}) is user


def test_wrong_password_and_unknown_email_look_the_same():
    provider = CredentialsProvider(FakeUsers([_stored_user()]))
    wrong_password = provider.authorize(
        {"email": USER_EMAIL, "password": "not-the-password"}
    )
    unknown_email = provider.authorize(
        {"email": "nobody@nextmail.com", "password": USER_PASSWORD}
    )
    assert wrong_password is None
    assert unknown_email is None


def test_unknown_email_still_checks_a_password_hash(monkeypatch):
    checked = []
    real_check = auth_module.check_password_hash

    def recording_check(pwhash, password):
        checked.append(pwhash)
        return real_check(pwhash, password)

    monkeypatch.setattr(auth_module, "check_password_hash", recording_check)
    provider = CredentialsProvider(FakeUsers([_stored_user()]))

    assert provider.authorize(
        {"email": "nobody@nextmail.com", "password": USER_PASSWORD}
    ) is None
    assert provider.authorize(
        {"email": USER_EMAIL, "password": "not-the-password"}
    ) is None
    assert len(checked) == 2
    assert checked[0] != checked[1]


def test_malformed_credentials_skip_lookup():
    users = FakeUsers([_stored_user()])
    provider = CredentialsProvider(users)
    assert provider.authorize({"email": "not-an-email", "password": USER_PASSWORD}) is None
    assert provider.authorize({"email": USER_EMAIL, "password": "12345"}) is None
    assert users.lookups == []


def test_lookup_failure_raises_user_lookup_error(caplog):
    provider = CredentialsProvider(FakeUsers(fail=True))
    with pytest.raises(UserLookupError, match="Failed to fetch user."):
        provider.authorize({"email": USER_EMAIL, "password": USER_PASSWORD})
    assert "Failed to fetch user" in caplog.text


def test_sign_in_logs_user_in(app, user):
    with app.test_request_context("/login", method="POST"):
        signed_in = sign_in(
            "credentials", {"email": USER_EMAIL, "password": USER_PASSWORD}
        )
        assert signed_in.id == user.id
        assert current_user.is_authenticated
        assert current_user.email == USER_EMAIL


def test_sign_in_denial_raises_credentials_signin(app, user):
    with app.test_request_context("/login", method="POST"):
        with pytest.raises(CredentialsSignin) as excinfo:
            sign_in("credentials", {"email": USER_EMAIL, "password": "wrong-pass"})
        assert excinfo.value.type == "CredentialsSignin"
        assert not current_user.is_authenticated


def test_sign_in_unknown_provider(app):
    with app.test_request_context("/login", method="POST"):
        with pytest.raises(InvalidProvider):
            sign_in("github", {}, providers={})


def test_sign_in_wraps_provider_failures(app):
    providers = {"credentials": CredentialsProvider(FakeUsers(fail=True))}
    with app.test_request_context("/login", method="POST"):
        with pytest.raises(CallbackRouteError) as excinfo:
            sign_in(
                "credentials",
                {"email": USER_EMAIL, "password": USER_PASSWORD},
                providers=providers,
            )
    assert isinstance(excinfo.value.__cause__, UserLookupError)


def test_authenticate_messages(app, user):
    with app.test_request_context("/login", method="POST"):
        assert authenticate({"email": USER_EMAIL, "password": USER_PASSWORD}) is None

    with app.test_request_context("/login", method="POST"):
        assert (
            authenticate({"email": USER_EMAIL, "password": "wrong-pass"})
            == "Invalid credentials."
        )
        assert (
            authenticate({"email": "nobody@nextmail.com", "password": USER_PASSWORD})
            == "Invalid credentials."
        )

    providers = {"credentials": CredentialsProvider(FakeUsers(fail=True))}
    with app.test_request_context("/login", method="POST"):
        message = authenticate(
            {"email": USER_EMAIL, "password": USER_PASSWORD}, providers=providers
        )
    assert message == "Something went wrong"


def test_authenticate_reraises_unrelated_errors(app, user, monkeypatch):
    def broken_login(user):
        raise RuntimeError("session backend down")

    monkeypatch.setattr(auth_module, "login_user", broken_login)
    with app.test_request_context("/login", method="POST"):
        with pytest.raises(RuntimeError, match="session backend down"):
            authenticate({"email": USER_EMAIL, "password": USER_PASSWORD})


def test_user_store_looks_up_by_exact_email(app, user):
    from acme_dashboard import db

    store = UserStore(db.session)
    assert store.get_by_email(USER_EMAIL).id == user.id
    assert store.get_by_email(USER_EMAIL.upper()) is None
