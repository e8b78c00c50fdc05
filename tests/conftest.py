from __future__ import annotations

import os
import sys

import pytest
from werkzeug.security import generate_password_hash

# Ensure the package is importable when tests change directories
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, BASE_DIR)

from acme_dashboard import create_app, db  # noqa: E402
from acme_dashboard.models import Customer, User  # noqa: E402
from tests.utils import USER_EMAIL, USER_PASSWORD  # noqa: E402


@pytest.fixture
def app(tmp_path):
    os.environ.setdefault("SECRET_KEY", "testsecret")

    db_path = tmp_path / "acme.db"
    if db_path.exists():
        os.remove(db_path)

    cwd = os.getcwd()
    os.chdir(tmp_path)
    app = create_app(
        ["--demo"],
        {
            "TESTING": True,
            "WTF_CSRF_ENABLED": False,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        },
    )
    os.chdir(cwd)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    user = User(
        name="User",
        email=USER_EMAIL,
        password=generate_password_hash(USER_PASSWORD),
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def customer(app):
    customer = Customer(
        name="Lee Robinson",
        email="lee@robinson.com",
        image_url="/customers/lee-robinson.png",
    )
    db.session.add(customer)
    db.session.commit()
    return customer
