import os

from werkzeug.security import generate_password_hash

from acme_dashboard import create_app, db
from acme_dashboard.models import Customer, User

DEMO_CUSTOMERS = [
    ("Evil Rabbit", "evil@rabbit.com", "/customers/evil-rabbit.png"),
    ("Delba de Oliveira", "delba@oliveira.com", "/customers/delba-de-oliveira.png"),
    ("Lee Robinson", "lee@robinson.com", "/customers/lee-robinson.png"),
    ("Michael Novotny", "michael@novotny.com", "/customers/michael-novotny.png"),
]


def create_admin_user() -> User:
    """Ensure the user named by ``ADMIN_EMAIL`` exists."""

    admin_email = os.getenv("ADMIN_EMAIL")
    raw_password = os.getenv("ADMIN_PASS")
    if not admin_email:
        raise RuntimeError("ADMIN_EMAIL environment variable not set")
    if raw_password is None:
        raise RuntimeError("ADMIN_PASS environment variable not set")

    user = User.query.filter_by(email=admin_email).first()
    if user is None:
        user = User(
            name=os.getenv("ADMIN_NAME", "Admin"),
            email=admin_email,
            password=generate_password_hash(raw_password),
        )
        db.session.add(user)
        db.session.commit()
        print("Admin user created.")
    return user


def seed_customers() -> int:
    """Add the demo customers that are not present yet."""

    added = 0
    for name, email, image_url in DEMO_CUSTOMERS:
        if Customer.query.filter_by(email=email).first() is None:
            db.session.add(Customer(name=name, email=email, image_url=image_url))
            added += 1
    db.session.commit()
    return added


def seed_initial_data(with_customers: bool = True) -> None:
    """Seed the database with an admin user and demo customers."""
    app = create_app(["--demo"])
    with app.app_context():
        db.create_all()
        create_admin_user()
        if with_customers:
            added = seed_customers()
            print(f"{added} demo customers added.")


if __name__ == "__main__":
    seed_initial_data()
