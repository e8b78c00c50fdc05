"""Create users, customers and invoices tables."""

from alembic import op
import sqlalchemy as sa


def _has_table(table_name: str, bind) -> bool:
    inspector = sa.inspect(bind)
    return inspector.has_table(table_name)


# revision identifiers, used by Alembic.
revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    if not bind:
        return

    if not _has_table("users", bind):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("password", sa.String(length=255), nullable=False),
            sa.UniqueConstraint("email", name="uq_users_email"),
        )

    if not _has_table("customers", bind):
        op.create_table(
            "customers",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("image_url", sa.String(length=255), nullable=False),
        )

    if not _has_table("invoices", bind):
        op.create_table(
            "invoices",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("customer_id", sa.String(length=36), nullable=False),
            sa.Column("amount", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("date", sa.String(length=10), nullable=False),
            sa.ForeignKeyConstraint(
                ["customer_id"], ["customers.id"], name="fk_invoices_customer"
            ),
            sa.CheckConstraint(
                "status IN ('pending', 'paid')", name="ck_invoices_status"
            ),
        )
        op.create_index(
            "ix_invoices_customer_id", "invoices", ["customer_id"]
        )
        op.create_index("ix_invoices_date", "invoices", ["date"])


def downgrade():
    bind = op.get_bind()
    if not bind:
        return

    if _has_table("invoices", bind):
        op.drop_index("ix_invoices_date", table_name="invoices")
        op.drop_index("ix_invoices_customer_id", table_name="invoices")
        op.drop_table("invoices")
    for table_name in ("customers", "users"):
        if _has_table(table_name, bind):
            op.drop_table(table_name)
