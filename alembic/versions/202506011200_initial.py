"""profiles and transactions

Revision ID: 202506011200
Revises:
Create Date: 2025-06-01 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202506011200"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("couple_id", sa.String(length=36)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_profiles_couple_id", "profiles", ["couple_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("couple_id", sa.String(length=36)),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(length=40), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column(
            "is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("recurring_group_id", sa.String(length=36)),
        sa.Column("installment_number", sa.Integer()),
        sa.Column("total_installments", sa.Integer()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_transactions_month"),
        sa.CheckConstraint(
            "total_installments IS NULL OR total_installments BETWEEN 1 AND 48",
            name="ck_transactions_total_installments",
        ),
        sa.CheckConstraint(
            "installment_number IS NULL OR installment_number BETWEEN 1 AND total_installments",
            name="ck_transactions_installment_number",
        ),
    )
    op.create_index(
        "ix_transactions_user_period", "transactions", ["user_id", "year", "month"]
    )
    op.create_index(
        "ix_transactions_couple_period", "transactions", ["couple_id", "year", "month"]
    )
    op.create_index(
        "ix_transactions_recurring_group", "transactions", ["recurring_group_id"]
    )


def downgrade():
    op.drop_index("ix_transactions_recurring_group", table_name="transactions")
    op.drop_index("ix_transactions_couple_period", table_name="transactions")
    op.drop_index("ix_transactions_user_period", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_profiles_couple_id", table_name="profiles")
    op.drop_table("profiles")
    sa.Enum(name="transactiontype").drop(op.get_bind(), checkfirst=True)
