"""create transactions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "003"
down_revision = "002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    transactionstatus = postgresql.ENUM(
        "PENDING", "COMPLETED", "CANCELLED", "WITHDRAWN",
        name="transactionstatus", create_type=False,
    )
    transactionstatus.create(op.get_bind(), checkfirst=True)

    rateside = postgresql.ENUM("BUY", "SELL", name="rateside", create_type=False)
    rateside.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("reference_code", sa.String(24), unique=True, index=True, nullable=False),
        sa.Column(
            "agent_id", sa.Uuid(),
            sa.ForeignKey("agents.id"), index=True, nullable=False,
        ),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("status", transactionstatus, server_default="PENDING", nullable=False),
        sa.Column("from_currency", sa.String(3), nullable=False),
        sa.Column("to_currency", sa.String(3), nullable=False),
        sa.Column("from_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("to_amount", sa.Numeric(30, 8), nullable=False),
        sa.Column("rate", sa.Numeric(18, 6), nullable=False),
        sa.Column("rate_side", rateside, nullable=False),
        sa.Column("fee", sa.Numeric(18, 2), server_default="0", nullable=False),
        sa.Column("fee_percentage", sa.Numeric(7, 6), server_default="0", nullable=False),
        sa.Column("minimum_fee", sa.Numeric(18, 2), server_default="0", nullable=False),
        sa.Column("sender_name", sa.String(200), nullable=False),
        sa.Column("sender_phone", sa.String(256), nullable=False),
        sa.Column("sender_city", sa.String(100), nullable=True),
        sa.Column("sender_country", sa.String(100), nullable=True),
        sa.Column("receiver_name", sa.String(200), nullable=False),
        sa.Column("receiver_phone", sa.String(256), nullable=False),
        sa.Column("receiver_city", sa.String(100), nullable=False),
        sa.Column("receiver_country", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
        sa.CheckConstraint("from_amount > 0", name="ck_transactions_from_amount_positive"),
        sa.CheckConstraint("fee >= 0", name="ck_transactions_fee_non_negative"),
        sa.CheckConstraint("rate > 0", name="ck_transactions_rate_positive"),
    )


def downgrade() -> None:
    op.drop_table("transactions")
    postgresql.ENUM(name="rateside").drop(op.get_bind(), checkfirst=True)
    postgresql.ENUM(name="transactionstatus").drop(op.get_bind(), checkfirst=True)
