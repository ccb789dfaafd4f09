"""create transaction_events table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "004"
down_revision = "003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # created in 003
    transactionstatus = postgresql.ENUM(
        "PENDING", "COMPLETED", "CANCELLED", "WITHDRAWN",
        name="transactionstatus", create_type=False,
    )

    op.create_table(
        "transaction_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "transaction_id", sa.Uuid(),
            sa.ForeignKey("transactions.id"), index=True, nullable=False,
        ),
        sa.Column("from_status", transactionstatus, nullable=True),
        sa.Column("to_status", transactionstatus, nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("transaction_events")
