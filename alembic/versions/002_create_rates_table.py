"""create rates table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "rates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("agent_id", sa.Uuid(), sa.ForeignKey("agents.id"), nullable=False),
        sa.Column("from_currency", sa.String(3), nullable=False),
        sa.Column("to_currency", sa.String(3), nullable=False),
        sa.Column("buy_rate", sa.Numeric(18, 6), nullable=False),
        sa.Column("sell_rate", sa.Numeric(18, 6), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
        sa.UniqueConstraint(
            "agent_id", "from_currency", "to_currency", name="uq_rates_agent_pair",
        ),
        sa.CheckConstraint("buy_rate > 0", name="ck_rates_buy_rate_positive"),
        sa.CheckConstraint("sell_rate > 0", name="ck_rates_sell_rate_positive"),
    )


def downgrade() -> None:
    op.drop_table("rates")
