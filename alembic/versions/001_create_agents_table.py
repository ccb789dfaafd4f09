"""create agents table

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    agentstatus = postgresql.ENUM(
        "PENDING", "APPROVED", "REJECTED", "SUSPENDED",
        name="agentstatus", create_type=False,
    )
    agentstatus.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "agents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(64), index=True, nullable=True),
        sa.Column("business_name", sa.String(200), nullable=False),
        sa.Column("business_phone", sa.String(32), nullable=True),
        sa.Column("business_address", sa.String(300), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("status", agentstatus, server_default="PENDING", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.func.now(), nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("agents")
    postgresql.ENUM(name="agentstatus").drop(op.get_bind(), checkfirst=True)
