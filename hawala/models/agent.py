"""
Agent model — a money-exchange business (saraf) on the marketplace.

The approval lifecycle is driven by an external admin workflow; the
settlement core only reads ``status`` and ``is_active`` to decide whether
the agent may publish rates and record transactions.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String, Uuid, Enum as SAEnum, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hawala.database import Base


class AgentStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class Agent(Base):
    __tablename__ = "agents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Owning user in the identity provider
    user_id: Mapped[str | None] = mapped_column(String(64), index=True)

    # Public business metadata
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    business_phone: Mapped[str | None] = mapped_column(String(32))
    business_address: Mapped[str | None] = mapped_column(String(300))
    city: Mapped[str | None] = mapped_column(String(100))

    status: Mapped[AgentStatus] = mapped_column(
        SAEnum(
            AgentStatus,
            name="agentstatus",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=AgentStatus.PENDING,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    rates = relationship("Rate", back_populates="agent")
    transactions = relationship("Transaction", back_populates="agent")

    @property
    def can_transact(self) -> bool:
        """True when the agent may publish rates and record transactions."""
        return self.status == AgentStatus.APPROVED and bool(self.is_active)

    def __repr__(self) -> str:
        return (
            f"<Agent {self.business_name!r} "
            f"status={self.status.value if self.status else 'N/A'}>"
        )


@event.listens_for(Agent, "init")
def _set_agent_defaults(target, args, kwargs):
    if "id" not in kwargs:
        target.id = uuid.uuid4()
    if "status" not in kwargs:
        target.status = AgentStatus.PENDING
    if "is_active" not in kwargs:
        target.is_active = True
    if "created_at" not in kwargs:
        target.created_at = datetime.now(timezone.utc)
    if "updated_at" not in kwargs:
        target.updated_at = datetime.now(timezone.utc)
