"""
TransactionEvent model — append-only status history.

One row is written in the same database transaction as every status
change (including creation, where ``from_status`` is NULL).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid, Enum as SAEnum, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hawala.database import Base
from hawala.models.transaction import TransactionStatus


class TransactionEvent(Base):
    __tablename__ = "transaction_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=False, index=True,
    )
    from_status: Mapped[TransactionStatus | None] = mapped_column(
        SAEnum(
            TransactionStatus,
            name="transactionstatus",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=True,
    )
    to_status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(
            TransactionStatus,
            name="transactionstatus",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    actor_id: Mapped[str | None] = mapped_column(String(64))
    note: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    transaction = relationship("Transaction", back_populates="events")

    def __repr__(self) -> str:
        before = self.from_status.value if self.from_status else "-"
        after = self.to_status.value if self.to_status else "N/A"
        return f"<TransactionEvent {before}->{after}>"


@event.listens_for(TransactionEvent, "init")
def _set_event_defaults(target, args, kwargs):
    if "id" not in kwargs:
        target.id = uuid.uuid4()
    if "created_at" not in kwargs:
        target.created_at = datetime.now(timezone.utc)
