"""
Rate model — an agent's published buy/sell rate for one currency pair.

One row per ``(agent_id, from_currency, to_currency)``; the unique key is
what makes "at most one active rate per pair" hold at every instant.
Rows are current-value records: an update replaces the values in place and
never reaches already-created transactions, which carry their own copy.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hawala.database import Base


class RateSide(str, enum.Enum):
    """Which of the agent's two published prices a quote uses."""
    BUY = "BUY"
    SELL = "SELL"


class Rate(Base):
    __tablename__ = "rates"
    __table_args__ = (
        UniqueConstraint(
            "agent_id", "from_currency", "to_currency", name="uq_rates_agent_pair",
        ),
        CheckConstraint("buy_rate > 0", name="ck_rates_buy_positive"),
        CheckConstraint("sell_rate > 0", name="ck_rates_sell_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("agents.id"), nullable=False, index=True,
    )
    from_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    to_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    buy_rate: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=6), nullable=False)
    sell_rate: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=6), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    agent = relationship("Agent", back_populates="rates")

    def price_for(self, side: RateSide) -> Decimal:
        """Return the buy or sell price."""
        return self.buy_rate if side == RateSide.BUY else self.sell_rate

    @property
    def spread(self) -> Decimal:
        """Difference between the sell and buy price."""
        return self.sell_rate - self.buy_rate

    def __repr__(self) -> str:
        return (
            f"<Rate {self.from_currency}/{self.to_currency} "
            f"buy={self.buy_rate} sell={self.sell_rate} active={self.is_active}>"
        )


@event.listens_for(Rate, "init")
def _set_rate_defaults(target, args, kwargs):
    if "id" not in kwargs:
        target.id = uuid.uuid4()
    if "is_active" not in kwargs:
        target.is_active = True
    if "created_at" not in kwargs:
        target.created_at = datetime.now(timezone.utc)
    if "updated_at" not in kwargs:
        target.updated_at = datetime.now(timezone.utc)
