"""
Transaction model — one agent's commitment to convert and pay out funds.

- HW-prefixed public reference code, unique and indexed
- Conversion snapshot (rate, amounts, fee) frozen at creation
- Four-state lifecycle with a fixed transition graph
- Fernet-encrypted sender/receiver phone numbers
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    Uuid,
    Enum as SAEnum,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hawala.core.encryption import decrypt_value, encrypt_value
from hawala.database import Base
from hawala.models.rate import RateSide

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    WITHDRAWN = "WITHDRAWN"


# ---------------------------------------------------------------------------
# Status transition map
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[TransactionStatus, set[TransactionStatus]] = {
    TransactionStatus.PENDING: {
        TransactionStatus.COMPLETED,
        TransactionStatus.CANCELLED,
    },
    TransactionStatus.COMPLETED: {
        TransactionStatus.WITHDRAWN,
    },
    TransactionStatus.CANCELLED: set(),
    TransactionStatus.WITHDRAWN: set(),
}

# COMPLETED -> WITHDRAWN can be switched off; COMPLETED is then terminal.
OPTIONAL_TRANSITIONS: set[tuple[TransactionStatus, TransactionStatus]] = {
    (TransactionStatus.COMPLETED, TransactionStatus.WITHDRAWN),
}


def allowed_targets(
    from_status: TransactionStatus, *, withdrawn_enabled: bool = True,
) -> set[TransactionStatus]:
    """Statuses reachable in one step from *from_status*."""
    targets = set(VALID_TRANSITIONS.get(from_status, set()))
    if not withdrawn_enabled:
        targets = {t for t in targets if (from_status, t) not in OPTIONAL_TRANSITIONS}
    return targets


def is_terminal(status: TransactionStatus, *, withdrawn_enabled: bool = True) -> bool:
    return not allowed_targets(status, withdrawn_enabled=withdrawn_enabled)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


_enum_values = lambda e: [m.value for m in e]  # noqa: E731


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("from_amount > 0", name="ck_transactions_from_amount_positive"),
        CheckConstraint("fee >= 0", name="ck_transactions_fee_non_negative"),
        CheckConstraint("rate > 0", name="ck_transactions_rate_positive"),
    )

    # Primary key
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Public reference
    reference_code: Mapped[str] = mapped_column(
        String(24), unique=True, index=True, nullable=False,
    )

    # Owner
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("agents.id"), nullable=False, index=True,
    )
    created_by: Mapped[str | None] = mapped_column(String(64))

    # Status
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(TransactionStatus, name="transactionstatus", values_callable=_enum_values),
        default=TransactionStatus.PENDING,
        nullable=False,
    )

    # Conversion snapshot
    from_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    to_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    from_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2), nullable=False,
    )
    to_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=30, scale=8), nullable=False,
    )
    rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=6), nullable=False,
    )
    rate_side: Mapped[RateSide] = mapped_column(
        SAEnum(RateSide, name="rateside", values_callable=_enum_values),
        nullable=False,
    )

    # Fees
    fee: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2), nullable=False, default=Decimal("0"),
    )
    fee_percentage: Mapped[Decimal] = mapped_column(
        Numeric(precision=7, scale=6), nullable=False, default=Decimal("0"),
    )
    minimum_fee: Mapped[Decimal] = mapped_column(
        Numeric(precision=18, scale=2), nullable=False, default=Decimal("0"),
    )

    # Sender / receiver
    sender_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sender_phone: Mapped[str] = mapped_column(String(256), nullable=False)  # encrypted
    sender_city: Mapped[str | None] = mapped_column(String(100))
    sender_country: Mapped[str | None] = mapped_column(String(100))
    receiver_name: Mapped[str] = mapped_column(String(200), nullable=False)
    receiver_phone: Mapped[str] = mapped_column(String(256), nullable=False)  # encrypted
    receiver_city: Mapped[str] = mapped_column(String(100), nullable=False)
    receiver_country: Mapped[str | None] = mapped_column(String(100))

    notes: Mapped[str | None] = mapped_column(Text)

    # Lifecycle timestamps
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    agent = relationship("Agent", back_populates="transactions")
    events = relationship(
        "TransactionEvent",
        back_populates="transaction",
        order_by="[TransactionEvent.created_at, TransactionEvent.id]",
    )

    # ------------------------------------------------------------------
    # Derived amounts
    # ------------------------------------------------------------------

    @property
    def net_amount(self) -> Decimal:
        """Amount paid out to the receiver after the fee."""
        return self.to_amount - self.fee

    # ------------------------------------------------------------------
    # Encrypted phone helpers
    # ------------------------------------------------------------------

    def set_sender_phone(self, plaintext: str) -> None:
        self.sender_phone = encrypt_value(plaintext)

    def get_sender_phone(self) -> str | None:
        if self.sender_phone is None:
            return None
        return decrypt_value(self.sender_phone)

    def set_receiver_phone(self, plaintext: str) -> None:
        self.receiver_phone = encrypt_value(plaintext)

    def get_receiver_phone(self) -> str | None:
        if self.receiver_phone is None:
            return None
        return decrypt_value(self.receiver_phone)

    # ------------------------------------------------------------------
    # Status helpers
    # ------------------------------------------------------------------

    @staticmethod
    def is_valid_transition(
        from_status: TransactionStatus,
        to_status: TransactionStatus,
        *,
        withdrawn_enabled: bool = True,
    ) -> bool:
        """Check whether a status transition is allowed."""
        return to_status in allowed_targets(from_status, withdrawn_enabled=withdrawn_enabled)

    # ------------------------------------------------------------------
    # Repr
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.reference_code} "
            f"{self.from_amount} {self.from_currency} "
            f"status={self.status.value if self.status else 'N/A'}>"
        )


# ---------------------------------------------------------------------------
# Auto-set Python-side defaults on construction
# ---------------------------------------------------------------------------


@event.listens_for(Transaction, "init")
def _set_transaction_defaults(target, args, kwargs):
    if "id" not in kwargs:
        target.id = uuid.uuid4()
    if "status" not in kwargs:
        target.status = TransactionStatus.PENDING
    if "fee" not in kwargs:
        target.fee = Decimal("0")
    if "fee_percentage" not in kwargs:
        target.fee_percentage = Decimal("0")
    if "minimum_fee" not in kwargs:
        target.minimum_fee = Decimal("0")
    if "created_at" not in kwargs:
        target.created_at = datetime.now(timezone.utc)
    if "updated_at" not in kwargs:
        target.updated_at = datetime.now(timezone.utc)
