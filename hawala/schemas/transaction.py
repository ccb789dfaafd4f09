"""
Pydantic schemas for transaction creation, transitions, listing, and history.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hawala.models.rate import RateSide
from hawala.models.transaction import Transaction, TransactionStatus
from hawala.services.fee_calculator import FeePolicy
from hawala.services.ledger import TransactionRequest


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class FeePolicyIn(BaseModel):
    """Fee override; percentage is a fraction (0.025 = 2.5%)."""
    model_config = ConfigDict(extra="forbid")

    percentage: Decimal = Field(..., ge=0, le=1, examples=[0.025])
    minimum_fee: Decimal = Field(Decimal("0"), ge=0, examples=[50])


class TransactionCreateRequest(BaseModel):
    """Schema for recording a new hawala transfer."""
    model_config = ConfigDict(extra="forbid")

    agent_id: UUID | None = Field(
        None, description="Required for admins; agents always record for themselves",
    )
    sender_name: str = Field(..., min_length=1, max_length=200, examples=["Ahmad Karimi"])
    sender_phone: str = Field(..., min_length=1, max_length=32, examples=["+93700111222"])
    sender_city: str | None = Field(None, max_length=100)
    sender_country: str | None = Field(None, max_length=100)
    receiver_name: str = Field(..., min_length=1, max_length=200, examples=["Farid Noori"])
    receiver_phone: str = Field(..., min_length=1, max_length=32, examples=["+93799333444"])
    receiver_city: str = Field(..., min_length=1, max_length=100, examples=["Herat"])
    receiver_country: str | None = Field(None, max_length=100)
    from_currency: str = Field(..., pattern=r"^[A-Za-z]{3}$", examples=["USD"])
    to_currency: str = Field(..., pattern=r"^[A-Za-z]{3}$", examples=["AFN"])
    from_amount: Decimal = Field(..., gt=0, decimal_places=2, examples=[100])
    rate_side: RateSide = Field(..., examples=["SELL"])
    fee_policy: FeePolicyIn | None = None
    notes: str | None = Field(None, max_length=1000)

    def to_request(self, agent_id: UUID) -> TransactionRequest:
        """Convert to the core's typed request value."""
        policy = (
            FeePolicy(self.fee_policy.percentage, self.fee_policy.minimum_fee)
            if self.fee_policy is not None
            else FeePolicy.default()
        )
        return TransactionRequest(
            agent_id=agent_id,
            sender_name=self.sender_name,
            sender_phone=self.sender_phone,
            sender_city=self.sender_city,
            sender_country=self.sender_country,
            receiver_name=self.receiver_name,
            receiver_phone=self.receiver_phone,
            receiver_city=self.receiver_city,
            receiver_country=self.receiver_country,
            from_currency=self.from_currency,
            to_currency=self.to_currency,
            from_amount=self.from_amount,
            rate_side=self.rate_side,
            fee_policy=policy,
            notes=self.notes,
        )


# ---------------------------------------------------------------------------
# Transition
# ---------------------------------------------------------------------------


class TransitionRequest(BaseModel):
    """Compare-and-swap status change; ``from_status`` must match the stored status."""
    model_config = ConfigDict(extra="forbid")

    from_status: TransactionStatus
    to_status: TransactionStatus
    note: str | None = Field(None, max_length=500)


class TransitionResponse(BaseModel):
    reference_code: str
    previous_status: TransactionStatus
    status: TransactionStatus
    completed_at: datetime | None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    """Full transaction view for the owning agent (phones decrypted)."""
    id: UUID
    reference_code: str
    agent_id: UUID
    status: TransactionStatus
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal
    rate: Decimal
    rate_side: RateSide
    fee: Decimal
    fee_percentage: Decimal
    minimum_fee: Decimal
    net_amount: Decimal
    sender_name: str
    sender_phone: str | None
    sender_city: str | None
    sender_country: str | None
    receiver_name: str
    receiver_phone: str | None
    receiver_city: str
    receiver_country: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None

    @classmethod
    def from_model(cls, txn: Transaction) -> "TransactionResponse":
        return cls(
            id=txn.id,
            reference_code=txn.reference_code,
            agent_id=txn.agent_id,
            status=txn.status,
            from_currency=txn.from_currency,
            to_currency=txn.to_currency,
            from_amount=txn.from_amount,
            to_amount=txn.to_amount,
            rate=txn.rate,
            rate_side=txn.rate_side,
            fee=txn.fee,
            fee_percentage=txn.fee_percentage,
            minimum_fee=txn.minimum_fee,
            net_amount=txn.net_amount,
            sender_name=txn.sender_name,
            sender_phone=txn.get_sender_phone(),
            sender_city=txn.sender_city,
            sender_country=txn.sender_country,
            receiver_name=txn.receiver_name,
            receiver_phone=txn.get_receiver_phone(),
            receiver_city=txn.receiver_city,
            receiver_country=txn.receiver_country,
            notes=txn.notes,
            created_at=txn.created_at,
            updated_at=txn.updated_at,
            completed_at=txn.completed_at,
        )


class TransactionListResponse(BaseModel):
    """Paginated transaction list."""
    items: list[TransactionResponse]
    total: int
    page: int
    per_page: int


class TransactionEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_status: TransactionStatus | None
    to_status: TransactionStatus
    actor_id: str | None
    note: str | None
    created_at: datetime


class HistoryResponse(BaseModel):
    reference_code: str
    events: list[TransactionEventResponse]


class StatsResponse(BaseModel):
    """Transaction counts per status."""
    pending: int
    completed: int
    cancelled: int
    withdrawn: int
    total: int
