"""
Pydantic schemas for agent rates and quote previews.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RateCreate(BaseModel):
    """Publish or replace the agent's rate for a currency pair."""
    model_config = ConfigDict(extra="forbid")

    agent_id: UUID | None = Field(
        None, description="Required for admins; agents always publish their own rates",
    )
    from_currency: str = Field(..., pattern=r"^[A-Za-z]{3}$", examples=["USD"])
    to_currency: str = Field(..., pattern=r"^[A-Za-z]{3}$", examples=["AFN"])
    buy_rate: Decimal = Field(..., gt=0, decimal_places=6, examples=[70.5])
    sell_rate: Decimal = Field(..., gt=0, decimal_places=6, examples=[70.8])
    valid_until: datetime | None = None


class RateUpdate(BaseModel):
    """Partial update; the currency pair itself cannot change."""
    model_config = ConfigDict(extra="forbid")

    buy_rate: Decimal | None = Field(None, gt=0, decimal_places=6)
    sell_rate: Decimal | None = Field(None, gt=0, decimal_places=6)
    is_active: bool | None = None
    valid_until: datetime | None = None


class RateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    agent_id: UUID
    from_currency: str
    to_currency: str
    buy_rate: Decimal
    sell_rate: Decimal
    spread: Decimal
    is_active: bool
    valid_until: datetime | None
    created_at: datetime
    updated_at: datetime


class QuoteResponse(BaseModel):
    """Conversion preview; nothing is committed."""
    agent_id: UUID
    from_currency: str
    to_currency: str
    amount: Decimal
    side: str
    rate: Decimal
    converted_amount: Decimal
    fee: Decimal
    fee_percentage: Decimal
    minimum_fee: Decimal
    net_amount: Decimal
