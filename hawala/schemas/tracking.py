"""
Pydantic schemas for the public tracking view.

Only fields safe to show to anyone holding the reference code: no internal
ids, no phone numbers, no agent notes.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class AgentContact(BaseModel):
    """The paying agent's public business contact."""
    business_name: str
    business_phone: str | None
    business_address: str | None
    city: str | None


class StatusHistoryEntry(BaseModel):
    status: str
    previous_status: str | None
    at: datetime


class TrackingView(BaseModel):
    """Sanitized projection of a transaction for public lookup."""
    reference_code: str
    status: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    to_amount: Decimal
    rate: Decimal
    fee: Decimal
    net_amount: Decimal
    sender_name: str
    sender_country: str | None
    receiver_name: str
    receiver_city: str
    receiver_country: str | None
    created_at: datetime
    completed_at: datetime | None
    progress_percentage: int
    next_step: str
    can_cancel: bool
    agent: AgentContact
    status_history: list[StatusHistoryEntry]
