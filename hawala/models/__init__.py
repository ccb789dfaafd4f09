"""SQLAlchemy ORM models for the hawala settlement core."""

from hawala.models.agent import Agent, AgentStatus
from hawala.models.rate import Rate, RateSide
from hawala.models.transaction import Transaction, TransactionStatus
from hawala.models.transaction_event import TransactionEvent

__all__ = [
    "Agent", "AgentStatus",
    "Rate", "RateSide",
    "Transaction", "TransactionStatus",
    "TransactionEvent",
]
