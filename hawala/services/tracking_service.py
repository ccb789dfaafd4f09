"""
Public tracking — look up a transaction by reference code.

Lookups are unauthenticated and read-only. A miss is a normal outcome
(``TrackingResult.found`` is False), never an exception and never logged
as an error. Malformed codes are rejected before touching storage.

The optional Redis cache holds explicit ``{data, cached_at, ttl}`` entries
under ``tracking:{code}``. Hits are never written for misses, and the
ledger invalidates an entry whenever the transaction changes status.
Redis failures degrade to a direct database read.
"""

import json
import logging
from dataclasses import dataclass

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hawala.config import settings
from hawala.core.clock import utc_now
from hawala.models.transaction import Transaction, TransactionStatus
from hawala.schemas.tracking import AgentContact, StatusHistoryEntry, TrackingView
from hawala.services.reference_codes import ReferenceCodeGenerator

logger = logging.getLogger(__name__)

TRACKING_KEY_PREFIX = "tracking:"

PROGRESS = {
    TransactionStatus.PENDING: 25,
    TransactionStatus.COMPLETED: 100,
    TransactionStatus.CANCELLED: 0,
    TransactionStatus.WITHDRAWN: 100,
}

NEXT_STEP = {
    TransactionStatus.PENDING: "Awaiting payout confirmation by the agent",
    TransactionStatus.COMPLETED: "Funds are ready for the receiver",
    TransactionStatus.CANCELLED: "Transaction was cancelled",
    TransactionStatus.WITHDRAWN: "Funds have been collected",
}


@dataclass(frozen=True)
class TrackingResult:
    """Either a found view or a not-found outcome for *reference_code*."""
    reference_code: str
    view: TrackingView | None = None

    @property
    def found(self) -> bool:
        return self.view is not None


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class TrackingCache:
    """Short-TTL Redis cache of tracking views."""

    def __init__(self, redis: aioredis.Redis, ttl_seconds: int | None = None):
        self.redis = redis
        self.ttl = ttl_seconds or settings.TRACKING_CACHE_TTL_SECONDS

    @staticmethod
    def key(reference_code: str) -> str:
        return f"{TRACKING_KEY_PREFIX}{reference_code}"

    async def get(self, reference_code: str) -> TrackingView | None:
        try:
            raw = await self.redis.get(self.key(reference_code))
        except RedisError:
            logger.warning("Tracking cache read failed for %s", reference_code, exc_info=True)
            return None
        if raw is None:
            return None
        entry = json.loads(raw)
        return TrackingView.model_validate(entry["data"])

    async def set(self, reference_code: str, view: TrackingView) -> None:
        entry = {
            "data": view.model_dump(mode="json"),
            "cached_at": utc_now().isoformat(),
            "ttl": self.ttl,
        }
        try:
            await self.redis.setex(self.key(reference_code), self.ttl, json.dumps(entry))
        except RedisError:
            logger.warning("Tracking cache write failed for %s", reference_code, exc_info=True)

    async def invalidate(self, reference_code: str) -> None:
        try:
            await self.redis.delete(self.key(reference_code))
        except RedisError:
            logger.warning("Tracking cache invalidation failed for %s", reference_code, exc_info=True)


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def build_view(txn: Transaction) -> TrackingView:
    """Project a transaction (with agent and events loaded) to its public view."""
    agent = txn.agent
    return TrackingView(
        reference_code=txn.reference_code,
        status=txn.status.value,
        from_currency=txn.from_currency,
        to_currency=txn.to_currency,
        from_amount=txn.from_amount,
        to_amount=txn.to_amount,
        rate=txn.rate,
        fee=txn.fee,
        net_amount=txn.net_amount,
        sender_name=txn.sender_name,
        sender_country=txn.sender_country,
        receiver_name=txn.receiver_name,
        receiver_city=txn.receiver_city,
        receiver_country=txn.receiver_country,
        created_at=txn.created_at,
        completed_at=txn.completed_at,
        progress_percentage=PROGRESS[txn.status],
        next_step=NEXT_STEP[txn.status],
        can_cancel=txn.status == TransactionStatus.PENDING,
        agent=AgentContact(
            business_name=agent.business_name,
            business_phone=agent.business_phone,
            business_address=agent.business_address,
            city=agent.city,
        ),
        status_history=[
            StatusHistoryEntry(
                status=e.to_status.value,
                previous_status=e.from_status.value if e.from_status else None,
                at=e.created_at,
            )
            for e in txn.events
        ],
    )


# ---------------------------------------------------------------------------
# TrackingService
# ---------------------------------------------------------------------------


class TrackingService:
    """Unauthenticated, read-only lookup by reference code."""

    def __init__(
        self,
        db: AsyncSession,
        cache: TrackingCache | None = None,
        code_generator: ReferenceCodeGenerator | None = None,
    ):
        self.db = db
        self.cache = cache
        self.codes = code_generator or ReferenceCodeGenerator()

    async def lookup(self, code: str) -> TrackingResult:
        reference_code = self.codes.normalize(code)
        if not self.codes.is_well_formed(reference_code):
            logger.debug("Tracking lookup for malformed code %r", code)
            return TrackingResult(reference_code)

        if self.cache is not None:
            cached = await self.cache.get(reference_code)
            if cached is not None:
                return TrackingResult(reference_code, cached)

        result = await self.db.execute(
            select(Transaction)
            .options(selectinload(Transaction.agent), selectinload(Transaction.events))
            .where(Transaction.reference_code == reference_code)
        )
        txn = result.scalar_one_or_none()
        if txn is None:
            logger.debug("Tracking lookup miss for %s", reference_code)
            return TrackingResult(reference_code)

        view = build_view(txn)
        if self.cache is not None:
            await self.cache.set(reference_code, view)
        return TrackingResult(reference_code, view)
