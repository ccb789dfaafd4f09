"""
Rate catalog — agents' published buy/sell rates per currency pair.

Rates are current-value records keyed by ``(agent_id, from_currency,
to_currency)``. Writes are single atomic statements (INSERT … ON CONFLICT
DO UPDATE for upserts, a keyed UPDATE for toggles), so concurrent writers
to the same pair resolve as last-writer-wins without explicit locking.
Nothing here touches transactions: they keep the rate they were created with.
"""

import logging
import re
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from hawala.core.clock import as_utc, utc_now
from hawala.exceptions import RateNotFound, ValidationError
from hawala.models.rate import Rate

logger = logging.getLogger(__name__)

RATE_QUANTUM = Decimal("0.000001")
UPDATABLE_FIELDS = {"buy_rate", "sell_rate", "is_active", "valid_until"}

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def normalize_currency(field: str, code: str) -> str:
    value = (code or "").strip().upper()
    if not _CURRENCY_RE.match(value):
        raise ValidationError.for_field(field, "must be a three-letter currency code")
    return value


def normalize_pair(from_currency: str, to_currency: str) -> tuple[str, str]:
    source = normalize_currency("from_currency", from_currency)
    target = normalize_currency("to_currency", to_currency)
    if source == target:
        raise ValidationError.for_field("to_currency", "must differ from from_currency")
    return source, target


def validate_price(field: str, value) -> Decimal:
    """Positive, finite, at most six decimal places."""
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError.for_field(field, "must be a number")
    if not price.is_finite() or price <= 0:
        raise ValidationError.for_field(field, "must be greater than zero")
    if price != price.quantize(RATE_QUANTUM):
        raise ValidationError.for_field(field, "must have at most 6 decimal places")
    return price


def is_live(rate: Rate, now: datetime) -> bool:
    """Active and not past ``valid_until``."""
    if not rate.is_active:
        return False
    expires = as_utc(rate.valid_until)
    return expires is None or expires > now


# ---------------------------------------------------------------------------
# RateCatalog
# ---------------------------------------------------------------------------


class RateCatalog:
    """Reads and writes rate rows within the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(Rate)
        if dialect == "sqlite":
            return sqlite.insert(Rate)
        raise RuntimeError(f"Rate upserts are not supported on {dialect}")

    async def upsert(
        self,
        agent_id: uuid.UUID,
        from_currency: str,
        to_currency: str,
        buy_rate,
        sell_rate,
        valid_until: datetime | None = None,
    ) -> Rate:
        """
        Write or replace the rate for the agent's pair and reactivate it.

        Raises ValidationError on non-positive prices or malformed currencies.
        """
        source, target = normalize_pair(from_currency, to_currency)
        buy = validate_price("buy_rate", buy_rate)
        sell = validate_price("sell_rate", sell_rate)
        now = utc_now()

        stmt = self._insert().values(
            id=uuid.uuid4(),
            agent_id=agent_id,
            from_currency=source,
            to_currency=target,
            buy_rate=buy,
            sell_rate=sell,
            is_active=True,
            valid_until=as_utc(valid_until),
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["agent_id", "from_currency", "to_currency"],
            set_={
                "buy_rate": stmt.excluded.buy_rate,
                "sell_rate": stmt.excluded.sell_rate,
                "is_active": True,
                "valid_until": stmt.excluded.valid_until,
                "updated_at": now,
            },
        ).returning(Rate.id)

        rate_id = (await self.db.execute(stmt)).scalar_one()
        logger.info(
            "Rate upserted for agent %s: %s/%s buy=%s sell=%s",
            agent_id, source, target, buy, sell,
        )
        return await self.get(rate_id)

    async def set_active(
        self, agent_id: uuid.UUID, from_currency: str, to_currency: str, active: bool,
    ) -> Rate:
        """Toggle whether the pair is quotable. History is kept either way."""
        source, target = normalize_pair(from_currency, to_currency)
        result = await self.db.execute(
            update(Rate)
            .where(
                Rate.agent_id == agent_id,
                Rate.from_currency == source,
                Rate.to_currency == target,
            )
            .values(is_active=active, updated_at=utc_now())
            .returning(Rate.id)
        )
        rate_id = result.scalar_one_or_none()
        if rate_id is None:
            raise RateNotFound(f"No rate for {source}/{target}")
        return await self.get(rate_id)

    async def find(self, agent_id: uuid.UUID, from_currency: str, to_currency: str) -> Rate:
        """Return the stored row for the pair regardless of active/expiry state."""
        source, target = normalize_pair(from_currency, to_currency)
        result = await self.db.execute(
            select(Rate)
            .where(
                Rate.agent_id == agent_id,
                Rate.from_currency == source,
                Rate.to_currency == target,
            )
            .execution_options(populate_existing=True)
        )
        rate = result.scalar_one_or_none()
        if rate is None:
            raise RateNotFound(f"No rate for {source}/{target}")
        return rate

    async def get(self, rate_id: uuid.UUID) -> Rate:
        result = await self.db.execute(
            select(Rate)
            .where(Rate.id == rate_id)
            .execution_options(populate_existing=True)
        )
        rate = result.scalar_one_or_none()
        if rate is None:
            raise RateNotFound(f"Rate {rate_id} not found")
        return rate

    async def update(self, rate_id: uuid.UUID, changes: dict) -> Rate:
        """
        Apply a partial update to buy/sell/is_active/valid_until.

        The key fields are immutable: moving a rate to another pair would
        silently break the one-row-per-pair invariant.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}",
                {name: "not updatable" for name in sorted(unknown)},
            )

        values: dict = {}
        if "buy_rate" in changes:
            values["buy_rate"] = validate_price("buy_rate", changes["buy_rate"])
        if "sell_rate" in changes:
            values["sell_rate"] = validate_price("sell_rate", changes["sell_rate"])
        if "is_active" in changes:
            if not isinstance(changes["is_active"], bool):
                raise ValidationError.for_field("is_active", "must be a boolean")
            values["is_active"] = changes["is_active"]
        if "valid_until" in changes:
            values["valid_until"] = as_utc(changes["valid_until"])

        if not values:
            return await self.get(rate_id)

        values["updated_at"] = utc_now()
        result = await self.db.execute(
            update(Rate).where(Rate.id == rate_id).values(**values).returning(Rate.id)
        )
        if result.scalar_one_or_none() is None:
            raise RateNotFound(f"Rate {rate_id} not found")

        logger.info("Rate %s updated: %s", rate_id, sorted(values))
        return await self.get(rate_id)

    async def list_for_agent(
        self, agent_id: uuid.UUID, *, live_only: bool = False, now: datetime | None = None,
    ) -> list[Rate]:
        """All of the agent's rates, newest first; ``live_only`` drops inactive/expired."""
        result = await self.db.execute(
            select(Rate)
            .where(Rate.agent_id == agent_id)
            .order_by(Rate.updated_at.desc())
        )
        rates = list(result.scalars().all())
        if live_only:
            moment = now or utc_now()
            rates = [r for r in rates if is_live(r, moment)]
        return rates
