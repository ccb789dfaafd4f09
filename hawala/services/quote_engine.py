"""
Quote engine — resolves an agent's live rate and prices a conversion.

The quote is the exact snapshot the ledger freezes onto a transaction:
``converted_amount = amount * rate`` is kept unrounded so the stored
``to_amount`` always equals ``from_amount * rate``.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable

from hawala.core.clock import utc_now
from hawala.exceptions import RateNotFound, ValidationError
from hawala.models.rate import RateSide
from hawala.services.fee_calculator import FeePolicy, compute_fee
from hawala.services.rate_catalog import RateCatalog, is_live

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quote:
    agent_id: uuid.UUID
    rate_id: uuid.UUID
    from_currency: str
    to_currency: str
    amount: Decimal
    side: RateSide
    rate: Decimal
    converted_amount: Decimal
    fee: Decimal
    fee_policy: FeePolicy

    @property
    def net_amount(self) -> Decimal:
        return self.converted_amount - self.fee


class QuoteEngine:
    """Prices conversions against the rate catalog."""

    def __init__(self, catalog: RateCatalog, clock: Callable[[], datetime] = utc_now):
        self.catalog = catalog
        self._clock = clock

    async def quote(
        self,
        agent_id: uuid.UUID,
        from_currency: str,
        to_currency: str,
        amount: Decimal,
        fee_policy: FeePolicy,
        side: RateSide,
    ) -> Quote:
        """
        Build a quote for converting *amount* of ``from_currency``.

        *side* selects the agent's buy or sell price and must be supplied by
        the caller. Raises RateNotFound when the pair has no rate, the rate is
        inactive, or ``valid_until`` has passed; ValidationError when the
        amount is not positive or the fee policy is negative.
        """
        if amount is None or amount <= 0:
            raise ValidationError.for_field("amount", "must be greater than zero")
        if not isinstance(side, RateSide):
            raise ValidationError.for_field("rate_side", "must be BUY or SELL")

        rate_row = await self.catalog.find(agent_id, from_currency, to_currency)
        if not is_live(rate_row, self._clock()):
            logger.info(
                "Rate %s/%s for agent %s is inactive or expired",
                rate_row.from_currency, rate_row.to_currency, agent_id,
            )
            raise RateNotFound(
                f"No active rate for {rate_row.from_currency}/{rate_row.to_currency}"
            )

        price = rate_row.price_for(side)
        converted = amount * price
        fee = compute_fee(converted, fee_policy)

        return Quote(
            agent_id=agent_id,
            rate_id=rate_row.id,
            from_currency=rate_row.from_currency,
            to_currency=rate_row.to_currency,
            amount=amount,
            side=side,
            rate=price,
            converted_amount=converted,
            fee=fee,
            fee_policy=fee_policy,
        )
