"""Tests for the quote engine — rate resolution, conversion, expiry."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from hawala.exceptions import RateNotFound, ValidationError
from hawala.models.rate import RateSide
from hawala.services.fee_calculator import FeePolicy
from hawala.services.quote_engine import QuoteEngine
from hawala.services.rate_catalog import RateCatalog

POLICY = FeePolicy(Decimal("0.025"), Decimal("50"))


@pytest.fixture
def engine_at(db, fixed_now):
    def _make(now=fixed_now) -> QuoteEngine:
        return QuoteEngine(RateCatalog(db), clock=lambda: now)
    return _make


class TestQuote:
    @pytest.mark.asyncio
    async def test_usd_to_afn_sell(self, engine_at, agent, usd_afn_rate):
        """100 USD at sell 70.8 -> 7080 AFN, fee 177, net 6903."""
        quote = await engine_at().quote(agent.id, "USD", "AFN", Decimal("100"), POLICY, RateSide.SELL)

        assert quote.rate == Decimal("70.8")
        assert quote.side is RateSide.SELL
        assert quote.converted_amount == Decimal("7080")
        assert quote.fee == Decimal("177.00")
        assert quote.net_amount == Decimal("6903.00")
        assert quote.rate_id == usd_afn_rate.id

    @pytest.mark.asyncio
    async def test_buy_side_uses_buy_rate(self, engine_at, agent, usd_afn_rate):
        quote = await engine_at().quote(agent.id, "USD", "AFN", Decimal("100"), POLICY, RateSide.BUY)
        assert quote.rate == Decimal("70.5")
        assert quote.converted_amount == Decimal("7050")

    @pytest.mark.asyncio
    async def test_converted_amount_is_unrounded(self, engine_at, agent, make_rate):
        await make_rate(agent.id, "AFN", "USD", "0.014100", "0.014190")
        quote = await engine_at().quote(
            agent.id, "AFN", "USD", Decimal("1234.56"), FeePolicy(Decimal("0")), RateSide.SELL,
        )
        assert quote.converted_amount == Decimal("1234.56") * Decimal("0.014190")

    @pytest.mark.asyncio
    async def test_currencies_normalized(self, engine_at, agent, usd_afn_rate):
        quote = await engine_at().quote(agent.id, " usd", "afn", Decimal("1"), POLICY, RateSide.SELL)
        assert (quote.from_currency, quote.to_currency) == ("USD", "AFN")


class TestQuoteFailures:
    @pytest.mark.asyncio
    async def test_expired_rate(self, engine_at, agent, make_rate, fixed_now):
        """A rate whose valid_until has passed is not quotable."""
        await make_rate(agent.id, valid_until=fixed_now - timedelta(seconds=1))
        with pytest.raises(RateNotFound):
            await engine_at().quote(agent.id, "USD", "AFN", Decimal("100"), POLICY, RateSide.SELL)

    @pytest.mark.asyncio
    async def test_expiry_is_read_time(self, engine_at, agent, make_rate, fixed_now):
        await make_rate(agent.id, valid_until=fixed_now + timedelta(hours=1))
        assert await engine_at().quote(
            agent.id, "USD", "AFN", Decimal("100"), POLICY, RateSide.SELL,
        )
        with pytest.raises(RateNotFound):
            await engine_at(fixed_now + timedelta(hours=1)).quote(
                agent.id, "USD", "AFN", Decimal("100"), POLICY, RateSide.SELL,
            )

    @pytest.mark.asyncio
    async def test_inactive_rate(self, db, engine_at, agent, usd_afn_rate):
        await RateCatalog(db).set_active(agent.id, "USD", "AFN", False)
        with pytest.raises(RateNotFound):
            await engine_at().quote(agent.id, "USD", "AFN", Decimal("100"), POLICY, RateSide.SELL)

    @pytest.mark.asyncio
    async def test_missing_pair(self, engine_at, agent):
        with pytest.raises(RateNotFound):
            await engine_at().quote(agent.id, "EUR", "AFN", Decimal("100"), POLICY, RateSide.SELL)

    @pytest.mark.asyncio
    async def test_unknown_agent(self, engine_at, usd_afn_rate):
        with pytest.raises(RateNotFound):
            await engine_at().quote(uuid.uuid4(), "USD", "AFN", Decimal("100"), POLICY, RateSide.SELL)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    async def test_non_positive_amount(self, engine_at, agent, usd_afn_rate, amount):
        with pytest.raises(ValidationError) as exc_info:
            await engine_at().quote(agent.id, "USD", "AFN", amount, POLICY, RateSide.SELL)
        assert "amount" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_side_is_required(self, engine_at, agent, usd_afn_rate):
        with pytest.raises(ValidationError) as exc_info:
            await engine_at().quote(agent.id, "USD", "AFN", Decimal("1"), POLICY, None)
        assert "rate_side" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_negative_policy(self, engine_at, agent, usd_afn_rate):
        with pytest.raises(ValidationError):
            await engine_at().quote(
                agent.id, "USD", "AFN", Decimal("1"),
                FeePolicy(Decimal("-0.01")), RateSide.SELL,
            )
