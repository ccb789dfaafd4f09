"""Tests for the rate catalog — upserts, toggles, lookups, validation."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from hawala.core.clock import utc_now
from hawala.exceptions import RateNotFound, ValidationError
from hawala.services.rate_catalog import RateCatalog, is_live, normalize_pair, validate_price


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


class TestValidation:
    def test_normalize_pair_uppercases(self):
        assert normalize_pair(" usd", "afn ") == ("USD", "AFN")

    def test_same_currency_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize_pair("USD", "usd")
        assert "to_currency" in exc_info.value.errors

    @pytest.mark.parametrize("code", ["US", "USDT", "U$D", "", None])
    def test_malformed_currency_rejected(self, code):
        with pytest.raises(ValidationError):
            normalize_pair(code, "AFN")

    @pytest.mark.parametrize("value", [0, "-1", Decimal("-0.5"), "abc", "NaN", "Infinity"])
    def test_bad_prices_rejected(self, value):
        with pytest.raises(ValidationError):
            validate_price("buy_rate", value)

    def test_too_many_decimals_rejected(self):
        with pytest.raises(ValidationError):
            validate_price("sell_rate", "70.1234567")

    def test_six_decimals_accepted(self):
        assert validate_price("sell_rate", "0.014190") == Decimal("0.014190")


# ---------------------------------------------------------------------------
# Upsert / find
# ---------------------------------------------------------------------------


class TestUpsert:
    @pytest.mark.asyncio
    async def test_insert_then_find(self, db, agent):
        catalog = RateCatalog(db)
        created = await catalog.upsert(agent.id, "usd", "afn", Decimal("70.5"), Decimal("70.8"))
        await db.commit()

        found = await catalog.find(agent.id, "USD", "AFN")
        assert found.id == created.id
        assert found.buy_rate == Decimal("70.5")
        assert found.sell_rate == Decimal("70.8")
        assert found.is_active is True
        assert found.spread == Decimal("0.3")

    @pytest.mark.asyncio
    async def test_upsert_replaces_in_place(self, db, agent):
        catalog = RateCatalog(db)
        first = await catalog.upsert(agent.id, "USD", "AFN", Decimal("70.5"), Decimal("70.8"))
        second = await catalog.upsert(agent.id, "USD", "AFN", Decimal("71"), Decimal("71.4"))
        await db.commit()

        assert second.id == first.id
        rates = await catalog.list_for_agent(agent.id)
        assert len(rates) == 1
        assert rates[0].sell_rate == Decimal("71.4")

    @pytest.mark.asyncio
    async def test_upsert_reactivates(self, db, agent):
        catalog = RateCatalog(db)
        await catalog.upsert(agent.id, "USD", "AFN", Decimal("70.5"), Decimal("70.8"))
        await catalog.set_active(agent.id, "USD", "AFN", False)
        rate = await catalog.upsert(agent.id, "USD", "AFN", Decimal("70.6"), Decimal("70.9"))
        assert rate.is_active is True

    @pytest.mark.asyncio
    async def test_non_positive_rate_rejected(self, db, agent):
        with pytest.raises(ValidationError) as exc_info:
            await RateCatalog(db).upsert(agent.id, "USD", "AFN", Decimal("0"), Decimal("70.8"))
        assert "buy_rate" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_pairs_are_directional(self, db, agent):
        catalog = RateCatalog(db)
        await catalog.upsert(agent.id, "USD", "AFN", Decimal("70.5"), Decimal("70.8"))
        with pytest.raises(RateNotFound):
            await catalog.find(agent.id, "AFN", "USD")

    @pytest.mark.asyncio
    async def test_agents_are_isolated(self, db, agent, make_agent):
        other = await make_agent(business_name="Herat Sarafi")
        catalog = RateCatalog(db)
        await catalog.upsert(agent.id, "USD", "AFN", Decimal("70.5"), Decimal("70.8"))
        with pytest.raises(RateNotFound):
            await catalog.find(other.id, "USD", "AFN")


# ---------------------------------------------------------------------------
# Toggle / update
# ---------------------------------------------------------------------------


class TestSetActive:
    @pytest.mark.asyncio
    async def test_deactivate_keeps_row(self, db, agent, usd_afn_rate):
        catalog = RateCatalog(db)
        rate = await catalog.set_active(agent.id, "USD", "AFN", False)
        assert rate.id == usd_afn_rate.id
        assert rate.is_active is False
        assert (await catalog.find(agent.id, "USD", "AFN")).is_active is False

    @pytest.mark.asyncio
    async def test_missing_pair(self, db, agent):
        with pytest.raises(RateNotFound):
            await RateCatalog(db).set_active(agent.id, "EUR", "AFN", False)


class TestUpdate:
    @pytest.mark.asyncio
    async def test_partial_update(self, db, usd_afn_rate):
        rate = await RateCatalog(db).update(usd_afn_rate.id, {"sell_rate": "71.25"})
        assert rate.sell_rate == Decimal("71.25")
        assert rate.buy_rate == Decimal("70.5")

    @pytest.mark.asyncio
    async def test_key_fields_immutable(self, db, usd_afn_rate):
        with pytest.raises(ValidationError) as exc_info:
            await RateCatalog(db).update(usd_afn_rate.id, {"to_currency": "EUR"})
        assert "to_currency" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_non_boolean_active_rejected(self, db, usd_afn_rate):
        with pytest.raises(ValidationError):
            await RateCatalog(db).update(usd_afn_rate.id, {"is_active": "yes"})

    @pytest.mark.asyncio
    async def test_unknown_rate(self, db):
        with pytest.raises(RateNotFound):
            await RateCatalog(db).update(uuid.uuid4(), {"buy_rate": "1"})

    @pytest.mark.asyncio
    async def test_empty_update_returns_current(self, db, usd_afn_rate):
        rate = await RateCatalog(db).update(usd_afn_rate.id, {})
        assert rate.id == usd_afn_rate.id


# ---------------------------------------------------------------------------
# Listing / liveness
# ---------------------------------------------------------------------------


class TestListForAgent:
    @pytest.mark.asyncio
    async def test_live_only_filters_inactive_and_expired(self, db, agent, make_rate):
        now = utc_now()
        await make_rate(agent.id, "USD", "AFN")
        await make_rate(agent.id, "EUR", "AFN", "76.2", "76.65", valid_until=now - timedelta(minutes=1))
        await make_rate(agent.id, "AFN", "USD", "0.0141", "0.01419")
        await RateCatalog(db).set_active(agent.id, "AFN", "USD", False)

        catalog = RateCatalog(db)
        assert len(await catalog.list_for_agent(agent.id)) == 3
        live = await catalog.list_for_agent(agent.id, live_only=True, now=now)
        assert [(r.from_currency, r.to_currency) for r in live] == [("USD", "AFN")]

    @pytest.mark.asyncio
    async def test_is_live_boundary(self, agent, make_rate):
        now = utc_now()
        rate = await make_rate(agent.id, valid_until=now)
        # valid_until at exactly now is already expired
        assert is_live(rate, now) is False
        assert is_live(rate, now - timedelta(seconds=1)) is True
