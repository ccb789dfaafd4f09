"""
Rate endpoints — agents publish buy/sell rates; anyone can preview a quote.

Writes go through RateCatalog as single atomic statements. Publishing
requires the caller to act for an approved, active agent.
"""

import logging
import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hawala.api.deps import get_current_principal
from hawala.core.authz import Principal, ensure_agent_can_transact, ensure_can_act_for
from hawala.database import get_db
from hawala.exceptions import NotFound, ValidationError
from hawala.models.agent import Agent
from hawala.models.rate import RateSide
from hawala.schemas.rate import QuoteResponse, RateCreate, RateResponse, RateUpdate
from hawala.services.fee_calculator import FeePolicy
from hawala.services.quote_engine import QuoteEngine
from hawala.services.rate_catalog import RateCatalog

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _target_agent_id(principal: Principal, agent_id: uuid.UUID | None) -> uuid.UUID:
    """Agents act for themselves; admins must name the agent."""
    if agent_id is not None:
        return agent_id
    if principal.agent_id is not None:
        return principal.agent_id
    raise ValidationError.for_field("agent_id", "is required")


async def _load_publishing_agent(
    db: AsyncSession, principal: Principal, agent_id: uuid.UUID,
) -> Agent:
    agent = await db.get(Agent, agent_id)
    if agent is None:
        raise NotFound(f"Agent {agent_id} not found")
    ensure_can_act_for(principal, agent.id)
    ensure_agent_can_transact(agent)
    return agent


# ---------------------------------------------------------------------------
# GET /quote — public conversion preview
# ---------------------------------------------------------------------------


@router.get("/quote", response_model=QuoteResponse)
async def preview_quote(
    agent_id: uuid.UUID = Query(..., description="Agent whose rate to use"),
    from_currency: str = Query(..., examples=["USD"]),
    to_currency: str = Query(..., examples=["AFN"]),
    amount: Decimal = Query(..., gt=0, examples=[100]),
    side: RateSide = Query(..., description="BUY or SELL price"),
    db: AsyncSession = Depends(get_db),
):
    """
    Price a conversion against the agent's live rate with the default fee
    policy. Nothing is stored; the rate may change before a transaction is
    recorded.
    """
    engine = QuoteEngine(RateCatalog(db))
    quote = await engine.quote(
        agent_id, from_currency, to_currency, amount, FeePolicy.default(), side,
    )
    return QuoteResponse(
        agent_id=quote.agent_id,
        from_currency=quote.from_currency,
        to_currency=quote.to_currency,
        amount=quote.amount,
        side=quote.side.value,
        rate=quote.rate,
        converted_amount=quote.converted_amount,
        fee=quote.fee,
        fee_percentage=quote.fee_policy.percentage,
        minimum_fee=quote.fee_policy.minimum_fee,
        net_amount=quote.net_amount,
    )


# ---------------------------------------------------------------------------
# GET /agents/{agent_id} — public rate board
# ---------------------------------------------------------------------------


@router.get("/agents/{agent_id}", response_model=list[RateResponse])
async def list_agent_rates(
    agent_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Live rates of an approved agent."""
    agent = await db.get(Agent, agent_id)
    if agent is None or not agent.can_transact:
        raise NotFound(f"Agent {agent_id} not found")
    rates = await RateCatalog(db).list_for_agent(agent.id, live_only=True)
    return [RateResponse.model_validate(r) for r in rates]


# ---------------------------------------------------------------------------
# POST / — publish or replace a rate
# ---------------------------------------------------------------------------


@router.post("/", response_model=RateResponse, status_code=status.HTTP_201_CREATED)
async def create_rate(
    payload: RateCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    agent_id = _target_agent_id(principal, payload.agent_id)
    agent = await _load_publishing_agent(db, principal, agent_id)

    rate = await RateCatalog(db).upsert(
        agent.id,
        payload.from_currency,
        payload.to_currency,
        payload.buy_rate,
        payload.sell_rate,
        valid_until=payload.valid_until,
    )
    return RateResponse.model_validate(rate)


# ---------------------------------------------------------------------------
# PATCH /{rate_id} — partial update
# ---------------------------------------------------------------------------


@router.patch("/{rate_id}", response_model=RateResponse)
async def update_rate(
    rate_id: uuid.UUID,
    payload: RateUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Change buy/sell prices, toggle ``is_active`` or move ``valid_until``."""
    catalog = RateCatalog(db)
    rate = await catalog.get(rate_id)
    await _load_publishing_agent(db, principal, rate.agent_id)

    changes = payload.model_dump(exclude_unset=True)
    if "is_active" in changes and changes["is_active"] is None:
        raise ValidationError.for_field("is_active", "must be a boolean")
    rate = await catalog.update(rate_id, changes)
    return RateResponse.model_validate(rate)


# ---------------------------------------------------------------------------
# GET / — the caller's rates
# ---------------------------------------------------------------------------


@router.get("/", response_model=list[RateResponse])
async def list_rates(
    agent_id: uuid.UUID | None = Query(None, description="Admins only: whose rates to list"),
    live_only: bool = Query(False),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    target = _target_agent_id(principal, agent_id)
    ensure_can_act_for(principal, target)
    rates = await RateCatalog(db).list_for_agent(target, live_only=live_only)
    return [RateResponse.model_validate(r) for r in rates]
