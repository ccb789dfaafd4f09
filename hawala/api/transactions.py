"""
Transaction endpoints — record transfers and drive their lifecycle.

Create flow:
  1. Validate the body into a typed request (pydantic, unknown fields rejected)
  2. Resolve the agent (agents act for themselves, admins name one)
  3. TransactionLedger quotes, allocates a reference code and commits
  4. Return the frozen amounts and the tracking code

Transitions are compare-and-swap: the body carries the status the caller
last saw. A 409 with ``current_status`` means someone else moved first.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status

from hawala.api.deps import get_current_principal, get_ledger
from hawala.core.authz import Principal
from hawala.exceptions import ValidationError
from hawala.models.transaction import TransactionStatus
from hawala.schemas.transaction import (
    HistoryResponse,
    StatsResponse,
    TransactionCreateRequest,
    TransactionEventResponse,
    TransactionListResponse,
    TransactionResponse,
    TransitionRequest,
    TransitionResponse,
)
from hawala.services.ledger import TransactionLedger

logger = logging.getLogger(__name__)

router = APIRouter()


def _target_agent_id(principal: Principal, agent_id: uuid.UUID | None) -> uuid.UUID:
    if agent_id is not None:
        return agent_id
    if principal.agent_id is not None:
        return principal.agent_id
    raise ValidationError.for_field("agent_id", "is required")


# ---------------------------------------------------------------------------
# POST / — Create transaction
# ---------------------------------------------------------------------------


@router.post("/", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreateRequest,
    principal: Principal = Depends(get_current_principal),
    ledger: TransactionLedger = Depends(get_ledger),
):
    """
    Record a transfer at the agent's current rate.

    The rate, amounts and fee are frozen on the record; later rate changes
    never touch it. The response carries the public ``reference_code``.
    """
    agent_id = _target_agent_id(principal, payload.agent_id)
    txn = await ledger.create(payload.to_request(agent_id), principal)
    return TransactionResponse.from_model(txn)


# ---------------------------------------------------------------------------
# GET / — List the agent's transactions
# ---------------------------------------------------------------------------


@router.get("/", response_model=TransactionListResponse)
async def list_transactions(
    agent_id: uuid.UUID | None = Query(None, description="Admins only: whose transactions"),
    status_filter: TransactionStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    ledger: TransactionLedger = Depends(get_ledger),
):
    target = _target_agent_id(principal, agent_id)
    items, total = await ledger.list_for_agent(
        target, principal, status=status_filter, page=page, per_page=per_page,
    )
    return TransactionListResponse(
        items=[TransactionResponse.from_model(t) for t in items],
        total=total,
        page=page,
        per_page=per_page,
    )


# ---------------------------------------------------------------------------
# GET /stats — Counts per status
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=StatsResponse)
async def transaction_stats(
    agent_id: uuid.UUID | None = Query(None),
    principal: Principal = Depends(get_current_principal),
    ledger: TransactionLedger = Depends(get_ledger),
):
    return StatsResponse(**await ledger.stats(principal, agent_id))


# ---------------------------------------------------------------------------
# GET /{reference_code} — Single transaction
# ---------------------------------------------------------------------------


@router.get("/{reference_code}", response_model=TransactionResponse)
async def get_transaction(
    reference_code: str,
    principal: Principal = Depends(get_current_principal),
    ledger: TransactionLedger = Depends(get_ledger),
):
    txn = await ledger.get(reference_code, principal)
    return TransactionResponse.from_model(txn)


@router.get("/{reference_code}/history", response_model=HistoryResponse)
async def get_transaction_history(
    reference_code: str,
    principal: Principal = Depends(get_current_principal),
    ledger: TransactionLedger = Depends(get_ledger),
):
    txn = await ledger.get(reference_code, principal)
    events = await ledger.history(txn.id, principal)
    return HistoryResponse(
        reference_code=txn.reference_code,
        events=[TransactionEventResponse.model_validate(e) for e in events],
    )


# ---------------------------------------------------------------------------
# POST /{reference_code}/transition — Status change
# ---------------------------------------------------------------------------


@router.post("/{reference_code}/transition", response_model=TransitionResponse)
async def transition_transaction(
    reference_code: str,
    payload: TransitionRequest,
    principal: Principal = Depends(get_current_principal),
    ledger: TransactionLedger = Depends(get_ledger),
):
    """
    Move the transaction from ``from_status`` to ``to_status``.

    409 ``invalid_transition`` for edges outside the lifecycle graph,
    409 ``conflict`` (with ``current_status``) when the stored status has
    already moved on.
    """
    result = await ledger.transition(
        reference_code, payload.from_status, payload.to_status, principal, note=payload.note,
    )
    return TransitionResponse(
        reference_code=result.reference_code,
        previous_status=result.previous_status,
        status=result.status,
        completed_at=result.completed_at,
    )
