"""
Transaction ledger — creates hawala transactions and drives their lifecycle.

Create flow (one database transaction per attempt):
  1. Validate the request (field-level errors, nothing written)
  2. Load the agent, check the actor may act for it and that it is approved
     (any sender may create; agents only for themselves)
  3. Quote against the agent's live rate
  4. Generate a reference code, insert the transaction and its creation event
  5. On a reference-code unique violation, roll back and retry 2-4

Transitions are optimistic: ``UPDATE … WHERE status = :expected``. Losing
the race raises Conflict with the authoritative current status; the
caller re-reads before deciding whether to retry.

Subscribers registered with :meth:`TransactionLedger.subscribe` are
awaited after commit. Their failures are logged and never reach the
caller or the stored state.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hawala.config import settings
from hawala.core.authz import Principal, Role, ensure_agent_can_transact, ensure_can_act_for
from hawala.core.clock import utc_now
from hawala.exceptions import (
    CodeGenerationExhausted,
    Conflict,
    InvalidTransition,
    NotFound,
    Unauthorized,
    ValidationError,
)
from hawala.models.agent import Agent
from hawala.models.rate import RateSide
from hawala.models.transaction import Transaction, TransactionStatus
from hawala.models.transaction_event import TransactionEvent
from hawala.services.fee_calculator import FeePolicy
from hawala.services.quote_engine import QuoteEngine
from hawala.services.rate_catalog import RateCatalog
from hawala.services.reference_codes import ReferenceCodeGenerator

logger = logging.getLogger(__name__)

AMOUNT_QUANTUM = Decimal("0.01")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransactionRequest:
    """A validated transfer request, built at the API boundary."""
    agent_id: uuid.UUID
    sender_name: str
    sender_phone: str
    receiver_name: str
    receiver_phone: str
    receiver_city: str
    from_currency: str
    to_currency: str
    from_amount: Decimal
    rate_side: RateSide
    fee_policy: FeePolicy = field(default_factory=FeePolicy.default)
    sender_city: str | None = None
    sender_country: str | None = None
    receiver_country: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class StatusChangeEvent:
    """Published after a transaction is created or changes status."""
    transaction_id: uuid.UUID
    reference_code: str
    agent_id: uuid.UUID
    from_status: TransactionStatus | None
    to_status: TransactionStatus
    actor_id: str | None
    occurred_at: datetime
    completed_at: datetime | None = None


@dataclass(frozen=True)
class TransitionResult:
    reference_code: str
    previous_status: TransactionStatus
    status: TransactionStatus
    completed_at: datetime | None


StatusChangeHandler = Callable[[StatusChangeEvent], Awaitable[None]]


def _is_reference_collision(exc: IntegrityError) -> bool:
    return "reference_code" in str(exc.orig)


def _parse_id(id_or_code) -> uuid.UUID | None:
    if isinstance(id_or_code, uuid.UUID):
        return id_or_code
    try:
        return uuid.UUID(str(id_or_code))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# TransactionLedger
# ---------------------------------------------------------------------------


class TransactionLedger:
    """Owns the unit of work for transaction creation and status changes."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        code_generator: ReferenceCodeGenerator | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_code_attempts: int | None = None,
        withdrawn_enabled: bool | None = None,
    ):
        self._session_factory = session_factory
        self.codes = code_generator or ReferenceCodeGenerator(clock=clock)
        self._clock = clock
        self.max_code_attempts = (
            settings.REFERENCE_CODE_MAX_ATTEMPTS if max_code_attempts is None else max_code_attempts
        )
        self.withdrawn_enabled = (
            settings.LEDGER_ENABLE_WITHDRAWN if withdrawn_enabled is None else withdrawn_enabled
        )
        self._handlers: list[StatusChangeHandler] = []

    # --- Subscribers ---

    def subscribe(self, handler: StatusChangeHandler) -> None:
        self._handlers.append(handler)

    async def _publish(self, event: StatusChangeEvent) -> None:
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Status-change subscriber %r failed for %s",
                    handler, event.reference_code,
                )

    # --- Validation ---

    @staticmethod
    def validate_request(request: TransactionRequest) -> None:
        """Collect every field problem before anything is written."""
        errors: dict[str, str] = {}
        for name in ("sender_name", "sender_phone", "receiver_name", "receiver_phone", "receiver_city"):
            value = getattr(request, name)
            if value is None or not str(value).strip():
                errors[name] = "is required"

        amount = request.from_amount
        if amount is None or amount <= 0:
            errors["from_amount"] = "must be greater than zero"
        elif amount > settings.MAX_TRANSACTION_AMOUNT:
            errors["from_amount"] = f"must not exceed {settings.MAX_TRANSACTION_AMOUNT}"
        elif amount != amount.quantize(AMOUNT_QUANTUM):
            errors["from_amount"] = "must have at most 2 decimal places"

        if not isinstance(request.rate_side, RateSide):
            errors["rate_side"] = "must be BUY or SELL"

        if errors:
            raise ValidationError("Invalid transaction request", errors)

    # --- Loading helpers ---

    @staticmethod
    async def _load_agent(session: AsyncSession, agent_id: uuid.UUID) -> Agent:
        agent = await session.get(Agent, agent_id)
        if agent is None:
            raise NotFound(f"Agent {agent_id} not found")
        return agent

    async def _load(self, session: AsyncSession, id_or_code) -> Transaction:
        txn_id = _parse_id(id_or_code)
        if txn_id is not None:
            stmt = select(Transaction).where(Transaction.id == txn_id)
        else:
            code = self.codes.normalize(str(id_or_code))
            stmt = select(Transaction).where(Transaction.reference_code == code)
        txn = (
            await session.execute(stmt.execution_options(populate_existing=True))
        ).scalar_one_or_none()
        if txn is None:
            raise NotFound("Transaction not found")
        return txn

    # --- Create ---

    async def create(self, request: TransactionRequest, actor: Principal) -> Transaction:
        """
        Quote and persist a new PENDING transaction.

        Either the transaction and its creation event are committed together
        or nothing is. Senders (USER role) may record a transfer with any
        approved, active agent; agent principals only with their own.
        Raises ValidationError, NotFound (agent), Unauthorized, RateNotFound,
        or CodeGenerationExhausted after ``max_code_attempts``
        reference-code collisions.
        """
        self.validate_request(request)

        for attempt in range(1, self.max_code_attempts + 1):
            code = self.codes.generate()
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        txn = await self._insert(session, request, actor, code)
            except IntegrityError as exc:
                if not _is_reference_collision(exc):
                    raise
                logger.warning(
                    "Reference code collision on %s (attempt %d/%d)",
                    code, attempt, self.max_code_attempts,
                )
                continue

            logger.info(
                "Transaction %s created for agent %s: %s %s -> %s %s (rate %s, fee %s)",
                txn.reference_code, txn.agent_id, txn.from_amount, txn.from_currency,
                txn.to_amount, txn.to_currency, txn.rate, txn.fee,
            )
            await self._publish(StatusChangeEvent(
                transaction_id=txn.id,
                reference_code=txn.reference_code,
                agent_id=txn.agent_id,
                from_status=None,
                to_status=TransactionStatus.PENDING,
                actor_id=actor.user_id,
                occurred_at=txn.created_at,
            ))
            return txn

        logger.error(
            "Reference code generation exhausted after %d attempts; "
            "check generator entropy and retry policy",
            self.max_code_attempts,
        )
        raise CodeGenerationExhausted(
            f"Could not allocate a unique reference code after {self.max_code_attempts} attempts"
        )

    async def _insert(
        self,
        session: AsyncSession,
        request: TransactionRequest,
        actor: Principal,
        code: str,
    ) -> Transaction:
        agent = await self._load_agent(session, request.agent_id)
        if actor.role != Role.USER:
            ensure_can_act_for(actor, agent.id)
        ensure_agent_can_transact(agent)

        engine = QuoteEngine(RateCatalog(session), clock=self._clock)
        quote = await engine.quote(
            agent.id,
            request.from_currency,
            request.to_currency,
            request.from_amount,
            request.fee_policy,
            request.rate_side,
        )

        now = self._clock()
        txn = Transaction(
            reference_code=code,
            agent_id=agent.id,
            created_by=actor.user_id,
            status=TransactionStatus.PENDING,
            from_currency=quote.from_currency,
            to_currency=quote.to_currency,
            from_amount=quote.amount,
            to_amount=quote.converted_amount,
            rate=quote.rate,
            rate_side=quote.side,
            fee=quote.fee,
            fee_percentage=quote.fee_policy.percentage,
            minimum_fee=quote.fee_policy.minimum_fee,
            sender_name=request.sender_name.strip(),
            sender_city=request.sender_city,
            sender_country=request.sender_country,
            receiver_name=request.receiver_name.strip(),
            receiver_city=request.receiver_city.strip(),
            receiver_country=request.receiver_country,
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )
        txn.set_sender_phone(request.sender_phone.strip())
        txn.set_receiver_phone(request.receiver_phone.strip())
        session.add(txn)
        session.add(TransactionEvent(
            transaction=txn,
            from_status=None,
            to_status=TransactionStatus.PENDING,
            actor_id=actor.user_id,
            note="Transaction created",
            created_at=now,
        ))
        await session.flush()
        return txn

    # --- Transitions ---

    async def transition(
        self,
        id_or_code,
        from_expected: TransactionStatus,
        to_target: TransactionStatus,
        actor: Principal,
        note: str | None = None,
    ) -> TransitionResult:
        """
        Compare-and-swap the status from *from_expected* to *to_target*.

        Raises InvalidTransition for edges outside the state graph,
        NotFound, Unauthorized (not the owner, or the owning agent is no
        longer approved and active), or Conflict when the stored status is
        no longer *from_expected*. A failed call leaves the record untouched.
        """
        if not Transaction.is_valid_transition(
            from_expected, to_target, withdrawn_enabled=self.withdrawn_enabled,
        ):
            raise InvalidTransition(from_expected, to_target)

        now = self._clock()
        values = {"status": to_target, "updated_at": now}
        if to_target == TransactionStatus.COMPLETED:
            values["completed_at"] = now

        async with self._session_factory() as session:
            async with session.begin():
                txn = await self._load(session, id_or_code)
                ensure_can_act_for(actor, txn.agent_id)
                if not actor.is_admin:
                    agent = await self._load_agent(session, txn.agent_id)
                    ensure_agent_can_transact(agent)

                result = await session.execute(
                    update(Transaction)
                    .where(Transaction.id == txn.id, Transaction.status == from_expected)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    current = await session.scalar(
                        select(Transaction.status).where(Transaction.id == txn.id)
                    )
                    logger.warning(
                        "Transition %s -> %s lost on %s; current status is %s",
                        from_expected.value, to_target.value, txn.reference_code, current.value,
                    )
                    raise Conflict(txn.reference_code, from_expected, current)

                session.add(TransactionEvent(
                    transaction_id=txn.id,
                    from_status=from_expected,
                    to_status=to_target,
                    actor_id=actor.user_id,
                    note=note,
                    created_at=now,
                ))

        completed_at = values.get("completed_at", txn.completed_at)
        logger.info(
            "Transaction %s moved %s -> %s by %s",
            txn.reference_code, from_expected.value, to_target.value, actor.user_id,
        )
        await self._publish(StatusChangeEvent(
            transaction_id=txn.id,
            reference_code=txn.reference_code,
            agent_id=txn.agent_id,
            from_status=from_expected,
            to_status=to_target,
            actor_id=actor.user_id,
            occurred_at=now,
            completed_at=completed_at,
        ))
        return TransitionResult(
            reference_code=txn.reference_code,
            previous_status=from_expected,
            status=to_target,
            completed_at=completed_at,
        )

    # --- Reads ---

    async def get(self, id_or_code, actor: Principal) -> Transaction:
        async with self._session_factory() as session:
            txn = await self._load(session, id_or_code)
            ensure_can_act_for(actor, txn.agent_id)
            return txn

    async def history(self, id_or_code, actor: Principal) -> list[TransactionEvent]:
        async with self._session_factory() as session:
            txn = await self._load(session, id_or_code)
            ensure_can_act_for(actor, txn.agent_id)
            result = await session.execute(
                select(TransactionEvent)
                .where(TransactionEvent.transaction_id == txn.id)
                .order_by(TransactionEvent.created_at, TransactionEvent.id)
            )
            return list(result.scalars().all())

    async def list_for_agent(
        self,
        agent_id: uuid.UUID,
        actor: Principal,
        *,
        status: TransactionStatus | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Transaction], int]:
        """One page of the agent's transactions, newest first, plus the total count."""
        ensure_can_act_for(actor, agent_id)
        filters = [Transaction.agent_id == agent_id]
        if status is not None:
            filters.append(Transaction.status == status)

        async with self._session_factory() as session:
            total = await session.scalar(select(func.count(Transaction.id)).where(*filters))
            result = await session.execute(
                select(Transaction)
                .where(*filters)
                .order_by(Transaction.created_at.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
            )
            return list(result.scalars().all()), total or 0

    async def stats(self, actor: Principal, agent_id: uuid.UUID | None = None) -> dict[str, int]:
        """Transaction counts per status; admins may omit *agent_id* for the whole ledger."""
        if agent_id is None and not actor.is_admin:
            agent_id = actor.agent_id
        if agent_id is None:
            if not actor.is_admin:
                raise Unauthorized("Only administrators can view ledger-wide statistics")
        else:
            ensure_can_act_for(actor, agent_id)

        stmt = select(Transaction.status, func.count(Transaction.id)).group_by(Transaction.status)
        if agent_id is not None:
            stmt = stmt.where(Transaction.agent_id == agent_id)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        counts = {s.value.lower(): 0 for s in TransactionStatus}
        for status, count in rows:
            counts[status.value.lower()] = count
        counts["total"] = sum(counts.values())
        return counts
