"""
Reusable FastAPI dependencies for authentication and service wiring.

Dependencies:
  - get_current_principal — builds a Principal from the access JWT (401 if invalid)
  - get_ledger            — TransactionLedger with status-change subscribers attached
  - get_tracking_service  — TrackingService with the optional Redis cache
"""

import uuid

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hawala.config import settings
from hawala.core.authz import Principal, Role
from hawala.core.security import verify_token
from hawala.database import get_db, get_session_factory
from hawala.redis_client import get_redis
from hawala.services.ledger import TransactionLedger
from hawala.services.tracking_service import TrackingCache, TrackingService


# ---------------------------------------------------------------------------
# Core: extract principal from JWT
# ---------------------------------------------------------------------------


async def get_current_principal(
    authorization: str | None = Header(None, description="Bearer <access_token>"),
) -> Principal:
    """
    Parse the ``Authorization: Bearer <token>`` header, verify the JWT and
    return the caller's identity and role.

    Raises 401 if the header is missing or malformed, or the token is
    expired, of the wrong type, or lacks a usable role.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )

    token = authorization[len("Bearer "):]
    payload = verify_token(token, expected_type="access")

    try:
        role = Role(payload.get("role"))
        raw_agent_id = payload.get("agent_id")
        agent_id = uuid.UUID(raw_agent_id) if raw_agent_id else None
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token claims",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token claims",
        )

    return Principal(user_id=user_id, role=role, agent_id=agent_id)


# Convenience alias
require_auth = get_current_principal


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def _tracking_cache(redis) -> TrackingCache | None:
    if not settings.TRACKING_CACHE_ENABLED:
        return None
    return TrackingCache(redis)


async def get_ledger(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    redis=Depends(get_redis),
) -> TransactionLedger:
    ledger = TransactionLedger(session_factory)

    cache = _tracking_cache(redis)
    if cache is not None:
        async def _invalidate(event):
            await cache.invalidate(event.reference_code)

        ledger.subscribe(_invalidate)

    if settings.NOTIFICATIONS_ENABLED:
        from hawala.tasks.notification_tasks import dispatch_status_change

        ledger.subscribe(dispatch_status_change)

    return ledger


async def get_tracking_service(
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> TrackingService:
    return TrackingService(db, cache=_tracking_cache(redis))
