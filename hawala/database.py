"""
Ledger storage: the async engine behind rates, transactions and their events.

Route handlers that only read or make a single write take a request-scoped
session from :func:`get_db`. The TransactionLedger opens its own sessions
from :func:`get_session_factory` because every create attempt and every
compare-and-swap transition needs its own database transaction.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from hawala.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    pool_size=settings.DATABASE_POOL_SIZE,
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

# Committed rows stay readable after commit; the ledger hands them back to callers.
session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    """Declarative base shared by agents, rates, transactions and events."""


async def get_db() -> AsyncSession:
    """Request-scoped session: committed when the handler returns, rolled back on error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return session_factory
