"""
Shared test fixtures for the hawala settlement core.

Provides a per-test SQLite database (file-backed so concurrent sessions
get their own connections), agent/rate factories, principals, Redis
mocks, RSA key fixtures for JWT testing, and an async HTTP test client.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import hawala.models  # noqa: F401  (registers all tables on Base.metadata)
from hawala.core import security
from hawala.core.authz import Principal, Role
from hawala.core.encryption import configure_fernet
from hawala.database import Base, get_db, get_session_factory
from hawala.models.agent import Agent, AgentStatus
from hawala.models.rate import RateSide
from hawala.redis_client import get_redis
from hawala.services.fee_calculator import FeePolicy
from hawala.services.ledger import TransactionLedger, TransactionRequest
from hawala.services.rate_catalog import RateCatalog

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# --- Fernet Key Fixture ---


@pytest.fixture(scope="session")
def test_fernet_key():
    """Generate a Fernet key for tests."""
    return Fernet.generate_key()


@pytest.fixture(autouse=True)
def setup_fernet(test_fernet_key):
    """Encrypt phone numbers with the test Fernet key."""
    configure_fernet(test_fernet_key)


# --- RSA Key Fixtures ---


@pytest.fixture(scope="session")
def test_rsa_keys():
    """Generate a temporary RSA keypair for test JWT signing."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    return {"private_key": private_pem, "public_key": public_pem}


@pytest.fixture(autouse=True)
def security_with_keys(test_rsa_keys):
    """Configure token verification to use test RSA keys for every test."""
    security.configure_keys(
        private_key=test_rsa_keys["private_key"],
        public_key=test_rsa_keys["public_key"],
        algorithm="RS256",
    )


# --- Mock Redis ---


@pytest.fixture
def mock_redis():
    """AsyncMock Redis client with the methods the tracking cache uses."""
    redis = AsyncMock()
    redis.setex = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.delete = AsyncMock()
    return redis


# --- Database ---


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database file with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'hawala.db'}",
        connect_args={"timeout": 15},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    """A session for direct reads and catalog writes within one test."""
    async with session_factory() as session:
        yield session


# --- Factories ---


@pytest.fixture
def make_agent(session_factory):
    """Factory fixture that persists an Agent (APPROVED by default)."""

    async def _make(**overrides) -> Agent:
        data = {
            "business_name": "Kabul Star Exchange",
            "business_phone": "+93700100200",
            "business_address": "Shahr-e Naw, Kabul",
            "city": "Kabul",
            "status": AgentStatus.APPROVED,
        }
        data.update(overrides)
        async with session_factory() as session, session.begin():
            agent = Agent(**data)
            session.add(agent)
        return agent

    return _make


@pytest.fixture
def make_rate(session_factory):
    """Factory fixture that upserts a rate through the catalog."""

    async def _make(
        agent_id: uuid.UUID,
        from_currency: str = "USD",
        to_currency: str = "AFN",
        buy_rate: str = "70.5",
        sell_rate: str = "70.8",
        valid_until: datetime | None = None,
    ):
        async with session_factory() as session, session.begin():
            return await RateCatalog(session).upsert(
                agent_id, from_currency, to_currency,
                Decimal(buy_rate), Decimal(sell_rate), valid_until=valid_until,
            )

    return _make


@pytest_asyncio.fixture
async def agent(make_agent):
    return await make_agent()


@pytest_asyncio.fixture
async def usd_afn_rate(make_rate, agent):
    return await make_rate(agent.id)


# --- Principals ---


@pytest.fixture
def admin():
    return Principal(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
def agent_principal(agent):
    return Principal(user_id="agent-user-1", role=Role.AGENT, agent_id=agent.id)


@pytest.fixture
def outsider():
    """An agent principal that owns a different agent."""
    return Principal(user_id="agent-user-2", role=Role.AGENT, agent_id=uuid.uuid4())


@pytest.fixture
def sender():
    """A customer sending money through an agent."""
    return Principal(user_id="customer-1", role=Role.USER)


# --- Ledger ---


@pytest.fixture
def fixed_now():
    """The clock every ledger test runs at."""
    return FIXED_NOW


@pytest.fixture
def ledger(session_factory):
    return TransactionLedger(session_factory, clock=lambda: FIXED_NOW, withdrawn_enabled=True)


@pytest.fixture
def make_request(agent):
    """Factory for a valid USD->AFN transfer request."""

    def _make(**overrides) -> TransactionRequest:
        data = {
            "agent_id": agent.id,
            "sender_name": "Ahmad Karimi",
            "sender_phone": "+15550100001",
            "sender_country": "United States",
            "receiver_name": "Farid Noori",
            "receiver_phone": "+93799333444",
            "receiver_city": "Herat",
            "receiver_country": "Afghanistan",
            "from_currency": "USD",
            "to_currency": "AFN",
            "from_amount": Decimal("100"),
            "rate_side": RateSide.SELL,
            "fee_policy": FeePolicy(Decimal("0.025"), Decimal("50")),
        }
        data.update(overrides)
        return TransactionRequest(**data)

    return _make


# --- HTTP client ---


@pytest.fixture
def auth_headers(agent):
    """JWT Authorization header for the test agent's user."""
    token = security.create_access_token("agent-user-1", "AGENT", agent_id=str(agent.id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    token = security.create_access_token("admin-1", "ADMIN")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sender_headers():
    token = security.create_access_token("customer-1", "USER")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory, mock_redis):
    """
    Async HTTP test client with database and Redis dependencies
    overridden to use the per-test SQLite database and a Redis double.
    """
    from hawala.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
