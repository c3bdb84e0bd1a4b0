"""
Shared test fixtures for the NIRA registry test suite.

Every test gets a fresh in-memory database (aiosqlite + StaticPool) seeded
with the default roles, permissions, menus and users, plus a fresh session
manager driven by a controllable clock.
"""

import os
import sys
from contextlib import AsyncExitStack
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key-for-session-cookies"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_db
from app.db.base import Base
from app.db.init_db import init_db
from app.main import app
from app.services.session_store import InMemorySessionStore, SessionManager

DEFAULT_PASSWORD = "admin123"

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class FakeClock:
    """Callable clock for the session manager; tests move time by hand."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
async def setup_db():
    """Create and seed all tables before each test, drop them after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with TestingSessionLocal() as session:
        await init_db(session)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # The pooled connection belongs to this test's event loop
    await test_engine.dispose()


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def session_manager(clock: FakeClock) -> SessionManager:
    manager = SessionManager(InMemorySessionStore(), timeout_seconds=300, clock=clock)
    app.state.session_manager = manager
    return manager


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def client_factory():
    """Build independent clients; each one keeps its own cookie jar (browser)."""
    async with AsyncExitStack() as stack:

        async def _make() -> AsyncClient:
            transport = ASGITransport(app=app)
            return await stack.enter_async_context(
                AsyncClient(transport=transport, base_url="http://test")
            )

        yield _make


@pytest.fixture
async def async_client(client_factory) -> AsyncClient:
    return await client_factory()


async def _login(
    client: AsyncClient, username: str, password: str = DEFAULT_PASSWORD, remember_me: bool = False
):
    return await client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password, "rememberMe": remember_me},
    )


@pytest.fixture
def login():
    """POST /auth/login through the given client; returns the response."""
    return _login


async def _logged_in(client_factory, username: str) -> AsyncClient:
    client = await client_factory()
    resp = await _login(client, username)
    assert resp.status_code == 200, resp.text
    return client


@pytest.fixture
async def admin_client(client_factory) -> AsyncClient:
    return await _logged_in(client_factory, "admin")


@pytest.fixture
async def officer_client(client_factory) -> AsyncClient:
    return await _logged_in(client_factory, "officer1")


@pytest.fixture
async def viewer_client(client_factory) -> AsyncClient:
    return await _logged_in(client_factory, "viewer1")
