"""Test fixtures — a fresh in-memory database per test.

Each test gets its own SQLite (aiosqlite) engine with the schema created
from the ORM models; the app's get_db dependency is overridden to hand
out that test's session. Nothing survives between tests.

Auth is NOT mocked: `client` signs up a real user and carries the
cookies the API sets, so every request runs the real token pipeline.
"""

import os

# Must be set before tickoff.config is imported.
os.environ.setdefault("TICKOFF_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TICKOFF_BCRYPT_ROUNDS", "4")

import uuid

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from tickoff.db.engine import get_db
from tickoff.db.models import Base
from tickoff.main import app

PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a throwaway in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def test_app(db_session):
    """The app with get_db pointed at the test session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


def _new_client(test_app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test")


@pytest_asyncio.fixture()
async def anon_client(test_app):
    """HTTP client with no session cookies."""
    async with _new_client(test_app) as ac:
        yield ac


@pytest_asyncio.fixture()
async def make_client(test_app):
    """Factory: sign up a new user and return a client holding their cookies.

    The signed-up user's JSON is available as `client.user`.
    """
    clients = []

    async def _make(name: str = "Test User") -> AsyncClient:
        ac = _new_client(test_app)
        clients.append(ac)
        email = f"{name.split()[0].lower()}-{uuid.uuid4().hex[:8]}@example.com"
        r = await ac.post(
            "/api/auth/signup",
            json={"name": name, "email": email, "password": PASSWORD},
        )
        assert r.status_code == 201, r.text
        ac.user = r.json()["user"]
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()


@pytest_asyncio.fixture()
async def client(make_client):
    """HTTP client signed in as a freshly created user."""
    return await make_client("Test User")
