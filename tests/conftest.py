"""Test fixtures — a fresh in-memory database and session store per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Environment is pinned BEFORE inkwell is imported, because settings
   are read once at import time (SQLite, memory sessions, fast bcrypt).
2. Each test gets its own in-memory SQLite engine. StaticPool keeps one
   connection alive so every session in the test sees the same tables.
3. get_db is overridden to hand out sessions from that engine, and the
   app's session store is swapped for a fresh MemorySessionStore.

Nothing is shared between tests, so there's nothing to roll back.
"""

import os
import tempfile

os.environ.update({
    "INKWELL_ENVIRONMENT": "test",
    "INKWELL_DATABASE_URL": "sqlite+aiosqlite://",
    "INKWELL_SESSION_BACKEND": "memory",
    "INKWELL_JWT_SECRET": "test-secret-not-for-production",
    "INKWELL_BCRYPT_ROUNDS": "4",
    "INKWELL_SESSION_COOKIE_SECURE": "false",
    "INKWELL_SESSION_COOKIE_SAMESITE": "lax",
    "INKWELL_UPLOAD_DIR": tempfile.mkdtemp(prefix="inkwell-uploads-"),
    "INKWELL_ADMIN_INVITE_TOKEN": "staff-invite-123",
})

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from inkwell.auth.sessions import MemorySessionStore  # noqa: E402
from inkwell.db.engine import get_db  # noqa: E402
from inkwell.db.models import Base  # noqa: E402
from inkwell.main import app  # noqa: E402
from inkwell.services.user_service import UserService  # noqa: E402

DEFAULT_PASSWORD = "password_123"


@pytest_asyncio.fixture()
async def session_factory():
    """Per-test in-memory database with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
def session_store():
    """Fresh memory session store installed on the app."""
    store = MemorySessionStore()
    app.state.session_store = store
    return store


@pytest_asyncio.fixture()
async def make_client(session_factory, session_store):
    """Factory for HTTP clients that share the test database.

    Learn: each client has its own cookie jar, which is exactly a
    separate browser, handy for "fresh request, token only" checks.
    """
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    clients = []

    def _make(**kwargs) -> AsyncClient:
        ac = AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test", **kwargs
        )
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(make_client):
    """HTTP client with no credentials."""
    return make_client()


@pytest_asyncio.fixture()
async def make_user(session_factory):
    """Create a user directly through the service layer."""
    async def _make(role: str = "user", password: str = DEFAULT_PASSWORD, **fields):
        tag = uuid.uuid4().hex[:8]
        username = fields.get("username", f"{role}-{tag}")
        email = fields.get("email", f"{username}@example.com")
        async with session_factory() as db:
            return await UserService(db).create_user(username, email, password, role=role)

    return _make


@pytest_asyncio.fixture()
async def login_as(make_user, make_client):
    """Create a user with `role`, log a new client in, return (client, body)."""
    async def _login(role: str = "user"):
        user = await make_user(role=role)
        ac = make_client()
        r = await ac.post(
            "/api/auth/login",
            json={"email": user.email, "password": DEFAULT_PASSWORD},
        )
        assert r.status_code == 200, r.text
        return ac, r.json()

    return _login
