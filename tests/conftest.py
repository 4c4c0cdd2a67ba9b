"""Test fixtures — in-memory database and one app per session backend.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets a fresh in-memory SQLite database (StaticPool keeps the
   single connection alive, so every session sees the same data).
2. ``get_db`` is overridden to hand out sessions from that database.
3. Apps are built with explicit Settings, one for the cookie backend and
   one for the token backend, exactly as a deployment would configure them.

Environment defaults are set before teamhub is imported so the module
singletons (settings, engine) never point at a real Postgres.
"""

import os

os.environ.setdefault("TEAMHUB_ENVIRONMENT", "test")
os.environ.setdefault("TEAMHUB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TEAMHUB_BCRYPT_ROUNDS", "4")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from teamhub.auth.oauth import ProviderProfile  # noqa: E402
from teamhub.config import Settings  # noqa: E402
from teamhub.db.engine import get_db  # noqa: E402
from teamhub.db.models import Base  # noqa: E402
from teamhub.main import create_app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

SESSION_SECRET = "test-session-secret-0123456789abcdef"
JWT_SECRET = "test-jwt-secret-0123456789abcdef-0123"
FRONTEND_ORIGIN = "http://frontend.test"
FRONTEND_CALLBACK = "http://frontend.test/google/oauth/callback"


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "database_url": TEST_DB_URL,
        "session_secret": SESSION_SECRET,
        "jwt_secret": JWT_SECRET,
        "bcrypt_rounds": 4,
        "frontend_origin": FRONTEND_ORIGIN,
        "frontend_google_callback_url": FRONTEND_CALLBACK,
        "google_client_id": "test-client-id",
        "google_client_secret": "test-client-secret",
        "google_callback_url": "http://test/api/auth/google/callback",
    }
    values.update(overrides)
    return Settings(**values)


class FakeOAuthProvider:
    """Stands in for Google: returns a fixed profile for any code."""

    name = "google"

    def __init__(self, profile: ProviderProfile):
        self.profile = profile
        self.calls = []

    def authorization_url(self, *, state: str, code_challenge: str) -> str:
        return f"https://idp.test/authorize?state={state}&code_challenge={code_challenge}"

    async def fetch_profile(self, *, code: str, code_verifier: str) -> ProviderProfile:
        self.calls.append((code, code_verifier))
        return self.profile


@pytest_asyncio.fixture()
async def session_factory():
    """Fresh schema per test on a shared in-memory connection."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


def _build_app(session_factory, **overrides):
    app = create_app(make_settings(**overrides))

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest_asyncio.fixture()
async def cookie_app(session_factory):
    app = _build_app(session_factory, session_backend="cookie")
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def token_app(session_factory):
    app = _build_app(session_factory, session_backend="token")
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(cookie_app):
    """HTTP client for a cookie-session deployment (the default)."""
    transport = ASGITransport(app=cookie_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def token_client(token_app):
    """HTTP client for a bearer-token deployment."""
    transport = ASGITransport(app=token_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register_and_login(ac: AsyncClient, email: str, password: str = "password_123"):
    """Register a user through the API and log in. Returns the login response."""
    r = await ac.post(
        "/api/auth/register",
        json={"email": email, "name": "Test User", "password": password},
    )
    assert r.status_code == 201, r.text
    return await ac.post("/api/auth/login", json={"email": email, "password": password})
