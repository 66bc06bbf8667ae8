"""
Pytest configuration and shared fixtures.

This file provides common fixtures for all tests. Each test gets its own
SQLite database file (aiosqlite) created from the SQLModel metadata, so tests
are isolated and need no running database server.
"""

import os
from collections.abc import AsyncGenerator, Callable, Iterator

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

# Modules that build settings at import time (the arq worker) read these
os.environ.setdefault("GITHUB_CLIENT_ID", "test-client-id")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("GITHUB_CALLBACK_URL", "http://test/api/v1/auth/github/callback")
os.environ.setdefault("OAUTH_STATE_SECRET", "s" * 48)
os.environ.setdefault("JWT_ACCESS_SECRET", "j" * 48)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import breadthwise_auth.models  # noqa: E402, F401  # registers tables on SQLModel.metadata
from breadthwise_auth.api.dependencies import get_github_client  # noqa: E402
from breadthwise_auth.config import Settings  # noqa: E402
from breadthwise_auth.core.database import (  # noqa: E402
    create_engine,
    create_session_factory,
    get_db,
)
from breadthwise_auth.core.oauth_state import OAuthStateSigner  # noqa: E402
from breadthwise_auth.core.platform import RequestContext  # noqa: E402
from breadthwise_auth.main import create_app  # noqa: E402
from breadthwise_auth.models.user import Users  # noqa: E402
from breadthwise_auth.services.github import GitHubOAuthClient  # noqa: E402

GITHUB_PROFILE = {
    "id": 4242,
    "login": "octocat",
    "email": "octocat@example.com",
    "name": "The Octocat",
    "avatar_url": "https://avatars.githubusercontent.com/u/4242",
}


def make_settings(**overrides: object) -> Settings:
    """Build settings for tests without reading a .env file."""
    values: dict[str, object] = {
        "ENVIRONMENT": "development",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "GITHUB_CLIENT_ID": "test-client-id",
        "GITHUB_CLIENT_SECRET": "test-client-secret",
        "GITHUB_CALLBACK_URL": "http://test/api/v1/auth/github/callback",
        "OAUTH_STATE_SECRET": "s" * 48,
        "JWT_ACCESS_SECRET": "j" * 48,
        "WEB_CLIENT_URL": "http://localhost:8081",
        "SECURE_COOKIES": False,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Build settings with overrides, e.g. settings_factory(ENFORCE_FINGERPRINT=True)."""
    return make_settings


@pytest.fixture
def web_ctx() -> RequestContext:
    return RequestContext(
        platform="web",
        user_agent="Mozilla/5.0 (X11; Linux x86_64)",
        ip_address="203.0.113.7",
    )


@pytest.fixture
def mobile_ctx() -> RequestContext:
    return RequestContext(
        platform="mobile",
        user_agent="Breadthwise/1.4 (iOS 18.0)",
        ip_address="198.51.100.23",
        device_id="device-abc",
    )


@pytest.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a test database engine for each test function.

    A file database (not :memory:) so separate sessions get separate
    connections, which the concurrent refresh tests rely on.
    """
    test_engine = create_engine(
        make_settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def test_user(db_session: AsyncSession) -> Users:
    """
    Create a test user in the database.

    Usage:
        async def test_something(test_user, db_session):
            assert test_user.id is not None
    """
    user = Users(
        github_id="1001",
        username="fixtureuser",
        email="fixture@example.com",
        display_name="Fixture User",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def github_handler(profile: dict[str, object] | None = None) -> Callable[[httpx.Request], httpx.Response]:
    """MockTransport handler impersonating GitHub's token and user endpoints."""
    body = profile or GITHUB_PROFILE

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/login/oauth/access_token":
            return httpx.Response(200, json={"access_token": "gho_testtoken", "token_type": "bearer"})
        if request.url.path == "/user":
            return httpx.Response(200, json=body)
        return httpx.Response(404)

    return handler


@pytest.fixture
def github_transport() -> httpx.MockTransport:
    return httpx.MockTransport(github_handler())


@pytest.fixture
def state_signer(settings: Settings) -> OAuthStateSigner:
    return OAuthStateSigner(settings.OAUTH_STATE_SECRET)


@pytest.fixture(scope="function")
def app(
    settings: Settings,
    db_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    github_transport: httpx.MockTransport,
) -> Iterator[FastAPI]:
    """
    Create FastAPI app with test database session.

    This overrides the database dependency to use the test session and
    points the GitHub client at a mock transport.
    """
    test_app = create_app(settings)
    test_app.state.session_factory = session_factory

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_github_client] = lambda: GitHubOAuthClient(
        settings, transport=github_transport
    )

    yield test_app

    test_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async HTTP client for testing API endpoints.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/auth/session")
            assert response.status_code == 401
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
