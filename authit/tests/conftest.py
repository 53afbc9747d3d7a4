"""Async test fixtures for Authit tests using SQLite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from authit.config import settings
from authit.database import get_db
from authit.kanidm.client import KanidmClient, get_kanidm_client
from authit.models import Base
from authit.schemas.provision import ResetLink
from authit.schemas.users import UserData
from authit.security.gate import SESSION_COOKIE_NAME
from authit.security.pkce import pkce_cache
from authit.services import oauth_svc, session_svc


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "session_secret", "test-signing-secret")
    monkeypatch.setattr(settings, "authit_url", "http://authit.test")
    monkeypatch.setattr(settings, "kanidm_url", "https://idm.test")
    monkeypatch.setattr(settings, "oauth_client_id", "authit")
    monkeypatch.setattr(settings, "oauth_client_secret", "")
    monkeypatch.setattr(settings, "admin_group", "authit_admin")
    monkeypatch.setattr(settings, "cookie_secure", False)
    monkeypatch.setattr(settings, "provision_purge_probability", 0.0)
    return settings


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def idm():
    """Kanidm client double; every call succeeds unless a test says otherwise."""
    mock = AsyncMock(spec=KanidmClient)
    mock.generate_credential_reset_link.return_value = ResetLink(
        url="https://idm.test/ui/reset?token=reset-token",
    )
    mock.list_persons.return_value = []
    mock.list_groups.return_value = []
    return mock


@pytest.fixture
def oauth_handler():
    """Request handler for the fake OAuth provider; tests replace ``.handler``."""

    class _Provider:
        handler = None

    return _Provider()


@pytest_asyncio.fixture
async def client(session_factory, idm, oauth_handler):
    """HTTPX async test client against the Authit app."""
    import httpx

    from authit.app import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_kanidm_client():
        yield idm

    async def override_get_oauth_http():
        def _dispatch(request: httpx.Request) -> httpx.Response:
            if oauth_handler.handler is None:
                return httpx.Response(500, json={"error": "no provider configured"})
            return oauth_handler.handler(request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(_dispatch)) as http:
            yield http

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_kanidm_client] = override_get_kanidm_client
    app.dependency_overrides[oauth_svc.get_oauth_http] = override_get_oauth_http
    await pkce_cache.clear()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    await pkce_cache.clear()


@pytest_asyncio.fixture
async def login_as(client, session_factory):
    """Create a server-side session and attach its cookie to ``client``."""

    async def _login(username: str = "alice", groups: list[str] | None = None) -> str:
        user = UserData(
            user_id=f"{username}-uuid",
            username=username,
            display_name=username.title(),
            groups=groups or [],
            access_token="upstream-access-token",
        )
        async with session_factory() as db:
            session = await session_svc.create_session(db, user)
        token = session_svc.session_token(session)
        client.cookies.set(SESSION_COOKIE_NAME, token)
        return token

    return _login
