from __future__ import annotations

import time
from collections.abc import AsyncIterator

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from momskidz.config import get_settings
from momskidz.db.init import create_schema
from momskidz.db.session import get_engine, get_sessionmaker
from momskidz.main import app
from momskidz.models.schemas import AuthSession, AuthUser
from momskidz.observability.metrics import reset_metrics
from momskidz.services.identity_client import IdentityProviderError, set_identity_client

TEST_JWT_SECRET = "test-secret-with-enough-bytes-for-hs256-signing"


class FakeIdentityClient:
    """Stands in for the hosted identity provider; records every exchange."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []
        self.session: AuthSession | None = AuthSession(
            access_token="access-token",
            refresh_token="refresh-token",
            expires_in=3600,
            user=AuthUser(id="user-1", email="a.b@example.com"),
        )
        self.error: IdentityProviderError | None = None

    def exchange_code_for_session(self, code: str, code_verifier: str | None = None) -> AuthSession | None:
        self.calls.append((code, code_verifier))
        if self.error is not None:
            raise self.error
        return self.session


def make_session_token(user_id: str, *, secret: str = TEST_JWT_SECRET, audience: str = "authenticated") -> str:
    now = int(time.time())
    payload = {"sub": user_id, "aud": audience, "iat": now, "exp": now + 3600}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "false")
    get_settings.cache_clear()

    create_schema(get_engine())
    reset_metrics()
    identity = FakeIdentityClient()
    set_identity_client(identity)

    yield identity

    set_identity_client(None)
    reset_metrics()
    get_engine().dispose()
    get_settings.cache_clear()


@pytest.fixture
def identity(test_environment) -> FakeIdentityClient:
    return test_environment


@pytest.fixture
def db():
    session = get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_token():
    return make_session_token
