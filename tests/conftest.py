"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Test ledger database (SQLite in-memory for speed)
- Test settings (fully configured, no .env lookup)
- Test client (FastAPI TestClient with dependency overrides)
- Caller JWT helpers
- Google API mock transport
"""

import json
from typing import Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vetclinic.core.config import ReprovisionPolicy, Settings
from vetclinic.db.base import Base
from vetclinic.db.session import get_db
from vetclinic.deps import get_settings
from vetclinic.main import app
import vetclinic.models  # noqa: F401


# ---------------------------------------------------------------------------
# TEST DATABASE SETUP
# ---------------------------------------------------------------------------
# StaticPool keeps the same in-memory connection across all operations

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

JWT_SECRET = "test-jwt-secret"
ANON_KEY = "test-anon-key"


# ---------------------------------------------------------------------------
# DATABASE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh ledger tables for each test function."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# ---------------------------------------------------------------------------
# SETTINGS FIXTURES
# ---------------------------------------------------------------------------

def make_settings(**overrides) -> Settings:
    """Fully configured settings; _env_file=None keeps a local .env out of tests."""
    values = dict(
        GOOGLE_CLIENT_ID="client-id",
        GOOGLE_CLIENT_SECRET="client-secret",
        GOOGLE_REFRESH_TOKEN="refresh-token",
        GOOGLE_CALENDAR_ID="clinic@group.calendar.google.com",
        SUPABASE_URL="https://project.supabase.co",
        SUPABASE_ANON_KEY=ANON_KEY,
        SUPABASE_SERVICE_ROLE_KEY="service-role-key",
        SUPABASE_JWT_SECRET=JWT_SECRET,
        VERIFY_CALLER_JWT=True,
        MEET_REPROVISION_POLICY=ReprovisionPolicy.NEW_EVENT,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


# ---------------------------------------------------------------------------
# CLIENT FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def client(db: Session, test_settings: Settings) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database and settings.

    Tests override further collaborators (provisioner, gateways) through
    app.dependency_overrides; everything is cleared afterwards.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# AUTH FIXTURES
# ---------------------------------------------------------------------------

def make_token(role: str = "authenticated", sub: str = "user-1", secret: str = JWT_SECRET) -> str:
    """Sign a Supabase-style access token."""
    return jwt.encode(
        {"sub": sub, "role": role, "aud": "authenticated"},
        secret,
        algorithm="HS256",
    )


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def service_headers() -> dict:
    return {"Authorization": f"Bearer {make_token(role='service_role', sub='')}"}


# ---------------------------------------------------------------------------
# GOOGLE MOCK TRANSPORT
# ---------------------------------------------------------------------------

class GoogleStub:
    """
    Records requests to Google and answers them from configurable handlers.

    token_response / event_response are (status, body) tuples, or callables
    raising an httpx exception.
    """

    TOKEN_HOST = "oauth2.googleapis.com"

    def __init__(self):
        self.token_response = (200, {"access_token": "tok", "expires_in": 3599})
        self.event_response = (200, {"id": "evt-1", "hangoutLink": "https://meet.example/abc"})
        self.token_requests: list[httpx.Request] = []
        self.event_requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == self.TOKEN_HOST:
            self.token_requests.append(request)
            return self._respond(self.token_response, request)
        self.event_requests.append(request)
        return self._respond(self.event_response, request)

    @staticmethod
    def _respond(answer, request: httpx.Request) -> httpx.Response:
        if callable(answer):
            return answer(request)
        status, body = answer
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, content=body)

    def event_body(self, index: int = -1) -> dict:
        return json.loads(self.event_requests[index].content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def google() -> GoogleStub:
    return GoogleStub()


@pytest.fixture
def raise_timeout() -> Callable[[httpx.Request], httpx.Response]:
    def _raise(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)
    return _raise
