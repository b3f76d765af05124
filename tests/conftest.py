"""
Pytest Configuration and Fixtures
"""

import asyncio
import json
import time

import pytest
from fastapi.testclient import TestClient

from app.core import Settings
from app.main import create_app
from app.models import AuthResponse
from app.services import CookieCodec


class FakeAuthProvider:
    """AuthProvider double that records the cookie sets it receives."""

    def __init__(self, response: AuthResponse | None = None, exc: Exception | None = None, delay: float = 0.0):
        self.response = response or AuthResponse()
        self.exc = exc
        self.delay = delay
        self.calls = []

    async def validate_or_refresh_session(self, cookies):
        self.calls.append(cookies)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.fixture
def test_settings():
    """Settings pointing at a fake Supabase project ``abcd``."""
    return Settings(
        supabase_url="https://abcd.supabase.co",
        supabase_anon_key="anon-key",
        auth_timeout_seconds=0.5,
    )


@pytest.fixture
def codec():
    return CookieCodec()


@pytest.fixture
def provider_factory():
    """Build FakeAuthProvider instances with a canned response or failure."""
    return FakeAuthProvider


@pytest.fixture
def fake_provider():
    return FakeAuthProvider()


@pytest.fixture
def app(test_settings, fake_provider):
    return create_app(test_settings, fake_provider)


@pytest.fixture
def client(app):
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def session_data():
    """A Supabase session as stored in the auth cookie."""
    return {
        "access_token": "access-123",
        "refresh_token": "refresh-123",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": int(time.time()) + 3600,
        "user": {"id": "user-1", "email": "ana@example.com"},
    }


@pytest.fixture
def session_cookie_value(session_data):
    return json.dumps(session_data, separators=(",", ":"))
