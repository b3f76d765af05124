"""
Tests for API Routes
--------------------
Health, sign-out and the OAuth callback, with the Supabase client talking to a
mocked GoTrue API.
"""

import json

import httpx
from fastapi.testclient import TestClient

from app.main import create_app
from app.models import EncodingTag
from app.services import SupabaseAuthClient

STORAGE_KEY = "sb-abcd-auth-token"
VERIFIER_COOKIE = f"{STORAGE_KEY}-code-verifier"
USER = {"id": "user-1", "email": "ana@example.com"}


class GoTrueStub:
    """Canned GoTrue responses keyed by (method, path)."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"msg": "not found"})
        return handler(request) if callable(handler) else handler

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


def make_client(test_settings, gotrue: GoTrueStub) -> TestClient:
    http = httpx.AsyncClient(
        base_url=test_settings.supabase_url, transport=httpx.MockTransport(gotrue)
    )
    provider = SupabaseAuthClient.from_settings(test_settings, client=http)
    return TestClient(create_app(test_settings, provider))


def set_cookie_for(response, name: str) -> list[str]:
    return [h for h in response.headers.get_list("set-cookie") if h.startswith(f"{name}=")]


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": "1.0.0"}


class TestSignOut:
    """Tests for POST /api/auth/sign-out."""

    def test_sign_out_revokes_and_expires_session(self, test_settings, codec, session_cookie_value):
        gotrue = GoTrueStub(
            {
                ("GET", "/auth/v1/user"): httpx.Response(200, json=USER),
                ("POST", "/auth/v1/logout"): httpx.Response(204),
            }
        )
        client = make_client(test_settings, gotrue)
        session_cookie = codec.encode_value(session_cookie_value, EncodingTag.BASE64URL)

        response = client.post(
            "/api/auth/sign-out",
            headers={"Cookie": f"theme=dark; {STORAGE_KEY}={session_cookie}"},
        )

        assert response.status_code == 200
        assert response.json() == {"status": "signed_out", "cleared": [STORAGE_KEY]}
        assert gotrue.paths() == ["/auth/v1/user", "/auth/v1/logout"]
        assert gotrue.requests[1].headers["authorization"] == "Bearer access-123"

        expiries = set_cookie_for(response, STORAGE_KEY)
        assert len(expiries) == 1
        assert "01 Jan 1970" in expiries[0]
        assert set_cookie_for(response, "theme") == []

    def test_sign_out_without_session(self, test_settings):
        gotrue = GoTrueStub({})
        client = make_client(test_settings, gotrue)

        response = client.post("/api/auth/sign-out")

        assert response.status_code == 200
        assert response.json()["cleared"] == [STORAGE_KEY]
        assert gotrue.requests == []

    def test_provider_outage_does_not_block_sign_out(self, test_settings, session_cookie_value, codec):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        gotrue = GoTrueStub(
            {
                ("GET", "/auth/v1/user"): httpx.Response(200, json=USER),
                ("POST", "/auth/v1/logout"): unreachable,
            }
        )
        client = make_client(test_settings, gotrue)
        session_cookie = codec.encode_value(session_cookie_value, EncodingTag.BASE64URL)

        response = client.post(
            "/api/auth/sign-out", headers={"Cookie": f"{STORAGE_KEY}={session_cookie}"}
        )

        assert response.status_code == 200
        assert len(set_cookie_for(response, STORAGE_KEY)) == 1


class TestAuthCallback:
    """Tests for GET /auth/callback."""

    def new_session(self) -> dict:
        return {
            "access_token": "access-789",
            "refresh_token": "refresh-789",
            "expires_in": 3600,
            "user": USER,
        }

    def test_code_exchange_sets_session(self, test_settings, codec):
        gotrue = GoTrueStub({("POST", "/auth/v1/token"): httpx.Response(200, json=self.new_session())})
        client = make_client(test_settings, gotrue)
        verifier = codec.encode_value(json.dumps("verifier-1"), EncodingTag.BASE64URL)

        response = client.get(
            "/auth/callback",
            params={"code": "code-1", "next": "/es/panel"},
            headers={"Cookie": f"{VERIFIER_COOKIE}={verifier}"},
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/es/panel"
        assert gotrue.requests[0].url.params["grant_type"] == "pkce"
        assert json.loads(gotrue.requests[0].content) == {
            "auth_code": "code-1",
            "code_verifier": "verifier-1",
        }

        session_cookie = set_cookie_for(response, STORAGE_KEY)
        assert len(session_cookie) == 1
        assert session_cookie[0].startswith(f"{STORAGE_KEY}=base64url-")
        verifier_cookie = set_cookie_for(response, VERIFIER_COOKIE)
        assert len(verifier_cookie) == 1
        assert "01 Jan 1970" in verifier_cookie[0]

    def test_unsafe_next_falls_back_to_default_locale(self, test_settings):
        gotrue = GoTrueStub({("POST", "/auth/v1/token"): httpx.Response(200, json=self.new_session())})
        client = make_client(test_settings, gotrue)

        response = client.get(
            "/auth/callback",
            params={"code": "code-1", "next": "//evil.example.com"},
            follow_redirects=False,
        )

        assert response.headers["location"] == "/en"

    def test_rejected_exchange_redirects_with_error(self, test_settings):
        gotrue = GoTrueStub(
            {
                ("POST", "/auth/v1/token"): httpx.Response(
                    400, json={"error_description": "invalid flow state"}
                )
            }
        )
        client = make_client(test_settings, gotrue)

        response = client.get("/auth/callback?code=code-1", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/en/auth?error=invalid+flow+state"
        assert set_cookie_for(response, STORAGE_KEY) == []

    def test_transport_error_redirects_with_error(self, test_settings):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(test_settings, GoTrueStub({("POST", "/auth/v1/token"): unreachable}))

        response = client.get("/auth/callback?code=code-1", follow_redirects=False)

        assert response.headers["location"] == "/en/auth?error=exchange_failed"

    def test_missing_code(self, test_settings):
        gotrue = GoTrueStub({})
        client = make_client(test_settings, gotrue)

        response = client.get("/auth/callback", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/en/auth?error=missing_code"
        assert gotrue.requests == []


class TestPages:
    def test_unsupported_locale_segment_is_redirected(self, client):
        response = client.get("/fr/news", headers={"Cookie": "NEXT_LOCALE=en"}, follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/en/fr/news"

    def test_page_context(self, client):
        response = client.get("/en/cursos/python", headers={"Cookie": "NEXT_LOCALE=en"})

        assert response.status_code == 200
        assert response.json()["path"] == "/cursos/python"
