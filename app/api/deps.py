"""
API Dependencies
----------------
Shared request context helpers for session-aware endpoints.
"""

from dataclasses import dataclass

from fastapi import Request

from app.core import Settings
from app.models import SanitizedCookieSet, SessionRefreshResult
from app.services import StarletteCookieStore, SupabaseAuthClient


@dataclass(slots=True)
class SessionContext:
    """Per-request session context left behind by the session gateway."""

    locale: str
    cookies: SanitizedCookieSet
    refresh: SessionRefreshResult

    @property
    def user_id(self) -> str | None:
        return self.refresh.authenticated_user_id


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_provider(request: Request) -> SupabaseAuthClient:
    return request.app.state.auth_provider


def get_cookie_store(request: Request) -> StarletteCookieStore:
    return request.app.state.cookie_store


def get_sanitized_cookies(request: Request) -> SanitizedCookieSet:
    """Sanitized cookies, or the raw ones when the gateway did not run."""
    cookies = getattr(request.state, "sanitized_cookies", None)
    if cookies is None:
        cookies = SanitizedCookieSet(tuple(request.cookies.items()))
    return cookies


def get_session_context(request: Request) -> SessionContext:
    """Build session context from the gateway's request state."""
    refresh = getattr(request.state, "session_refresh", None)
    if refresh is None:
        refresh = SessionRefreshResult.failed("Session was not checked for this request")
    locale = getattr(request.state, "locale", None) or get_settings(request).default_locale
    return SessionContext(
        locale=locale,
        cookies=get_sanitized_cookies(request),
        refresh=refresh,
    )
