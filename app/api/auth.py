"""
OAuth Callback Route
--------------------
Completes the OAuth PKCE flow. This path is excluded from the session
gateway and writes the session cookies itself.
"""

import json
import logging
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from app.api.deps import get_auth_provider, get_cookie_store, get_settings
from app.core import Settings
from app.models import CookieMutation, EncodingTag, SanitizedCookieSet
from app.services import AuthProviderError, StarletteCookieStore, SupabaseAuthClient

router = APIRouter(tags=["Auth"])
logger = logging.getLogger(__name__)


def _safe_next(next_path: str | None, fallback: str) -> str:
    """Only same-site relative paths are accepted as post-login targets."""
    if not next_path or not next_path.startswith("/"):
        return fallback
    if next_path.startswith("//") or "\\" in next_path:
        return fallback
    return next_path


def _read_code_verifier(request: Request, provider: SupabaseAuthClient) -> str | None:
    raw = request.cookies.get(provider.code_verifier_cookie)
    if not raw:
        return None
    tag = provider.codec.detect_encoding(raw)
    if tag is not EncodingTag.NONE:
        decoded = provider.codec.attempt_decode(raw, tag)
        if not decoded.ok:
            return None
        raw = decoded.value
    # The verifier is usually stored JSON-encoded ("\"abc\"")
    try:
        value = json.loads(raw)
    except ValueError:
        return raw
    return value if isinstance(value, str) else raw


def _error_redirect(settings: Settings, message: str) -> RedirectResponse:
    query = urlencode({"error": message})
    return RedirectResponse(
        url=f"/{settings.default_locale}/auth?{query}",
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    code: str | None = None,
    next: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    provider: SupabaseAuthClient = Depends(get_auth_provider),
    cookie_store: StarletteCookieStore = Depends(get_cookie_store),
    settings: Settings = Depends(get_settings),
):
    """Exchange the authorization code for a session and redirect back."""
    if error or not code:
        message = error_description or error or "missing_code"
        logger.warning(f"OAuth callback without code: {message}")
        return _error_redirect(settings, message)

    verifier = _read_code_verifier(request, provider)
    try:
        session = await provider.exchange_code_for_session(code, verifier)
    except AuthProviderError as e:
        logger.warning(f"OAuth code exchange rejected: {e}")
        return _error_redirect(settings, str(e))
    except httpx.HTTPError:
        logger.exception("OAuth code exchange failed")
        return _error_redirect(settings, "exchange_failed")

    target = _safe_next(next, f"/{settings.default_locale}")
    response = RedirectResponse(url=target, status_code=status.HTTP_302_FOUND)
    existing = SanitizedCookieSet(tuple(request.cookies.items()))
    cookie_store.write_all(
        response,
        [
            *provider.session_cookie_mutations(session, existing),
            CookieMutation.expire(
                provider.code_verifier_cookie,
                secure=settings.cookie_secure,
                samesite=settings.cookie_samesite,
            ),
        ],
    )
    user_id = (session.get("user") or {}).get("id")
    logger.info(f"OAuth sign-in completed for user {user_id}")
    return response
