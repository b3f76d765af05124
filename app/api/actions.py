"""
Actions API Routes
------------------
POST endpoints for triggering session operations.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from app.api.deps import (
    SessionContext,
    get_auth_provider,
    get_cookie_store,
    get_session_context,
    get_settings,
)
from app.core import Settings
from app.models import CookieMutation, SignOutResult
from app.services import StarletteCookieStore, SupabaseAuthClient

router = APIRouter(prefix="/api", tags=["Actions"])
logger = logging.getLogger(__name__)


def _access_token(provider: SupabaseAuthClient, ctx: SessionContext) -> str | None:
    raw = provider.read_session_value(ctx.cookies)
    if raw is None:
        return None
    try:
        return provider.parse_session(raw).get("access_token")
    except ValueError:
        return None


@router.post("/auth/sign-out", response_model=SignOutResult)
async def api_sign_out(
    request: Request,
    response: Response,
    ctx: SessionContext = Depends(get_session_context),
    provider: SupabaseAuthClient = Depends(get_auth_provider),
    cookie_store: StarletteCookieStore = Depends(get_cookie_store),
    settings: Settings = Depends(get_settings),
):
    """Sign out: revoke the session at the provider and expire auth cookies.

    Provider failures are logged and never fail the sign-out; the cookies are
    cleared regardless.
    """
    access_token = _access_token(provider, ctx)
    if access_token:
        try:
            await provider.sign_out(access_token)
        except Exception:
            logger.exception("Unexpected error revoking session at provider")

    cleared: list[str] = []
    for entry in cookie_store.read_all(request):
        if entry.is_auth_related and entry.name not in cleared:
            cleared.append(entry.name)
    if provider.storage_key not in cleared:
        cleared.append(provider.storage_key)

    cookie_store.write_all(
        response,
        [
            CookieMutation.expire(
                name, secure=settings.cookie_secure, samesite=settings.cookie_samesite
            )
            for name in cleared
        ],
    )
    logger.info(f"Signed out, cleared {len(cleared)} auth cookie(s)")
    return SignOutResult(cleared=cleared)
