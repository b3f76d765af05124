"""
Session Refresh Invocation
--------------------------
Asks the auth provider to validate/refresh the session from the sanitized
cookie set. Provider failures degrade to an unauthenticated request.
"""

import asyncio
import logging
from typing import Protocol

from app.models import AuthResponse, SanitizedCookieSet, SessionRefreshResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class AuthProvider(Protocol):
    async def validate_or_refresh_session(
        self, cookies: SanitizedCookieSet
    ) -> AuthResponse: ...


async def refresh_session(
    provider: AuthProvider,
    cookies: SanitizedCookieSet,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> SessionRefreshResult:
    """Validate or refresh the session, never raising.

    A timeout is handled exactly like a provider error.
    """
    try:
        response = await asyncio.wait_for(
            provider.validate_or_refresh_session(cookies), timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning(f"Session refresh timed out after {timeout:.1f}s")
        return SessionRefreshResult.failed(f"Auth provider timed out after {timeout}s")
    except Exception as e:
        logger.warning(f"Session refresh failed: {e}")
        return SessionRefreshResult.failed(str(e) or e.__class__.__name__)

    try:
        return _to_result(response)
    except Exception as e:
        logger.warning(f"Unexpected auth provider response: {e}")
        return SessionRefreshResult.failed("Unexpected auth provider response")


def _to_result(response: AuthResponse) -> SessionRefreshResult:
    cookies_to_set = tuple(response.cookies_to_set)

    if response.error:
        logger.warning(f"Session refresh failed: {response.error}")
        return SessionRefreshResult.failed(response.error, cookies_to_set)

    user = response.user
    if user is not None and not isinstance(user, dict):
        raise TypeError(f"user must be a mapping, got {type(user).__name__}")

    user_id = user.get("id") if user else None
    if user_id:
        logger.info(f"Session refreshed for user {user_id}")
    else:
        logger.info("No active session")

    return SessionRefreshResult(
        refresh_succeeded=True,
        authenticated_user_id=str(user_id) if user_id else None,
        cookies_to_set=cookies_to_set,
    )
