"""
Status API Routes
-----------------
GET endpoints for checking service and session status.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import SessionContext, get_session_context, get_settings
from app.core import Settings
from app.models import HealthStatus, SessionStatus

router = APIRouter(prefix="/api", tags=["Status"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthStatus)
async def api_health(settings: Settings = Depends(get_settings)):
    """Liveness check."""
    return HealthStatus(version=settings.app_version)


@router.get("/session", response_model=SessionStatus)
async def api_session(ctx: SessionContext = Depends(get_session_context)):
    """Get the session state of the current request."""
    try:
        return SessionStatus(
            locale=ctx.locale,
            authenticated=ctx.refresh.authenticated,
            user_id=ctx.user_id,
            refresh_succeeded=ctx.refresh.refresh_succeeded,
            error=ctx.refresh.error_message,
            cookies=ctx.cookies.names(),
        )
    except Exception as e:
        logger.exception("Error getting session status")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get session status",
        ) from e
