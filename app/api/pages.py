"""
Localized Page Routes
---------------------
Placeholder for the localized pages served under ``/<locale>/``.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import SessionContext, get_session_context, get_settings
from app.core import Settings
from app.models import PageContext

router = APIRouter(tags=["Pages"])


def _page(locale: str, path: str, ctx: SessionContext, settings: Settings) -> PageContext:
    if locale not in settings.supported_locales:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return PageContext(
        locale=locale,
        path=path,
        authenticated=ctx.refresh.authenticated,
        user_id=ctx.user_id,
    )


@router.get("/{locale}", response_model=PageContext)
async def locale_home(
    locale: str,
    ctx: SessionContext = Depends(get_session_context),
    settings: Settings = Depends(get_settings),
):
    return _page(locale, "/", ctx, settings)


@router.get("/{locale}/{path:path}", response_model=PageContext)
async def locale_page(
    locale: str,
    path: str,
    ctx: SessionContext = Depends(get_session_context),
    settings: Settings = Depends(get_settings),
):
    return _page(locale, f"/{path}", ctx, settings)
