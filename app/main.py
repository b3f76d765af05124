"""
Application Entry Point
-----------------------
FastAPI application factory.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from app.api import actions, auth, pages, status
from app.core import Settings, settings
from app.middleware import SessionGatewayMiddleware
from app.services import CookieCodec, StarletteCookieStore, SupabaseAuthClient
from app.services.session_refresh import AuthProvider

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    app_settings: Settings | None = None,
    auth_provider: AuthProvider | None = None,
) -> FastAPI:
    """Create the application.

    Args:
        app_settings: Settings to use instead of the global instance.
        auth_provider: Provider for session refresh; defaults to a
            SupabaseAuthClient built from the settings.
    """
    app_settings = app_settings or settings
    configure_logging(app_settings.log_level)

    provider = auth_provider or SupabaseAuthClient.from_settings(app_settings)
    cookie_store = StarletteCookieStore(
        CookieCodec.from_settings(app_settings), app_settings.auth_cookie_markers
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{app_settings.app_name} {app_settings.app_version} starting")
        logger.info(f"Auth provider: {app_settings.supabase_url}")
        logger.info(
            f"Locales: {app_settings.supported_locales} (default {app_settings.default_locale})"
        )
        if not app_settings.supabase_anon_key:
            logger.warning("SUPABASE_ANON_KEY is not set; session refresh will be rejected")
        yield
        aclose = getattr(provider, "aclose", None)
        if aclose is not None:
            await aclose()

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.auth_provider = provider
    app.state.cookie_store = cookie_store

    app.add_middleware(
        SessionGatewayMiddleware,
        auth_provider=provider,
        settings=app_settings,
        cookie_store=cookie_store,
    )

    app.include_router(status.router)
    app.include_router(actions.router)
    app.include_router(auth.router)
    app.include_router(pages.router)
    return app


def main() -> None:
    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
