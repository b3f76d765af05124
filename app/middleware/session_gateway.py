"""
Session Gateway Middleware
--------------------------
Locale-aware router wrapper around the cookie repair pass and the session
refresh. Every matched request gets its cookies repaired and its session
refreshed before any locale redirect is returned, and the resulting cookie
mutations ride on whatever response goes out.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from app.core import Settings, settings as default_settings
from app.models import CookieMutation, CookieOptions, SessionRefreshResult
from app.services.cookie_codec import CookieCodec
from app.services.cookie_store import CookieStore, StarletteCookieStore
from app.services.locale import is_path_under, negotiate_locale
from app.services.session_refresh import AuthProvider, refresh_session
from app.services.session_repair import repair_cookies

logger = logging.getLogger(__name__)


def _set_cookie_names(response: Response) -> set[str]:
    names = set()
    for header in response.headers.getlist("set-cookie"):
        names.add(header.split("=", 1)[0].strip())
    return names


class SessionGatewayMiddleware(BaseHTTPMiddleware):
    """Repairs session cookies and refreshes the session on every request.

    Args:
        app: Downstream ASGI application.
        auth_provider: Provider used for the session refresh.
        settings: Application settings (defaults to the global instance).
        cookie_store: Transport adapter for reading/writing cookies.
    """

    def __init__(
        self,
        app: ASGIApp,
        auth_provider: AuthProvider,
        settings: Settings | None = None,
        cookie_store: CookieStore | None = None,
    ):
        super().__init__(app)
        self.settings = settings or default_settings
        self.codec = CookieCodec.from_settings(self.settings)
        self.cookie_store = cookie_store or StarletteCookieStore(
            self.codec, self.settings.auth_cookie_markers
        )
        self.auth_provider = auth_provider

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if is_path_under(path, self.settings.gateway_excluded_paths):
            # OAuth callback manages its own session exchange
            return await call_next(request)

        decision = negotiate_locale(
            path,
            request.url.query,
            request.cookies.get(self.settings.locale_cookie_name),
            request.headers.get("accept-language"),
            self.settings,
        )
        request.state.locale = decision.locale

        expiries: list[CookieMutation] = []
        session_writes: list[CookieMutation] = []
        try:
            expiries, session_writes = await self._sanitize_session(request)
        except Exception as e:
            logger.error(f"Session gateway error, passing request through: {e}", exc_info=True)
            request.state.session_refresh = SessionRefreshResult.failed(
                "Session gateway error"
            )

        if decision.is_redirect:
            logger.debug(f"Locale redirect {path} -> {decision.redirect_to}")
            response = RedirectResponse(decision.redirect_to, status_code=307)
        else:
            response = await call_next(request)

        # Cookies the handler set itself (e.g. sign-out) win over session writes
        handler_cookies = _set_cookie_names(response)
        mutations = expiries + [m for m in session_writes if m.name not in handler_cookies]
        if decision.persist_locale:
            mutations.append(self._locale_cookie(decision.locale))

        try:
            self.cookie_store.write_all(response, mutations)
        except Exception:
            logger.exception("Failed to apply cookie mutations")
        return response

    async def _sanitize_session(
        self, request: Request
    ) -> tuple[list[CookieMutation], list[CookieMutation]]:
        """Repair cookies, refresh the session and expose both to handlers.

        Returns:
            tuple: (expiry directives, provider session writes)
        """
        report = repair_cookies(
            self.cookie_store.read_all(request),
            self.codec,
            secure=self.settings.cookie_secure,
            samesite=self.settings.cookie_samesite,
        )
        if report.changed:
            logger.info(f"Cookie repair: {report.counts()}")
            self._rewrite_cookie_header(request, report.cookie_header())

        refresh = await refresh_session(
            self.auth_provider, report.sanitized, self.settings.auth_timeout_seconds
        )

        request.state.sanitized_cookies = report.sanitized
        request.state.session_refresh = refresh
        return list(report.expiry_directives), list(refresh.cookies_to_set)

    @staticmethod
    def _rewrite_cookie_header(request: Request, cookie_header: str) -> None:
        """Replace the Cookie header seen downstream with the sanitized one."""
        headers = [(k, v) for k, v in request.scope["headers"] if k != b"cookie"]
        if cookie_header:
            headers.append((b"cookie", cookie_header.encode("latin-1")))
        request.scope["headers"] = headers

    def _locale_cookie(self, locale: str) -> CookieMutation:
        return CookieMutation(
            name=self.settings.locale_cookie_name,
            value=locale,
            options=CookieOptions(
                path="/",
                max_age=self.settings.locale_cookie_max_age,
                secure=self.settings.cookie_secure,
                samesite=self.settings.cookie_samesite,
            ),
        )
