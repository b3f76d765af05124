"""Service layer exports."""

from .cookie_codec import CookieCodec
from .cookie_store import CookieStore, StarletteCookieStore, parse_cookie_header
from .locale import LocaleDecision, negotiate_locale
from .session_refresh import AuthProvider, refresh_session
from .session_repair import classify_cookie, repair_cookies
from .supabase_auth import AuthProviderError, SupabaseAuthClient

__all__ = [
    "CookieCodec",
    "CookieStore",
    "StarletteCookieStore",
    "parse_cookie_header",
    "LocaleDecision",
    "negotiate_locale",
    "AuthProvider",
    "refresh_session",
    "classify_cookie",
    "repair_cookies",
    "AuthProviderError",
    "SupabaseAuthClient",
]
