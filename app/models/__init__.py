"""Model exports."""

from .cookies import (
    EPOCH,
    AuthResponse,
    CookieEntry,
    CookieMutation,
    CookieOptions,
    DecodeResult,
    EncodingTag,
    RepairOutcome,
    RepairReport,
    RepairStatus,
    SanitizedCookieSet,
    SessionRefreshResult,
    cookie_safe,
)
from .schemas import HealthStatus, PageContext, SessionStatus, SignOutResult

__all__ = [
    "EPOCH",
    "AuthResponse",
    "CookieEntry",
    "CookieMutation",
    "CookieOptions",
    "DecodeResult",
    "EncodingTag",
    "RepairOutcome",
    "RepairReport",
    "RepairStatus",
    "SanitizedCookieSet",
    "SessionRefreshResult",
    "cookie_safe",
    "HealthStatus",
    "PageContext",
    "SessionStatus",
    "SignOutResult",
]
