"""
Cookie and Session Models
-------------------------
Per-request value types shared by the codec, the repair pass and the
session refresh invocation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from urllib.parse import quote

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# RFC 6265 cookie-octet
_COOKIE_OCTETS = frozenset(
    chr(c)
    for c in range(0x21, 0x7F)
    if chr(c) not in {'"', ",", ";", "\\"}
)


class EncodingTag(str, Enum):
    """Transport encoding marker detected on a cookie value."""

    NONE = "none"
    BASE64 = "base64"
    BASE64URL = "base64url"


class RepairStatus(str, Enum):
    HEALTHY = "healthy"
    REPAIRED = "repaired"
    EXPIRE = "expire"


@dataclass(frozen=True, slots=True)
class CookieEntry:
    """A cookie as received on the request. Never mutated."""

    name: str
    raw_value: str
    is_auth_related: bool = False
    encoding_tag: EncodingTag = EncodingTag.NONE


@dataclass(frozen=True, slots=True)
class DecodeResult:
    ok: bool
    value: str | None = None
    was_json: bool = False

    @classmethod
    def failure(cls) -> "DecodeResult":
        return cls(ok=False)


@dataclass(frozen=True, slots=True)
class CookieOptions:
    path: str = "/"
    expires: datetime | None = None
    max_age: int | None = None
    domain: str | None = None
    secure: bool = True
    httponly: bool = False
    samesite: str | None = "lax"


@dataclass(frozen=True, slots=True)
class CookieMutation:
    """A single Set-Cookie instruction for the outbound response."""

    name: str
    value: str
    options: CookieOptions = field(default_factory=CookieOptions)

    @classmethod
    def expire(
        cls,
        name: str,
        *,
        path: str = "/",
        secure: bool = True,
        samesite: str = "lax",
    ) -> "CookieMutation":
        """Build the discard form of a cookie: empty value, expired at the epoch."""
        return cls(
            name=name,
            value="",
            options=CookieOptions(
                path=path, expires=EPOCH, secure=secure, samesite=samesite
            ),
        )

    @property
    def is_expiry(self) -> bool:
        return self.value == "" and self.options.expires == EPOCH


@dataclass(frozen=True, slots=True)
class RepairOutcome:
    entry: CookieEntry
    status: RepairStatus
    repaired_value: str | None = None

    def __post_init__(self):
        if (self.status is RepairStatus.REPAIRED) != (self.repaired_value is not None):
            raise ValueError("repaired_value is required for, and only for, repaired outcomes")


def cookie_safe(value: str) -> str:
    """Percent-encode a value unless it is already a valid cookie-octet string."""
    if all(ch in _COOKIE_OCTETS for ch in value):
        return value
    return quote(value, safe="!~*'()")


@dataclass(frozen=True, slots=True)
class SanitizedCookieSet:
    """Ordered (name, value) pairs presented to the auth provider and handlers."""

    pairs: tuple[tuple[str, str], ...] = ()

    def __iter__(self):
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def __contains__(self, name: object) -> bool:
        return any(n == name for n, _ in self.pairs)

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the value for ``name``; the last duplicate wins."""
        value = default
        for n, v in self.pairs:
            if n == name:
                value = v
        return value

    def names(self) -> list[str]:
        return [n for n, _ in self.pairs]

    def as_dict(self) -> dict[str, str]:
        return dict(self.pairs)


@dataclass(slots=True)
class RepairReport:
    outcomes: list[RepairOutcome] = field(default_factory=list)
    sanitized: SanitizedCookieSet = field(default_factory=SanitizedCookieSet)
    expiry_directives: list[CookieMutation] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any(o.status is not RepairStatus.HEALTHY for o in self.outcomes)

    def counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in RepairStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    def cookie_header(self) -> str:
        """Cookie header for downstream handlers.

        Healthy cookies keep their raw value byte for byte; only repaired
        values are percent-encoded. Expired cookies are left out.
        """
        parts = []
        for outcome in self.outcomes:
            name = outcome.entry.name
            if outcome.status is RepairStatus.HEALTHY:
                parts.append(f"{name}={outcome.entry.raw_value}")
            elif outcome.status is RepairStatus.REPAIRED:
                parts.append(f"{name}={cookie_safe(outcome.repaired_value)}")
        return "; ".join(parts)


@dataclass(slots=True)
class AuthResponse:
    """What an auth provider reports for one validate/refresh call."""

    user: dict | None = None
    error: str | None = None
    cookies_to_set: list[CookieMutation] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SessionRefreshResult:
    refresh_succeeded: bool
    authenticated_user_id: str | None = None
    error_message: str | None = None
    cookies_to_set: tuple[CookieMutation, ...] = ()

    def __post_init__(self):
        if not self.refresh_succeeded and self.authenticated_user_id is not None:
            raise ValueError("a failed refresh cannot carry an authenticated user")

    @classmethod
    def failed(
        cls, message: str, cookies_to_set: tuple[CookieMutation, ...] = ()
    ) -> "SessionRefreshResult":
        return cls(
            refresh_succeeded=False,
            error_message=message,
            cookies_to_set=cookies_to_set,
        )

    @property
    def authenticated(self) -> bool:
        return self.authenticated_user_id is not None
