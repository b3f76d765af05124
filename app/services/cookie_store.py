"""
Cookie Store Adapter
--------------------
Uniform read of request cookies and write of response cookie mutations.
"""

import logging
from collections.abc import Iterable, Sequence
from http.cookies import CookieError
from typing import Protocol

from starlette.requests import HTTPConnection
from starlette.responses import Response

from app.models import CookieEntry, CookieMutation
from app.services.cookie_codec import CookieCodec

logger = logging.getLogger(__name__)


class CookieStore(Protocol):
    """The two cookie operations the gateway needs from a transport."""

    def read_all(self, request) -> list[CookieEntry]: ...

    def write_all(self, response, mutations: Iterable[CookieMutation]) -> None: ...


def parse_cookie_header(header: str) -> list[tuple[str, str]]:
    """Split a ``Cookie`` header into (name, value) pairs.

    Order and duplicate names are preserved. Surrounding double quotes are
    removed from values; nothing else is unescaped.
    """
    pairs: list[tuple[str, str]] = []
    for chunk in header.split(";"):
        if "=" in chunk:
            name, value = chunk.split("=", 1)
        else:
            # Browsers send "a" for a cookie with an empty name
            name, value = "", chunk
        name, value = name.strip(), value.strip()
        if not name and not value:
            continue
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        pairs.append((name, value))
    return pairs


def is_auth_cookie(name: str, markers: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(marker.lower() in lowered for marker in markers)


class StarletteCookieStore:
    """CookieStore for Starlette / FastAPI requests and responses.

    Args:
        codec: Codec used to tag each entry with its detected encoding.
        auth_markers: Name fragments that mark a cookie as auth-related.
    """

    def __init__(self, codec: CookieCodec, auth_markers: Sequence[str] = ()):
        self.codec = codec
        self.auth_markers = list(auth_markers)

    @classmethod
    def from_settings(cls, settings, codec: CookieCodec | None = None) -> "StarletteCookieStore":
        return cls(codec or CookieCodec.from_settings(settings), settings.auth_cookie_markers)

    def read_all(self, request: HTTPConnection) -> list[CookieEntry]:
        """Entries in the order the client sent them, duplicates included."""
        entries = []
        for header in request.headers.getlist("cookie"):
            for name, value in parse_cookie_header(header):
                entries.append(
                    CookieEntry(
                        name=name,
                        raw_value=value,
                        is_auth_related=is_auth_cookie(name, self.auth_markers),
                        encoding_tag=self.codec.detect_encoding(value),
                    )
                )
        return entries

    def write_all(self, response: Response, mutations: Iterable[CookieMutation]) -> None:
        """Append one Set-Cookie header per mutation, in order."""
        for mutation in mutations:
            opts = mutation.options
            try:
                response.set_cookie(
                    key=mutation.name,
                    value=mutation.value,
                    max_age=opts.max_age,
                    expires=opts.expires,
                    path=opts.path,
                    domain=opts.domain,
                    secure=opts.secure,
                    httponly=opts.httponly,
                    samesite=opts.samesite,
                )
            except CookieError:
                logger.warning(f"Skipping Set-Cookie with illegal name: {mutation.name!r}")
                continue
            suffix = " (expire)" if mutation.is_expiry else ""
            logger.debug(f"Queued Set-Cookie for {mutation.name}{suffix}")
