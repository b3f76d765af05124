"""
Supabase Auth Client
--------------------
AuthProvider backed by the Supabase (GoTrue) REST API. Reads the session
from the ``sb-<project-ref>-auth-token`` cookie, validates the access token
and refreshes it when needed.
"""

import json
import logging
import time
from urllib.parse import unquote

import httpx

from app.models import (
    AuthResponse,
    CookieMutation,
    CookieOptions,
    EncodingTag,
    SanitizedCookieSet,
    cookie_safe,
)
from app.services.cookie_codec import CookieCodec

logger = logging.getLogger(__name__)


class AuthProviderError(Exception):
    """Raised when the auth provider rejects an explicit request."""


class SupabaseAuthClient:
    """Async GoTrue client used for session validation, refresh and code exchange.

    The HTTP client is created on first use unless one is injected, so tests
    can pass an ``httpx.AsyncClient`` with a mock transport.
    """

    # Refresh slightly before the token actually expires
    REFRESH_MARGIN_SECONDS = 10
    # Browsers drop cookies over ~4096 bytes including name and attributes
    MAX_CHUNK_SIZE = 3180

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        storage_key: str,
        codec: CookieCodec | None = None,
        cookie_encoding: str = "base64url",
        cookie_max_age: int | None = None,
        secure: bool = True,
        samesite: str = "lax",
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.storage_key = storage_key
        self.codec = codec or CookieCodec()
        self.cookie_encoding = cookie_encoding
        self.cookie_max_age = cookie_max_age
        self.secure = secure
        self.samesite = samesite
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings, client: httpx.AsyncClient | None = None) -> "SupabaseAuthClient":
        return cls(
            settings.supabase_url,
            settings.supabase_anon_key,
            storage_key=settings.session_storage_key,
            codec=CookieCodec.from_settings(settings),
            cookie_encoding=settings.session_cookie_encoding,
            cookie_max_age=settings.session_cookie_max_age,
            secure=settings.cookie_secure,
            samesite=settings.cookie_samesite,
            timeout=settings.auth_timeout_seconds,
            client=client,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def code_verifier_cookie(self) -> str:
        return f"{self.storage_key}-code-verifier"

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.anon_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    # ----- Session cookie handling -----

    def _session_cookie_names(self, cookies: SanitizedCookieSet) -> list[str]:
        """Storage key itself, or its ``.0``, ``.1``... chunks in index order."""
        if self.storage_key in cookies:
            return [self.storage_key]
        names = []
        index = 0
        while f"{self.storage_key}.{index}" in cookies:
            names.append(f"{self.storage_key}.{index}")
            index += 1
        return names

    def _stored_cookie_names(self, cookies: SanitizedCookieSet) -> list[str]:
        """Every cookie holding (part of) the session, chunk gaps included."""
        chunk_prefix = f"{self.storage_key}."
        names = []
        for name in cookies.names():
            is_chunk = name.startswith(chunk_prefix) and name[len(chunk_prefix):].isdigit()
            if (name == self.storage_key or is_chunk) and name not in names:
                names.append(name)
        return names

    def read_session_value(self, cookies: SanitizedCookieSet) -> str | None:
        names = self._session_cookie_names(cookies)
        if not names:
            return None
        values = [cookies.get(name) or "" for name in names]
        if len(values) > 1 and values[0].startswith("{"):
            # First chunk already decoded by the repair pass, the rest are
            # still bare base64url payloads
            tail = [self.codec.decode_payload(value) for value in values[1:]]
            if all(part.ok for part in tail):
                return values[0] + "".join(part.value for part in tail)
        return "".join(values)

    def parse_session(self, value: str) -> dict:
        """Parse a session cookie value into the session dict.

        Raises:
            ValueError: If the value holds no usable session.
        """
        candidates = [value]
        unquoted = unquote(value)
        if unquoted != value:
            candidates.append(unquoted)
        tag = self.codec.detect_encoding(value)
        if tag is not EncodingTag.NONE:
            decoded = self.codec.attempt_decode(value, tag)
            if decoded.ok:
                candidates.insert(0, decoded.value)

        for candidate in candidates:
            try:
                data = json.loads(candidate)
            except ValueError:
                continue
            if isinstance(data, dict) and data.get("access_token"):
                return data
        raise ValueError("Session cookie does not contain a session")

    def _is_expired(self, session: dict) -> bool:
        expires_at = session.get("expires_at")
        if not isinstance(expires_at, (int, float)):
            return False
        return expires_at <= time.time() + self.REFRESH_MARGIN_SECONDS

    def session_cookie_mutations(
        self, session: dict, existing: SanitizedCookieSet | None = None
    ) -> list[CookieMutation]:
        """Cookie writes that persist ``session`` under the storage key.

        Values longer than ``MAX_CHUNK_SIZE`` are split into ``<key>.0``,
        ``<key>.1``... cookies. Leftover cookies from a previous layout
        (single key or extra chunks) are expired.
        """
        payload = json.dumps(session, separators=(",", ":"))
        if self.cookie_encoding == "base64url":
            value = self.codec.encode_value(payload, EncodingTag.BASE64URL)
            chunks = self._chunk_base64(value, self.codec.prefix_for(EncodingTag.BASE64URL))
        else:
            value = cookie_safe(payload)
            chunks = [
                value[i:i + self.MAX_CHUNK_SIZE]
                for i in range(0, len(value), self.MAX_CHUNK_SIZE)
            ]

        options = CookieOptions(
            path="/",
            max_age=self.cookie_max_age,
            secure=self.secure,
            samesite=self.samesite,
        )
        if len(chunks) == 1:
            written = {self.storage_key: chunks[0]}
        else:
            written = {f"{self.storage_key}.{i}": chunk for i, chunk in enumerate(chunks)}

        mutations = [
            CookieMutation(name=name, value=chunk, options=options)
            for name, chunk in written.items()
        ]
        if existing is not None:
            for name in self._stored_cookie_names(existing):
                if name not in written:
                    mutations.append(self._expire(name))
        return mutations

    def _chunk_base64(self, value: str, prefix: str) -> list[str]:
        """Split on 4-character boundaries so each chunk decodes on its own."""
        if len(value) <= self.MAX_CHUNK_SIZE:
            return [value]
        payload = value[len(prefix):]
        size = self.MAX_CHUNK_SIZE - self.MAX_CHUNK_SIZE % 4
        first = (self.MAX_CHUNK_SIZE - len(prefix)) // 4 * 4
        chunks = [prefix + payload[:first]]
        chunks.extend(payload[i:i + size] for i in range(first, len(payload), size))
        return chunks

    def clear_session_mutations(self, cookies: SanitizedCookieSet) -> list[CookieMutation]:
        names = self._stored_cookie_names(cookies) or [self.storage_key]
        return [self._expire(name) for name in names]

    def _expire(self, name: str) -> CookieMutation:
        return CookieMutation.expire(name, secure=self.secure, samesite=self.samesite)

    @staticmethod
    def _with_expires_at(session: dict) -> dict:
        if "expires_at" not in session and isinstance(session.get("expires_in"), (int, float)):
            session = session | {"expires_at": int(time.time() + session["expires_in"])}
        return session

    @staticmethod
    def _error_text(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(
                body.get("error_description")
                or body.get("msg")
                or body.get("message")
                or body.get("error")
                or f"HTTP {response.status_code}"
            )
        return f"HTTP {response.status_code}"

    # ----- Provider calls -----

    async def get_user(self, access_token: str) -> dict | None:
        """Return the user for ``access_token``, or None if the token is rejected."""
        response = await self.client.get("/auth/v1/user", headers=self._headers(access_token))
        if response.status_code in (401, 403):
            return None
        response.raise_for_status()
        return response.json()

    async def _refresh(self, session: dict, cookies: SanitizedCookieSet) -> AuthResponse:
        response = await self.client.post(
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": session["refresh_token"]},
            headers=self._headers(),
        )
        if response.status_code in (400, 401, 403):
            return AuthResponse(
                error=f"Refresh token rejected: {self._error_text(response)}",
                cookies_to_set=self.clear_session_mutations(cookies),
            )
        response.raise_for_status()
        new_session = self._with_expires_at(response.json())
        return AuthResponse(
            user=new_session.get("user"),
            cookies_to_set=self.session_cookie_mutations(new_session, cookies),
        )

    async def validate_or_refresh_session(self, cookies: SanitizedCookieSet) -> AuthResponse:
        """Validate the session cookie, refreshing it when expired or rejected.

        No session cookie is an anonymous request, not an error. Transport
        and unexpected HTTP errors propagate to the caller.
        """
        raw = self.read_session_value(cookies)
        if raw is None:
            return AuthResponse()

        try:
            session = self.parse_session(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable session cookie {self.storage_key}")
            return AuthResponse(cookies_to_set=self.clear_session_mutations(cookies))

        if self._is_expired(session) and session.get("refresh_token"):
            return await self._refresh(session, cookies)

        user = await self.get_user(session["access_token"])
        if user is not None:
            return AuthResponse(user=user)

        if session.get("refresh_token"):
            return await self._refresh(session, cookies)
        return AuthResponse(
            error="Access token rejected",
            cookies_to_set=self.clear_session_mutations(cookies),
        )

    async def exchange_code_for_session(self, code: str, code_verifier: str | None) -> dict:
        """Exchange an OAuth PKCE authorization code for a session.

        Raises:
            AuthProviderError: If the provider rejects the exchange.
        """
        response = await self.client.post(
            "/auth/v1/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier or ""},
            headers=self._headers(),
        )
        if response.status_code >= 400:
            raise AuthProviderError(self._error_text(response))
        return self._with_expires_at(response.json())

    async def sign_out(self, access_token: str) -> bool:
        """Revoke the session at the provider. Best effort."""
        try:
            response = await self.client.post(
                "/auth/v1/logout", headers=self._headers(access_token)
            )
        except httpx.HTTPError as e:
            logger.warning(f"Provider sign-out failed: {e}")
            return False
        if response.status_code >= 400 and response.status_code not in (401, 404):
            logger.warning(f"Provider sign-out returned HTTP {response.status_code}")
            return False
        return True
