"""
Application Configuration
-------------------------
Central configuration and settings for the application.
"""

import json
from typing import Annotated, Any
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Lists that may come from the environment as "a,b,c"
CommaList = Annotated[list[str], NoDecode]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    app_name: str = "Session Gateway"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    port: int = 8000

    # Auth provider
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""
    auth_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for the session refresh call",
    )

    # Session cookie written by the auth provider client
    session_cookie_name: str | None = Field(
        default=None,
        description="Override for the sb-<project-ref>-auth-token storage key",
    )
    session_cookie_encoding: str = "base64url"
    session_cookie_max_age: int = 400 * 24 * 60 * 60

    # Cookie repair
    cookie_encoding_prefixes: dict[str, str] = {
        "base64-": "base64",
        "base64url-": "base64url",
    }
    auth_cookie_markers: CommaList = ["sb-", "auth", "supabase"]
    cookie_secure: bool = True
    cookie_samesite: str = "lax"

    # Locale routing
    supported_locales: CommaList = ["en", "es"]
    default_locale: str = "en"
    locale_cookie_name: str = "NEXT_LOCALE"
    locale_cookie_max_age: int = 365 * 24 * 60 * 60
    locale_exempt_prefixes: CommaList = ["/api", "/static", "/favicon.ico"]
    gateway_excluded_paths: CommaList = ["/auth/callback"]

    @field_validator("debug", "cookie_secure", mode="before")
    @classmethod
    def validate_bool(cls, v):
        """Convert string environment variable to boolean (case-insensitive)."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower() == "true"
        return bool(v)

    @field_validator(
        "auth_cookie_markers",
        "supported_locales",
        "locale_exempt_prefixes",
        "gateway_excluded_paths",
        mode="before",
    )
    @classmethod
    def parse_comma_separated(cls, v: Any) -> list[str]:
        """Accept comma-separated strings as well as lists."""
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("cookie_samesite")
    @classmethod
    def validate_samesite(cls, v: str) -> str:
        v = v.lower()
        if v not in ("lax", "strict", "none"):
            raise ValueError("cookie_samesite must be one of lax, strict, none")
        return v

    @field_validator("session_cookie_encoding")
    @classmethod
    def validate_session_encoding(cls, v: str) -> str:
        v = v.lower()
        if v not in ("base64url", "raw"):
            raise ValueError("session_cookie_encoding must be base64url or raw")
        return v

    @model_validator(mode="after")
    def check_locales(self) -> "Settings":
        if not self.supported_locales:
            raise ValueError("supported_locales must not be empty")
        if self.default_locale not in self.supported_locales:
            raise ValueError(
                f"default_locale {self.default_locale!r} is not in supported_locales"
            )
        return self

    @property
    def supabase_project_ref(self) -> str:
        """First label of the Supabase host, e.g. ``abcd`` for abcd.supabase.co."""
        hostname = urlparse(self.supabase_url).hostname or "localhost"
        return hostname.split(".")[0]

    @property
    def session_storage_key(self) -> str:
        return self.session_cookie_name or f"sb-{self.supabase_project_ref}-auth-token"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
