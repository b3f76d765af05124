"""
API Schemas
-----------
Pydantic response models for the edge routes.
"""

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    status: str = "ok"
    version: str


class SessionStatus(BaseModel):
    """Session view of the current request, as left by the gateway."""

    locale: str
    authenticated: bool = False
    user_id: str | None = None
    refresh_succeeded: bool = False
    error: str | None = None
    cookies: list[str] = Field(
        default_factory=list,
        description="Names of the sanitized cookies (values are never returned)",
    )


class SignOutResult(BaseModel):
    status: str = "signed_out"
    cleared: list[str] = Field(default_factory=list)


class PageContext(BaseModel):
    locale: str
    path: str
    authenticated: bool = False
    user_id: str | None = None
