"""API router exports."""

from . import actions, auth, pages, status

__all__ = ["actions", "auth", "pages", "status"]
