"""Middleware exports."""

from .session_gateway import SessionGatewayMiddleware

__all__ = ["SessionGatewayMiddleware"]
