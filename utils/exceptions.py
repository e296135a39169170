"""
Error taxonomy shared by the security helpers, the session stores and the auth service.

Every error carries a human readable message and optional details. ``status`` and
``code`` are what api/errors.py uses to build the JSON envelope.
"""
from __future__ import annotations


class AuthError(Exception):
    """Base class for all authentication errors."""

    status = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInput(AuthError):
    """An argument has the wrong type or shape for a low level call."""

    code = "INVALID_INPUT"


class ValidationError(AuthError):
    """User supplied input failed a schema rule. The message names the rule."""

    status = 422
    code = "VALIDATION_ERROR"


class Conflict(AuthError):
    """A user with this email already exists."""

    status = 409
    code = "CONFLICT"


class AuthenticationError(AuthError):
    """Bad credentials. Never says which check failed."""

    status = 401
    code = "UNAUTHORIZED"


class TokenInvalid(AuthError):
    """Signature, format, expiry or kind check failed."""

    status = 401
    code = "INVALID_TOKEN"


class SessionRevoked(AuthError):
    """The store says the refresh token is not live; all user sessions were revoked."""

    status = 401
    code = "SESSION_REVOKED"


class ConfigError(AuthError):
    """A signing secret is missing or too short."""

    status = 500
    code = "CONFIG_ERROR"
