"""
SessionStore: the persistence contract the auth service depends on.

Any backend (SQL, document, in-memory) can implement it. Two requirements go
beyond plain CRUD:

- revoke_refresh_token() is a compare-and-revoke. It returns True only for the one
  call that moved a live record to revoked, so two racing rotations of the same
  token cannot both succeed.
- save_refresh_token() on a previously revoked token string makes it live again
  (re-issuance). is_refresh_token_valid() never changes revocation state.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from marshmallow import ValidationError as SchemaError

from models.schemas.user import UserRecordSchema
from models.user import User
from utils.exceptions import InvalidInput

MIN_TOKEN_LENGTH = 10

_user_record_schema = UserRecordSchema()


class SessionStore(ABC):
    """Users plus the refresh-token lifecycle."""

    @abstractmethod
    def find_user_by_email(self, email: str) -> User | None:
        """Return the user with exactly this email, or None."""

    @abstractmethod
    def create_user(self, user_data: dict[str, Any]) -> User:
        """Create a user from email/hashed_password[/role]. Raises Conflict on duplicate email."""

    @abstractmethod
    def save_refresh_token(self, user_id: str, token: str, expires_at: datetime) -> None:
        """Persist the token as live, resetting a previous revocation."""

    @abstractmethod
    def is_refresh_token_valid(self, token: str) -> bool:
        """True only if present, not revoked and not expired."""

    @abstractmethod
    def revoke_refresh_token(self, token: str) -> bool:
        """Mark revoked. True only if this call transitioned a live record."""

    @abstractmethod
    def revoke_all_user_sessions(self, user_id: str) -> int:
        """Revoke every non-revoked token of the user. Returns how many were revoked."""


def load_user_data(user_data: Any) -> dict[str, Any]:
    """Validate create_user() input; role defaults to "user"."""
    if not isinstance(user_data, dict):
        raise InvalidInput("User data must be a mapping")
    data = {k: v for k, v in user_data.items() if v is not None}
    try:
        return _user_record_schema.load(data)
    except SchemaError as err:
        raise InvalidInput("Invalid user data", details=err.messages) from err


def check_email(email: Any) -> None:
    if not isinstance(email, str):
        raise InvalidInput("Email must be a string")


def check_token(token: Any) -> None:
    if not isinstance(token, str):
        raise InvalidInput("Token must be a string")


def check_user_id(user_id: Any) -> None:
    if not isinstance(user_id, str):
        raise InvalidInput("User ID must be a string")


def check_refresh_record(user_id: Any, token: Any, expires_at: Any) -> None:
    if not isinstance(user_id, str) or not isinstance(token, str) or not isinstance(expires_at, datetime):
        raise InvalidInput("Invalid parameters")
    if len(token) < MIN_TOKEN_LENGTH:
        raise InvalidInput("Token too short")
