"""
AuthService: register / login / refresh / logout on top of a SessionStore.

Refresh tokens are single use. A successful refresh consumes the presented token
(compare-and-revoke in the store) and hands out a new pair. A refresh token that
verifies cryptographically but is not live in the store is treated as a replay:
every session of its owner is revoked before the call fails. This also fires for
a token that simply expired in the store, which is deliberate.

Nothing here retries. A refresh that timed out must not be replayed by the
caller either; it should log in again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from marshmallow import Schema
from marshmallow import ValidationError as SchemaError

from models.schemas.user import LoginSchema, RefreshSchema, RegisterSchema
from models.session_store import SessionStore
from utils.exceptions import (
    AuthenticationError,
    Conflict,
    SessionRevoked,
    TokenInvalid,
    ValidationError,
)
from utils.security import REFRESH, CredentialHasher, TokenCodec, TokenPayload

logger = logging.getLogger(__name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

    def to_dict(self) -> dict[str, str]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
        }


def _load(schema: Schema, data: dict[str, Any]) -> dict[str, Any]:
    """Run a marshmallow schema; the first failing rule becomes the error message."""
    try:
        return schema.load(data)
    except SchemaError as err:
        messages = err.normalized_messages()
        field, errors = next(iter(sorted(messages.items())))
        first = errors[0] if isinstance(errors, list) and errors else errors
        raise ValidationError(f"{field}: {first}", details=messages) from err


class AuthService:
    """Orchestrates authentication flows against a SessionStore."""

    def __init__(self, store: SessionStore, hasher: CredentialHasher, codec: TokenCodec) -> None:
        self.store = store
        self.hasher = hasher
        self.codec = codec

    def register(self, email: str, password: str) -> str:
        """Create a user and return its id.

        Raises ValidationError for a malformed email or a password shorter than
        8 characters, Conflict when the email is taken.
        """
        data = _load(register_schema, {"email": email, "password": password})

        if self.store.find_user_by_email(data["email"]) is not None:
            raise Conflict("User already exists")

        hashed_password = self.hasher.hash(data["password"])
        user = self.store.create_user(
            {"email": data["email"], "hashed_password": hashed_password}
        )
        logger.info("Registered user %s", user.id)
        return user.id

    def login(self, email: str, password: str) -> TokenPair:
        """Check credentials and issue an access/refresh pair.

        Unknown email and wrong password both cost one Argon2 verification and
        both fail with the same AuthenticationError.
        """
        data = _load(login_schema, {"email": email, "password": password})

        user = self.store.find_user_by_email(data["email"])
        hash_to_check = user.hashed_password if user is not None else self.hasher.decoy_hash
        password_ok = self.hasher.verify(hash_to_check, data["password"])

        if user is None or not password_ok:
            logger.info("Failed login for %s", data["email"])
            raise AuthenticationError("Invalid credentials")

        pair = self._issue(user.id, user.role)
        logger.info("User %s logged in", user.id)
        return pair

    def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token into a new access/refresh pair.

        Raises TokenInvalid when the token fails cryptographic checks (the store is
        not touched), SessionRevoked when the store no longer considers it live.
        """
        data = _load(refresh_schema, {"refresh_token": refresh_token})
        token = data["refresh_token"]

        try:
            payload = self.codec.verify(token, REFRESH)
        except TokenInvalid as exc:
            raise TokenInvalid("Invalid refresh token") from exc

        if not self.store.is_refresh_token_valid(token):
            raise self._revoke_lineage(payload, reason="not live")
        if not self.store.revoke_refresh_token(token):
            # another refresh consumed it between the check and here
            raise self._revoke_lineage(payload, reason="already consumed")

        pair = self._issue(payload.user_id, payload.role)
        logger.info("Rotated refresh token for user %s", payload.user_id)
        return pair

    def logout(self, refresh_token: str) -> None:
        """Revoke one refresh token. Idempotent; unknown tokens are ignored."""
        self.store.revoke_refresh_token(refresh_token)
        logger.info("Refresh token revoked on logout")

    def _issue(self, user_id: str, role: str) -> TokenPair:
        claims = {"userId": user_id, "role": role}
        access_token = self.codec.sign_access(claims)
        refresh_token = self.codec.sign_refresh(claims)
        expires_at = datetime.now(timezone.utc) + self.codec.settings.refresh_ttl
        self.store.save_refresh_token(user_id, refresh_token, expires_at)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def _revoke_lineage(self, payload: TokenPayload, *, reason: str) -> SessionRevoked:
        revoked = self.store.revoke_all_user_sessions(payload.user_id)
        logger.warning(
            "Refresh token reuse detected for user %s (%s); revoked %d sessions",
            payload.user_id,
            reason,
            revoked,
        )
        return SessionRevoked("Session revoked - please login again")
