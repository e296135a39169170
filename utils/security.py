"""
security helpers:
- Argon2id password hashing via argon2-cffi, run on a bounded worker pool
- JWT signing/verification via PyJWT, one secret per token kind
- JTI generation for token identifiers
"""
from __future__ import annotations

import secrets
import uuid
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from utils.exceptions import ConfigError, InvalidInput, TokenInvalid

ACCESS = "access"
REFRESH = "refresh"
TOKEN_KINDS = (ACCESS, REFRESH)

MIN_SECRET_BYTES = 32

_SECRET_NAMES = {
    ACCESS: "ACCESS_TOKEN_SECRET",
    REFRESH: "REFRESH_TOKEN_SECRET",
}


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialHasher:
    """Argon2id hashing with timing-safe verification.

    Hashing is memory-hard on purpose, so every hash/verify call is executed on a
    small dedicated thread pool. That caps how many Argon2 computations run at once
    and keeps request threads free for cheap work such as token checks.
    """

    def __init__(
        self,
        time_cost: int | None = None,
        memory_cost: int | None = None,
        parallelism: int | None = None,
        max_workers: int = 4,
    ) -> None:
        defaults = PasswordHasher()
        self._ph = PasswordHasher(
            time_cost=time_cost or defaults.time_cost,
            memory_cost=memory_cost or defaults.memory_cost,
            parallelism=parallelism or defaults.parallelism,
        )
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="argon2")
        # Same parameters as real hashes, so verifying against it costs the same.
        self.decoy_hash = self._ph.hash(secrets.token_urlsafe(32))

    def hash(self, password: str) -> str:
        """Hash a plaintext password. Salt is random per call.
        """
        if not isinstance(password, str):
            raise InvalidInput("Password must be a string")
        return self._executor.submit(self._ph.hash, password).result()

    def verify(self, hashed_password: str, password: str) -> bool:
        """Verify a plaintext password against an encoded Argon2 hash.

        Returns False on mismatch and on undecodable hashes; only raises for
        non-string arguments.
        """
        if not isinstance(hashed_password, str) or not isinstance(password, str):
            raise InvalidInput("Hash and password must be strings")
        return self._executor.submit(self._verify, hashed_password, password).result()

    def close(self) -> None:
        """Stop the worker pool. Later hash/verify calls raise RuntimeError."""
        self._executor.shutdown(wait=False)

    def _verify(self, hashed_password: str, password: str) -> bool:
        try:
            return self._ph.verify(hashed_password, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError):
            # burn the same amount of work as a real comparison
            try:
                self._ph.verify(self.decoy_hash, password)
            except VerificationError:
                pass
            return False


@dataclass(frozen=True)
class TokenSettings:
    """Explicit token configuration handed to TokenCodec."""

    access_secret: str | None
    refresh_secret: str | None
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> TokenSettings:
        return cls(
            access_secret=config.get("ACCESS_TOKEN_SECRET"),
            refresh_secret=config.get("REFRESH_TOKEN_SECRET"),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            access_ttl=config.get("ACCESS_TOKEN_EXPIRES", timedelta(minutes=15)),
            refresh_ttl=config.get("REFRESH_TOKEN_EXPIRES", timedelta(days=7)),
        )

    def secret_for(self, kind: str) -> str:
        """Return the signing secret for a token kind, or raise ConfigError."""
        secret = self.access_secret if kind == ACCESS else self.refresh_secret
        name = _SECRET_NAMES[kind]
        if not secret:
            raise ConfigError(f"{name} is not set")
        if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigError(f"{name} must be at least {MIN_SECRET_BYTES} characters")
        return secret

    def ttl_for(self, kind: str) -> timedelta:
        return self.access_ttl if kind == ACCESS else self.refresh_ttl

    def validate(self) -> None:
        for kind in TOKEN_KINDS:
            self.secret_for(kind)


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    role: str
    issued_at: datetime
    expires_at: datetime
    jti: str
    kind: str


class TokenCodec:
    """Sign and verify access/refresh JWTs.

    Each kind is signed with its own secret and also carries a ``type`` claim, so a
    token of one kind never verifies as the other. Verification is purely
    cryptographic; revocation lives in the session store.
    """

    def __init__(self, settings: TokenSettings) -> None:
        self.settings = settings

    def sign_access(self, payload: Mapping[str, Any]) -> str:
        return self._sign(ACCESS, payload)

    def sign_refresh(self, payload: Mapping[str, Any]) -> str:
        return self._sign(REFRESH, payload)

    def _sign(self, kind: str, payload: Mapping[str, Any]) -> str:
        if not isinstance(payload, Mapping):
            raise InvalidInput("Token payload must be a mapping")
        user_id = payload.get("userId")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidInput("Token payload requires a userId string")
        secret = self.settings.secret_for(kind)

        now = _now()
        exp = now + self.settings.ttl_for(kind)
        claims = {
            "userId": user_id,
            "role": payload.get("role") or "user",
            "type": kind,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
            "jti": generate_jti(),
        }
        return jwt.encode(claims, secret, algorithm=self.settings.algorithm)

    def verify(self, token: str, kind: str) -> TokenPayload:
        """
        Decode and validate a JWT of the given kind ("access" or "refresh").
        Raises TokenInvalid on bad signature, malformed or expired token, or a token
        of the other kind.
        """
        if not isinstance(token, str):
            raise InvalidInput("Token must be a string")
        if kind not in TOKEN_KINDS:
            raise ValueError(f"Unknown token kind: {kind!r}")
        secret = self.settings.secret_for(kind)

        try:
            decoded = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                options={"require": ["exp", "iat", "jti"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenInvalid("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid("Invalid token") from exc

        if decoded.get("type") != kind:
            raise TokenInvalid("Wrong token type")
        user_id = decoded.get("userId")
        if not isinstance(user_id, str) or not user_id:
            raise TokenInvalid("Invalid token")

        return TokenPayload(
            user_id=user_id,
            role=decoded.get("role") or "user",
            issued_at=datetime.fromtimestamp(decoded["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(decoded["exp"], tz=timezone.utc),
            jti=str(decoded["jti"]),
            kind=kind,
        )
