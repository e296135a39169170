"""
In-memory SessionStore. Used by tests and by SESSION_STORE=memory.

Every operation runs under one lock, which is what makes
revoke_refresh_token() an atomic compare-and-revoke.
"""
from __future__ import annotations

import threading
from datetime import datetime
from typing import Any

from models.base_model import utc_naive, utcnow
from models.refresh_token import RefreshToken
from models.session_store import (
    SessionStore,
    check_email,
    check_refresh_record,
    check_token,
    check_user_id,
    load_user_data,
)
from models.user import User
from utils.exceptions import Conflict


class MemorySessionStore(SessionStore):

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}  # email -> user
        self._tokens: dict[str, RefreshToken] = {}  # token hash -> record

    def find_user_by_email(self, email: str) -> User | None:
        check_email(email)
        with self._lock:
            return self._users.get(email)

    def create_user(self, user_data: dict[str, Any]) -> User:
        data = load_user_data(user_data)
        with self._lock:
            if data["email"] in self._users:
                raise Conflict("User with this email already exists")
            user = User(
                email=data["email"],
                hashed_password=data["hashed_password"],
                role=data["role"],
            )
            self._users[user.email] = user
            return user

    def save_refresh_token(self, user_id: str, token: str, expires_at: datetime) -> None:
        check_refresh_record(user_id, token, expires_at)
        token_hash = RefreshToken.hash_token(token)
        with self._lock:
            self._tokens[token_hash] = RefreshToken(
                token_hash=token_hash,
                user_id=user_id,
                revoked=False,
                expires_at=utc_naive(expires_at),
            )

    def is_refresh_token_valid(self, token: str) -> bool:
        check_token(token)
        with self._lock:
            record = self._tokens.get(RefreshToken.hash_token(token))
            return record is not None and record.is_live(utcnow())

    def revoke_refresh_token(self, token: str) -> bool:
        check_token(token)
        with self._lock:
            record = self._tokens.get(RefreshToken.hash_token(token))
            if record is None:
                return False
            was_live = record.is_live(utcnow())
            record.revoked = True
            return was_live

    def revoke_all_user_sessions(self, user_id: str) -> int:
        check_user_id(user_id)
        count = 0
        with self._lock:
            for record in self._tokens.values():
                if record.user_id == user_id and not record.revoked:
                    record.revoked = True
                    count += 1
        return count

    def clear(self) -> None:
        """Drop all users and tokens."""
        with self._lock:
            self._users.clear()
            self._tokens.clear()
