"""
DBStorage: SQLAlchemy implementation of the SessionStore contract.

Refresh tokens are stored by SHA-256 digest only. Token state is read with column
queries (never through the identity map) and changed with conditional UPDATEs, so
every check reflects what is committed in the database. The compare-and-revoke in
revoke_refresh_token() is a single UPDATE guarded by "not revoked and not expired";
its rowcount decides which concurrent caller won.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import create_engine, event, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import scoped_session, sessionmaker

from models.base_model import Base, utc_naive, utcnow
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
from utils.exceptions import Conflict, InvalidInput

logger = logging.getLogger(__name__)


class DBStorage(SessionStore):
    __engine = None
    __session = None

    def __init__(self, database_url: str, echo: bool = False):
        """Initialize engine for the given URL"""
        if database_url.startswith("postgres"):
            self.__engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        else:
            self.__engine = create_engine(database_url, echo=echo)

        # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
        if self.__engine.url.get_backend_name() == "sqlite":
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    def dispose(self):
        """Close the session and every pooled connection."""
        self.close()
        self.__engine.dispose()

    @contextmanager
    def _transaction(self):
        """Commit on success, roll back on any error."""
        session = self.__session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise

    def find_user_by_email(self, email: str) -> User | None:
        check_email(email)
        with self._transaction() as session:
            return session.query(User).filter(User.email == email).first()

    def create_user(self, user_data: dict[str, Any]) -> User:
        data = load_user_data(user_data)
        try:
            with self._transaction() as session:
                if session.query(User.id).filter(User.email == data["email"]).first():
                    raise Conflict("User with this email already exists")
                user = User(**data)
                session.add(user)
        except IntegrityError as exc:
            # lost a race against a concurrent insert of the same email
            raise Conflict("User with this email already exists") from exc
        return user

    def save_refresh_token(self, user_id: str, token: str, expires_at: datetime) -> None:
        check_refresh_record(user_id, token, expires_at)
        token_hash = RefreshToken.hash_token(token)
        expires_at = utc_naive(expires_at)
        try:
            with self._transaction() as session:
                result = session.execute(
                    update(RefreshToken)
                    .where(RefreshToken.token_hash == token_hash)
                    .values(user_id=user_id, expires_at=expires_at, revoked=False)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    session.add(
                        RefreshToken(
                            token_hash=token_hash,
                            user_id=user_id,
                            revoked=False,
                            expires_at=expires_at,
                        )
                    )
        except IntegrityError as exc:
            # user_id references no user
            raise InvalidInput("Unknown user") from exc

    def is_refresh_token_valid(self, token: str) -> bool:
        check_token(token)
        with self._transaction() as session:
            row = session.execute(
                select(RefreshToken.revoked, RefreshToken.expires_at).where(
                    RefreshToken.token_hash == RefreshToken.hash_token(token)
                )
            ).first()
        if row is None:
            return False
        return not row.revoked and row.expires_at > utcnow()

    def revoke_refresh_token(self, token: str) -> bool:
        check_token(token)
        token_hash = RefreshToken.hash_token(token)
        with self._transaction() as session:
            result = session.execute(
                update(RefreshToken)
                .where(RefreshToken.token_hash == token_hash)
                .where(RefreshToken.revoked.is_(False))
                .where(RefreshToken.expires_at > utcnow())
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            consumed = result.rowcount == 1
            if not consumed:
                # expired but never revoked: still mark it
                session.execute(
                    update(RefreshToken)
                    .where(RefreshToken.token_hash == token_hash)
                    .where(RefreshToken.revoked.is_(False))
                    .values(revoked=True)
                    .execution_options(synchronize_session=False)
                )
        return consumed

    def revoke_all_user_sessions(self, user_id: str) -> int:
        check_user_id(user_id)
        with self._transaction() as session:
            result = session.execute(
                update(RefreshToken)
                .where(RefreshToken.user_id == user_id)
                .where(RefreshToken.revoked.is_(False))
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
        logger.debug("Revoked %d refresh tokens for user %s", result.rowcount, user_id)
        return result.rowcount
