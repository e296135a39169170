"""Persistence layer: SQLAlchemy models and the SessionStore implementations."""
from models.user import User
from models.refresh_token import RefreshToken
from models.session_store import SessionStore
from models.memory_store import MemorySessionStore
from models.db_storage import DBStorage

__all__ = [
    "DBStorage",
    "MemorySessionStore",
    "RefreshToken",
    "SessionStore",
    "User",
]
