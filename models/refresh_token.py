"""
RefreshToken model: one row per issued refresh token so it can be revoked and rotated.
Fields:
- token_hash (SHA-256 hex of the token string, unique lookup key)
- user_id (String(36)) - FK to users.id
- revoked (bool)
- created_at, expires_at (naive UTC)
"""
import hashlib

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    revoked = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    @staticmethod
    def hash_token(token: str) -> str:
        """Create SHA256 hash of a token for storage."""
        return hashlib.sha256(token.encode()).hexdigest()

    def is_live(self, now) -> bool:
        return not self.revoked and self.expires_at > now

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} revoked={self.revoked}>"
