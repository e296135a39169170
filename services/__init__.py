"""Service layer."""
from services.auth import AuthService, TokenPair

__all__ = ["AuthService", "TokenPair"]
