"""Pytest configuration and fixtures."""

import pytest

from api import create_app
from models import DBStorage, MemorySessionStore
from services.auth import AuthService
from utils.security import CredentialHasher, TokenCodec, TokenSettings

ACCESS_SECRET = "test-access-secret-0123456789abcdef"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"


@pytest.fixture(scope="session")
def hasher() -> CredentialHasher:
    """Argon2id with a tiny cost so the suite stays fast."""
    hasher = CredentialHasher(time_cost=1, memory_cost=8192, parallelism=1)
    yield hasher
    hasher.close()


@pytest.fixture
def token_settings() -> TokenSettings:
    return TokenSettings(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def codec(token_settings) -> TokenCodec:
    return TokenCodec(token_settings)


@pytest.fixture
def memory_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def db_store(tmp_path):
    storage = DBStorage(f"sqlite:///{tmp_path / 'auth.db'}")
    storage.reload()
    yield storage
    storage.dispose()


@pytest.fixture(params=["memory", "db"])
def store(request):
    """Every SessionStore implementation, for contract tests."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def service(memory_store, hasher, codec) -> AuthService:
    return AuthService(memory_store, hasher, codec)


@pytest.fixture
def app(memory_store):
    app = create_app("test", store=memory_store)
    yield app
    app.extensions["credential_hasher"].close()


@pytest.fixture
def client(app):
    return app.test_client()
