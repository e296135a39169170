"""
Environment-aware configuration.
Token secrets have no defaults: a missing or short secret fails with ConfigError
naming it, at startup outside tests and on every sign/verify call.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class BaseConfig:
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # token signing: one secret per token kind, each >= 32 characters
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=_int_env("ACCESS_TOKEN_EXPIRES_SECONDS", 900))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=_int_env("REFRESH_TOKEN_EXPIRES_SECONDS", 604800))

    # session store backend: "memory" or "db"
    SESSION_STORE = os.getenv("SESSION_STORE", "db")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///auth.db")
    SQL_ECHO = False

    # Argon2id cost; None keeps argon2-cffi defaults
    ARGON2_TIME_COST = int(os.getenv("ARGON2_TIME_COST", "0")) or None
    ARGON2_MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", "0")) or None
    ARGON2_PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", "0")) or None
    HASH_WORKERS = _int_env("HASH_WORKERS", 4)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    SQL_ECHO = os.getenv("SQL_ECHO", "0").lower() in ("1", "true", "yes")


class ProductionConfig(BaseConfig):
    DEBUG = False


class TestingConfig(BaseConfig):
    TESTING = True
    SESSION_STORE = "memory"
    ACCESS_TOKEN_SECRET = "test-access-secret-0123456789abcdef"
    REFRESH_TOKEN_SECRET = "test-refresh-secret-0123456789abcdef"
    ARGON2_TIME_COST = 1
    ARGON2_MEMORY_COST = 8192
    ARGON2_PARALLELISM = 1


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
