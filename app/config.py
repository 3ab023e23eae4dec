"""
Renovation Back Office
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'renovation_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes", "on")


def _env_float_or_none(name: str):
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,   # recycle connections every 5 min
    }

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Identity provider: bearer JWT carrying the principal's email
    IDENTITY_JWT_SECRET = os.getenv("IDENTITY_JWT_SECRET", "")
    IDENTITY_JWT_ALGORITHMS = [a.strip() for a in os.getenv("IDENTITY_JWT_ALGORITHMS", "HS256").split(",")]
    IDENTITY_JWT_AUDIENCE = os.getenv("IDENTITY_JWT_AUDIENCE") or None
    # When disabled, the X-User-Email header is trusted (development only)
    API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "true")

    # Text-generation endpoint
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")  # openai | local
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    OFFER_MODEL = os.getenv("OFFER_MODEL", "gpt-4o")
    PRICE_ESTIMATION_MODEL = os.getenv("PRICE_ESTIMATION_MODEL", "gpt-4o-mini")
    LLM_RATE_LIMIT_WAIT_SECONDS = float(os.getenv("LLM_RATE_LIMIT_WAIT_SECONDS", "120"))
    LLM_MAX_ATTEMPTS = int(os.getenv("LLM_MAX_ATTEMPTS", "2"))
    LLM_TIMEOUT_SECONDS = _env_float_or_none("LLM_TIMEOUT_SECONDS")

    # Retrieval augmentation of the offer prompt
    RAG_ENABLED = _env_bool("RAG_ENABLED")
    RAG_TOP_K = int(os.getenv("RAG_TOP_K", "3"))

    # Price catalog cache (seconds, 0 disables)
    PRICE_CATALOG_CACHE_TTL = int(os.getenv("PRICE_CATALOG_CACHE_TTL", "300"))

    # Statistics dashboard: per-user activity queries in parallel
    STATISTICS_MAX_WORKERS = int(os.getenv("STATISTICS_MAX_WORKERS", "8"))

    # Offers
    OFFER_VALIDITY_DAYS = int(os.getenv("OFFER_VALIDITY_DAYS", "30"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = (
        _raw_db_url.replace("postgres://", "postgresql://", 1) if _raw_db_url else _SQLITE_DEV
    )
    # Auth disabled by default in development for convenience
    API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "false")
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai" if os.getenv("OPENAI_API_KEY") else "local")


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    API_AUTH_ENABLED = "false"
    IDENTITY_JWT_SECRET = "test-identity-secret-for-hs256-signing"
    RATELIMIT_ENABLED = False
    LLM_PROVIDER = "local"
    OPENAI_API_KEY = "test-key"
    LLM_RATE_LIMIT_WAIT_SECONDS = 0.0
    RAG_ENABLED = False
    PRICE_CATALOG_CACHE_TTL = 0
    # In-memory SQLite is per-connection; worker threads would see an empty DB
    STATISTICS_MAX_WORKERS = 1


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = _raw_db_url.replace("postgres://", "postgresql://", 1) if _raw_db_url else None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {
            "options": "-c statement_timeout=30000",  # 30s query timeout
        },
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
