"""
Internal Portal
Environment configuration, one class per ``APP_ENV`` value.

    app.config.from_object(config[os.getenv("APP_ENV", "development")]())

Classes are instantiated so ``ProductionConfig`` can refuse to boot with
missing secrets.
"""

import os
import secrets

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _database_url(default=None):
    """``DATABASE_URL`` with the legacy ``postgres://`` scheme rewritten for SQLAlchemy 2."""
    url = os.getenv("DATABASE_URL", "")
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url or default


class Config:
    # Per-process random key unless SECRET_KEY is exported; tokens die on restart.
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    # Requests slower than this are logged at WARNING
    SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "1000"))

    # Flask-Limiter storage; memory:// keeps counters per process
    REDIS_URL = os.getenv("REDIS_URL", "memory://")

    # Comma-separated origins; "*" allows any origin without credentials
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Auth
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = int(os.getenv("JWT_ACCESS_EXPIRES", str(7 * 24 * 3600)))
    AUTH_COOKIE_NAME = "auth-token"
    AUTH_COOKIE_SECURE = False

    # Approvals
    # Employee id used as the default approver when a decision names none.
    DEFAULT_APPROVER_ID = os.getenv("DEFAULT_APPROVER_ID")
    # Owner of resources created on behalf of the company (hardware requests).
    COMPANY_OWNER_ID = os.getenv("COMPANY_OWNER_ID")
    COMPANY_NAME = os.getenv("COMPANY_NAME", "Internal Portal")
    SYSTEM_USER_EMAIL = os.getenv("SYSTEM_USER_EMAIL", "system@internal-portal.com")

    # Onboarding
    ONBOARDING_MAX_RESOURCES = int(os.getenv("ONBOARDING_MAX_RESOURCES", "3"))
    ONBOARDING_MIN_RESOURCES = int(os.getenv("ONBOARDING_MIN_RESOURCES", "1"))
    ONBOARDING_RESOURCE_TYPES = ("PHYSICAL", "SOFTWARE")

    # Bootstrap (flask seed-ceo)
    CEO_EMAIL = os.getenv("CEO_EMAIL", "ceo@internal-portal.com")
    CEO_PASSWORD = os.getenv("CEO_PASSWORD")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(
        f"sqlite:///{os.path.join(PROJECT_ROOT, 'instance', 'portal_dev.db')}"
    )


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    # Tests pick approvers explicitly; ignore whatever the shell exports.
    DEFAULT_APPROVER_ID = None
    COMPANY_OWNER_ID = None


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
        "pool_timeout": 20,
    }
    # No wildcard default: origins must be listed explicitly.
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    AUTH_COOKIE_SECURE = True

    def __init__(self):
        missing = [
            name for name, value in (
                ("DATABASE_URL", self.SQLALCHEMY_DATABASE_URI),
                ("SECRET_KEY", os.getenv("SECRET_KEY")),
            ) if not value
        ]
        if missing:
            raise RuntimeError(f"Production config incomplete, set: {', '.join(missing)}")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
