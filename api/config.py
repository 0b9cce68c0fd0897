"""
Environment-aware configuration.
Values are read once at import (after loading .env) and are read-only afterwards.
"""
import os
from dotenv import load_dotenv

load_dotenv()  # Read .env if present


def _optional(name: str, default=None):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _flag(name: str, default: bool = False) -> bool:
    value = _optional(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _int(name: str, default: int) -> int:
    value = _optional(name)
    return int(value) if value is not None else default


class BaseConfig:
    DEBUG = False
    TESTING = False
    APP_ENV = _optional("APP_ENV", "dev")

    DATABASE_URL = _optional("DATABASE_URL")
    AUTO_CREATE_TABLES = _flag("AUTO_CREATE_TABLES", True)

    # CORS: comma-separated list of allowed origins; cookies need explicit origins
    CORS_ORIGINS = [o.strip() for o in _optional("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

    # jwt configurations
    JWT_SECRET = _optional("JWT_SECRET")
    JWT_ALGORITHM = _optional("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_TOKEN_EXPIRY_SECONDS = _int("JWT_ACCESS_TOKEN_EXPIRY_SECONDS", 900)  # 15 minutes
    JWT_REFRESH_TOKEN_EXPIRY_SECONDS = _int("JWT_REFRESH_TOKEN_EXPIRY_SECONDS", 604800)  # 7 days

    # one-time codes
    AUTH_CODE_EXPIRY_SECONDS = _int("AUTH_CODE_EXPIRY_SECONDS", 600)  # 10 minutes

    # Resend email service
    RESEND_API_KEY = _optional("RESEND_API_KEY")
    RESEND_FROM_EMAIL = _optional("RESEND_FROM_EMAIL")

    # cookies
    COOKIE_DOMAIN = _optional("COOKIE_DOMAIN")
    COOKIE_SECURE = _flag("COOKIE_SECURE", False)

    # logging
    LOG_LEVEL = _optional("LOG_LEVEL", "info")
    LOG_HTTP_BODY_ENABLED = _flag("LOG_HTTP_BODY_ENABLED", False)
    LOG_HTTP_MAX_BODY_BYTES = _int("LOG_HTTP_MAX_BODY_BYTES", 16384)

    REQUIRED_KEYS = ()


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    DATABASE_URL = BaseConfig.DATABASE_URL or "sqlite:///auth.db"
    JWT_SECRET = BaseConfig.JWT_SECRET or "dev-secret-change-me-to-a-long-random-value"


class ProductionConfig(BaseConfig):
    DEBUG = False
    REQUIRED_KEYS = ("DATABASE_URL", "JWT_SECRET", "RESEND_API_KEY", "RESEND_FROM_EMAIL")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    AUTO_CREATE_TABLES = True
    JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes"
    RESEND_API_KEY = None
    RESEND_FROM_EMAIL = "test@example.dev"
    COOKIE_DOMAIN = None
    COOKIE_SECURE = False
    LOG_LEVEL = "warn"
    LOG_HTTP_BODY_ENABLED = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    env = (name or os.getenv("APP_ENV", "dev")).strip().lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def validate_config(config) -> None:
    """Fail fast when a required setting is missing."""
    missing = [key for key in config.get("REQUIRED_KEYS", ()) if not config.get(key)]
    if missing:
        raise RuntimeError(
            "Missing required configuration: " + ", ".join(f"`{key}`" for key in missing)
        )
