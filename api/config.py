"""
Environment-aware configuration.
Secrets, database, token lifetimes and argon2 cost all come from the
environment (.env is read if present).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _seconds(name: str, default: int) -> timedelta:
    return timedelta(seconds=int(os.getenv(name, str(default))))


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    # "dev" unlocks POST /api/reset
    PLATFORM = os.getenv("PLATFORM", "prod")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///yapper.db")
    DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", "5"))
    SQL_ECHO = False

    # Access tokens
    JWT_SECRET = os.getenv("JWT_SECRET", "")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_LEEWAY_SECONDS = float(os.getenv("JWT_LEEWAY_SECONDS", "0"))
    ACCESS_TOKEN_ISSUER = os.getenv("ACCESS_TOKEN_ISSUER", "yapper")
    ACCESS_TOKEN_TTL = _seconds("ACCESS_TOKEN_TTL_SECONDS", 3600)
    REFRESH_TOKEN_TTL = _seconds("REFRESH_TOKEN_TTL_SECONDS", 60 * 24 * 3600)

    # Service-to-service key (payment webhook)
    API_KEY = os.getenv("API_KEY", "")

    # argon2id cost; defaults are argon2-cffi's RFC 9106 low-memory profile
    ARGON2_TIME_COST = int(os.getenv("ARGON2_TIME_COST", "3"))
    ARGON2_MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", "65536"))
    ARGON2_PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", "4"))
    PASSWORD_MAX_BYTES = int(os.getenv("PASSWORD_MAX_BYTES", "1024"))

    FILESERVER_ROOT = os.getenv("FILESERVER_ROOT", os.path.join(os.path.dirname(__file__), "static"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me-dev-secret-change-me")


class ProductionConfig(BaseConfig):
    DEBUG = False


class TestingConfig(BaseConfig):
    TESTING = True
    PLATFORM = "dev"
    DATABASE_URL = "sqlite://"
    JWT_SECRET = "test-secret-test-secret-test-secret-0123"
    API_KEY = "test-polka-key"
    # cheap hashes keep the suite fast
    ARGON2_TIME_COST = 1
    ARGON2_MEMORY_COST = 8
    ARGON2_PARALLELISM = 1


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/prod/test).
    """
    if name:
        name = name.lower()
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
