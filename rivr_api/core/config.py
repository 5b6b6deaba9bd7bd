import os

from dotenv import load_dotenv

from rivr_api.core.errors import ConfigError

# Load .env from the project root
load_dotenv()

ENV = os.getenv("ENVIRONMENT", os.getenv("ENV", "dev")).strip().lower()
ENV_NORMALIZED = ENV
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

BASE_DOMAIN = os.getenv("BASE_DOMAIN", "localhost").strip().lower()
EXEC_SUBDOMAIN = os.getenv("EXEC_SUBDOMAIN", "exec").strip().lower()
APP_BASE_URL = os.getenv("APP_BASE_URL", os.getenv("FRONTEND_URL", "http://localhost:3000")).rstrip("/")

TENANT_HEADER = "X-Tenant-Subdomain"
TENANT_COOKIE = "tenant_subdomain"
TENANT_CACHE_TTL_SECONDS = float(os.getenv("TENANT_CACHE_TTL_SECONDS", "60"))

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

# Auth (JWT)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-only-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "720"))

SESSION_COOKIE_NAME = "rivr_session"
SESSION_COOKIE_SECURE = os.getenv(
    "SESSION_COOKIE_SECURE",
    "0" if IS_DEV or IS_TEST else "1",
).strip().lower() in {"1", "true", "yes", "on"}
SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "lax").strip().lower()
if SESSION_COOKIE_SAMESITE not in {"lax", "strict", "none"}:
    SESSION_COOKIE_SAMESITE = "lax"

# Password reset
RESET_TOKEN_SECRET = os.getenv("RESET_TOKEN_SECRET", "") or JWT_SECRET_KEY
RESET_TOKEN_MAX_AGE_SECONDS = int(os.getenv("RESET_TOKEN_MAX_AGE_SECONDS", "3600"))

DEFAULT_ADMIN_SEED_PASSWORD = "admin123"


def get_database_url() -> str:
    """Return the configured connection string or fail hard.

    Read at call time so scripts and tests see the current environment.
    """
    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url:
        raise ConfigError("DATABASE_URL is not set")
    return database_url


def get_admin_seed_password() -> str:
    return os.getenv("ADMIN_SEED_PASSWORD", "").strip() or DEFAULT_ADMIN_SEED_PASSWORD
