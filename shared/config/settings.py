"""
Environment configuration shared by every service in the cluster.

Values are read once at import time. Secrets that are missing fall back to a
development default with a loud warning (same approach as the internal API key
used to take) so local runs and tests still work, while production
misconfiguration is surfaced instead of silently accepted.
"""
import os
import warnings
from datetime import time

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_time(name: str, default: str) -> time:
    return time.fromisoformat(os.getenv(name, default))


def _secret(name: str, fallback: str) -> str:
    value = os.getenv(name, "")
    if not value:
        warnings.warn(
            f"{name} is not set. Using an insecure development default. "
            "Set this env var in production!",
            stacklevel=2,
        )
        value = fallback
    return value


# --- Database ---
DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost")  # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "sweetshop")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
SQL_ECHO = _env_bool("SQL_ECHO", False)

# --- Identity ---
JWT_SECRET_KEY = _secret("JWT_SECRET_KEY", "insecure-dev-secret-change-me")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)

# --- Payments ---
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_API_URL = os.getenv("STRIPE_API_URL", "https://api.stripe.com")
CURRENCY = os.getenv("CURRENCY", "eur")
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))
SITE_URL = os.getenv("SITE_URL", "http://localhost:5173")

# --- Notifications ---
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com")
MAIL_FROM = os.getenv("MAIL_FROM", "Sweet Shop <onboarding@resend.dev>")
ADMIN_EMAILS = _env_list("ADMIN_EMAILS")
NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))

# --- Checkout ---
PICKUP_OPENS = _env_time("PICKUP_OPENS", "09:00")
PICKUP_CLOSES = _env_time("PICKUP_CLOSES", "18:00")

# --- Observability ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "")
