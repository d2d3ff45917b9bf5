"""
Configuration helpers for the Ghost Post backend.

Exposes a Settings object read from environment variables (database URL,
cookie lifetimes, registration/OTP windows, rate limits, logging) so that routers and
services do not fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    session_ttl_seconds: int
    registration_ttl_seconds: int
    otp_ttl_seconds: int
    otp_max_attempts: int
    slug_check_rate_limit: int
    login_rate_limit: int
    log_level: str
    log_format: str
    cors_origins: tuple[str, ...]


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None) -> tuple[str, ...]:
        if not value:
            return ()
        return tuple(item.strip().rstrip("/") for item in value.split(",") if item.strip())

    app_env = (os.getenv("APP_ENV") or "dev").lower()
    return Settings(
        app_env=app_env,
        database_url=os.getenv("DATABASE_URL", ""),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "604800"), 604800),
        registration_ttl_seconds=_int(os.getenv("REGISTRATION_TTL_SECONDS", "604800"), 604800),
        otp_ttl_seconds=_int(os.getenv("OTP_TTL_SECONDS", "600"), 600),
        otp_max_attempts=_int(os.getenv("OTP_MAX_ATTEMPTS", "5"), 5),
        slug_check_rate_limit=_int(os.getenv("SLUG_CHECK_RATE_LIMIT", "30"), 30),
        login_rate_limit=_int(os.getenv("LOGIN_RATE_LIMIT", "5"), 5),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        log_format=(os.getenv("LOG_FORMAT") or ("json" if app_env == "prod" else "console")).lower(),
        cors_origins=_list(os.getenv("CORS_ORIGINS")),
    )
