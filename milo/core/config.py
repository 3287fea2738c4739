from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    environment: str
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    resume_fetch_timeout_s: float
    resume_max_bytes: int
    resume_max_text_chars: int
    resume_block_private_hosts: bool
    users_db_path: str
    analytics_enabled: bool
    analytics_db_path: str
    analytics_retention_days: int

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings(
    api_key=_get_env("API_KEY"),
    environment=(_get_env("ENVIRONMENT", "development") or "development").strip().lower(),
    rate_limit=_get_env("RATE_LIMIT", "30/minute") or "30/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://[::1]:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX", r"^https:\/\/[a-z0-9-]+-.*\.vercel\.app$"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", True),
    resume_fetch_timeout_s=_get_env_float("RESUME_FETCH_TIMEOUT_S", 30.0),
    resume_max_bytes=_get_env_int("RESUME_MAX_BYTES", 10 * 1024 * 1024),
    resume_max_text_chars=_get_env_int("RESUME_MAX_TEXT_CHARS", 10000),
    resume_block_private_hosts=_get_env_bool("RESUME_BLOCK_PRIVATE_HOSTS", True),
    users_db_path=_get_env("USERS_DB_PATH", "data/users.db") or "data/users.db",
    analytics_enabled=_get_env_bool("ANALYTICS_ENABLED", True),
    analytics_db_path=_get_env("ANALYTICS_DB_PATH", "data/analytics.db") or "data/analytics.db",
    analytics_retention_days=_get_env_int("ANALYTICS_RETENTION_DAYS", 180),
)

if settings.resume_max_bytes <= 0:
    raise RuntimeError("RESUME_MAX_BYTES must be a positive number of bytes.")

if settings.resume_max_text_chars <= 0:
    raise RuntimeError("RESUME_MAX_TEXT_CHARS must be a positive number of characters.")
