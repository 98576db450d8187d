"""Configuration module for the dealmatch application."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from dealmatch.core.exceptions import ConfigurationError

load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def _as_list(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    DB_CONNECTIVITY_REQUIRED: bool
    REDIS_URL: str
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str
    RESOLUTION_FUZZY_THRESHOLD: float
    RESOLUTION_UNCERTAINTY_FLOOR: float | None
    RESOLUTION_BATCH_LIMIT: int
    MAINTENANCE_AUDIT_LISTENERS: tuple[str, ...]
    MAINTENANCE_DB_TRIGGERS: tuple[str, ...]

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=(resolved_env != "production"))

    config = Config(
        APP_NAME="dealmatch",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./dealmatch.db"),
        DB_CONNECTIVITY_REQUIRED=_as_bool(
            os.getenv("DB_CONNECTIVITY_REQUIRED"), default=(resolved_env == "production")
        ),
        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        CELERY_BROKER_URL=os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
        CELERY_RESULT_BACKEND=os.getenv("CELERY_RESULT_BACKEND", os.getenv("REDIS_URL", "redis://localhost:6379/0")),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
        RESOLUTION_FUZZY_THRESHOLD=float(os.getenv("RESOLUTION_FUZZY_THRESHOLD", "0.8")),
        RESOLUTION_UNCERTAINTY_FLOOR=_as_optional_float(os.getenv("RESOLUTION_UNCERTAINTY_FLOOR")),
        RESOLUTION_BATCH_LIMIT=int(os.getenv("RESOLUTION_BATCH_LIMIT", "5000")),
        MAINTENANCE_AUDIT_LISTENERS=_as_list(os.getenv("MAINTENANCE_AUDIT_LISTENERS")),
        MAINTENANCE_DB_TRIGGERS=_as_list(os.getenv("MAINTENANCE_DB_TRIGGERS")),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)

    if not 0.0 < config.RESOLUTION_FUZZY_THRESHOLD <= 1.0:
        raise ConfigurationError("RESOLUTION_FUZZY_THRESHOLD must be in (0, 1].")
    floor = config.RESOLUTION_UNCERTAINTY_FLOOR
    if floor is not None and not 0.0 <= floor < config.RESOLUTION_FUZZY_THRESHOLD:
        raise ConfigurationError("RESOLUTION_UNCERTAINTY_FLOOR must be >= 0 and below the fuzzy threshold.")
    if config.RESOLUTION_BATCH_LIMIT < 1:
        raise ConfigurationError("RESOLUTION_BATCH_LIMIT must be >= 1.")
    for pair in config.MAINTENANCE_DB_TRIGGERS:
        table, _, trigger = pair.partition(":")
        if not table or not trigger:
            raise ConfigurationError(f"MAINTENANCE_DB_TRIGGERS entry must be table:trigger, got {pair!r}.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and "change_me" in config.DATABASE_URL.lower():
        raise ConfigurationError("Production DATABASE_URL uses placeholder credentials.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
