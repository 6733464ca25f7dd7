"""Centralised configuration for the core layer, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppSettings:
    app_env: str = os.getenv("APP_ENV", os.getenv("ENV", "development")).lower()
    database_url: str = os.getenv("DATABASE_URL", "")
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "10"))
    db_pool_max_overflow: int = int(os.getenv("DB_POOL_MAX_OVERFLOW", "20"))
    cors_allowed_origins: list[str] = None
    jwt_secret_keys: list[str] = None
    default_split_percentage: float = 60.0
    email_sender: str = "no-reply@consignshop.local"
    email_enabled: bool = True
    auto_create_schema: bool = False

    @staticmethod
    def load() -> "AppSettings":
        cors_raw = os.getenv("CORS_ALLOWED_ORIGINS")
        cors = [entry.strip() for entry in cors_raw.split(",")] if cors_raw else []
        jwt_raw = os.getenv("JWT_SECRET_KEYS") or os.getenv("JWT_SECRET_KEY") or ""
        jwt_keys = [entry.strip() for entry in jwt_raw.split(",") if entry.strip()]
        split_raw = os.getenv("DEFAULT_SPLIT_PERCENTAGE", "60")
        try:
            split = float(split_raw)
        except ValueError as exc:
            raise ValueError(f"DEFAULT_SPLIT_PERCENTAGE is not a number: {split_raw!r}") from exc
        if not 0 <= split <= 100:
            raise ValueError("DEFAULT_SPLIT_PERCENTAGE must be between 0 and 100")
        app_env = os.getenv("APP_ENV", os.getenv("ENV", "development")).lower()
        return AppSettings(
            app_env=app_env,
            database_url=os.getenv("DATABASE_URL", ""),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            db_pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
            cors_allowed_origins=cors,
            jwt_secret_keys=jwt_keys,
            default_split_percentage=split,
            email_sender=os.getenv("EMAIL_SENDER", "no-reply@consignshop.local"),
            email_enabled=_bool_env("EMAIL_ENABLED", True),
            auto_create_schema=_bool_env("AUTO_CREATE_SCHEMA", app_env in {"development", "dev"}),
        )
