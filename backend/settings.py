"""FastAPI-level configuration built on core.settings.AppSettings."""

from __future__ import annotations

import os
from dataclasses import asdict

from core.settings import AppSettings as CoreSettings


class Settings(CoreSettings):
    allow_insecure_jwt_default: bool = False
    log_level: str = "INFO"

    @staticmethod
    def load() -> "Settings":
        core = CoreSettings.load()
        allow_insecure = (
            os.getenv("ALLOW_INSECURE_JWT_DEFAULT", "").strip().lower() in {"1", "true", "yes", "on"}
            or core.app_env in {"development", "dev", "test"}
        )
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        obj = Settings(**asdict(core))
        object.__setattr__(obj, "allow_insecure_jwt_default", allow_insecure)
        object.__setattr__(obj, "log_level", log_level)
        return obj
