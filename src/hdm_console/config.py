# src/hdm_console/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is required at import time; every value has a default.
- Request defaults (retries, retry delay, debounce) live here so screens share one policy.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "HDM"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_dir: Path

    # ---- Request lifecycle defaults ----
    request_retries: int
    request_retry_delay_ms: int

    # ---- Search box ----
    debounce_ms: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "hdm-console").strip() or "hdm-console"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        log_dir = _env_path(_k("LOG_DIR"), Path(".local/hdm"))

        # Clamp: a bad env value must not break import.
        request_retries = max(0, _env_int(_k("REQUEST_RETRIES"), 0))
        request_retry_delay_ms = max(0, _env_int(_k("REQUEST_RETRY_DELAY_MS"), 1000))

        debounce_ms = max(0, _env_int(_k("DEBOUNCE_MS"), 300))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_dir=log_dir,
            request_retries=request_retries,
            request_retry_delay_ms=request_retry_delay_ms,
            debounce_ms=debounce_ms,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
