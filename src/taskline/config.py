# src/taskline/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Components take settings as an argument; get_settings() is only the default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKLINE"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_optional(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
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
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    guest_store_path: Path

    # ---- Remote task API ----
    api_base_url: str
    api_token: str | None
    request_timeout_seconds: float

    # ---- Task engine ----
    sweep_interval_seconds: float
    trend_weeks: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskline").strip() or "taskline"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskline"))
        guest_store_path = _env_path(_k("GUEST_STORE_PATH"), data_dir / "guest_tasks.json")

        api_base_url = _env(_k("API_BASE_URL"), "http://localhost:8080").strip().rstrip("/")
        api_token = _env_optional(_k("API_TOKEN"))
        request_timeout_seconds = max(0.5, _env_float(_k("REQUEST_TIMEOUT_SECONDS"), 10.0))

        sweep_interval_seconds = max(1.0, _env_float(_k("SWEEP_INTERVAL_SECONDS"), 30.0))
        trend_weeks = max(1, _env_int(_k("TREND_WEEKS"), 6))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            guest_store_path=guest_store_path,
            api_base_url=api_base_url,
            api_token=api_token,
            request_timeout_seconds=request_timeout_seconds,
            sweep_interval_seconds=sweep_interval_seconds,
            trend_weeks=trend_weeks,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
