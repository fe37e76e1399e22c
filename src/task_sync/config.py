# src/task_sync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Components receive settings explicitly; nothing reads env at call time.
- Legacy unprefixed names (API_BASE_URL, SYNC_BATCH_SIZE, SYNC_RETRY_ATTEMPTS) are still honored.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKSYNC"

DEFAULT_API_BASE_URL = "http://localhost:3000/api"
DEFAULT_BATCH_SIZE = 50
DEFAULT_MAX_RETRIES = 3
DEFAULT_HEALTH_TIMEOUT_SECONDS = 5.0
DEFAULT_BATCH_TIMEOUT_SECONDS = 20.0


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


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

    # ---- Connector flags ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Remote authority ----
    api_base_url: str
    health_timeout_seconds: float
    batch_timeout_seconds: float

    # ---- Sync tuning ----
    batch_size: int
    max_retries: int
    sync_interval_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "task-sync")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/task_sync"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "tasks.sqlite3")

        api_base_url = (
            _first_env(_k("API_BASE_URL"), "API_BASE_URL", default=DEFAULT_API_BASE_URL)
            or DEFAULT_API_BASE_URL
        ).strip().rstrip("/")

        health_timeout_seconds = _env_float(_k("HEALTH_TIMEOUT_SECONDS"), DEFAULT_HEALTH_TIMEOUT_SECONDS)
        batch_timeout_seconds = _env_float(_k("BATCH_TIMEOUT_SECONDS"), DEFAULT_BATCH_TIMEOUT_SECONDS)

        # Values below 1 make no sense for either knob; clamp instead of failing at startup.
        batch_size = max(1, _env_int(_k("SYNC_BATCH_SIZE"), _env_int("SYNC_BATCH_SIZE", DEFAULT_BATCH_SIZE)))
        max_retries = max(
            1, _env_int(_k("SYNC_RETRY_ATTEMPTS"), _env_int("SYNC_RETRY_ATTEMPTS", DEFAULT_MAX_RETRIES))
        )

        # 0 disables the background sync loop (manual /sync only).
        sync_interval_seconds = max(0.0, _env_float(_k("SYNC_INTERVAL_SECONDS"), 0.0))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            db_path=db_path,
            api_base_url=api_base_url,
            health_timeout_seconds=health_timeout_seconds,
            batch_timeout_seconds=batch_timeout_seconds,
            batch_size=batch_size,
            max_retries=max_retries,
            sync_interval_seconds=sync_interval_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
