# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Every value has a default; nothing is required at import time.
- Malformed values fall back to defaults instead of failing startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

ENV_PREFIX = "TASKDECK"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


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


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


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

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    filters_path: Path

    # ---- Filter persistence ----
    persist_filters: bool
    filters_storage_key: str

    # ---- Search / sort ----
    search_fields: List[str]
    search_case_sensitive: bool
    search_min_length: int
    search_debounce_ms: int
    default_sort_by: str
    default_sort_order: str

    # ---- Store / backend ----
    latency_scale: float
    seed_demo_tasks: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdeck") or "taskdeck"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdeck"))
        filters_path = _env_path(_k("FILTERS_PATH"), data_dir / "filters.json")

        persist_filters = _env_bool(_k("PERSIST_FILTERS"), True)
        filters_storage_key = _env(_k("FILTERS_STORAGE_KEY"), "taskFilters") or "taskFilters"

        search_fields = _env_list(_k("SEARCH_FIELDS"), ["title", "category"])
        search_case_sensitive = _env_bool(_k("SEARCH_CASE_SENSITIVE"), False)
        search_min_length = max(0, _env_int(_k("SEARCH_MIN_LENGTH"), 1))
        search_debounce_ms = max(0, _env_int(_k("SEARCH_DEBOUNCE_MS"), 300))

        default_sort_by = _env(_k("DEFAULT_SORT_BY"), "created_at") or "created_at"
        default_sort_order = _env(_k("DEFAULT_SORT_ORDER"), "desc").strip().lower()
        if default_sort_order not in ("asc", "desc"):
            default_sort_order = "desc"

        latency_scale = max(0.0, _env_float(_k("LATENCY_SCALE"), 1.0))
        seed_demo_tasks = _env_bool(_k("SEED_DEMO_TASKS"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            filters_path=filters_path,
            persist_filters=persist_filters,
            filters_storage_key=filters_storage_key,
            search_fields=search_fields,
            search_case_sensitive=search_case_sensitive,
            search_min_length=search_min_length,
            search_debounce_ms=search_debounce_ms,
            default_sort_by=default_sort_by,
            default_sort_order=default_sort_order,
            latency_scale=latency_scale,
            seed_demo_tasks=seed_demo_tasks,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
