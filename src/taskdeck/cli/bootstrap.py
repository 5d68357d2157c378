# src/taskdeck/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/facade/filters/kv).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import KeyValueStore
from ..core.state import AppState
from ..storage.kv_store import JsonFileKVStore
from ..tasks.task_api import SimulatedLatency, TaskFacade
from ..tasks.task_filters import FilterOptions, TaskFilterEngine
from ..tasks.task_input import TaskInputParser, TaskInputSession
from ..tasks.task_store import DEMO_TASKS, TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.filters_path.parent.mkdir(parents=True, exist_ok=True)


def build_filter_options(settings) -> FilterOptions:
    return FilterOptions(
        search_fields=tuple(getattr(settings, "search_fields", ("title", "category"))),
        search_case_sensitive=bool(getattr(settings, "search_case_sensitive", False)),
        search_min_length=int(getattr(settings, "search_min_length", 1)),
        debounce_ms=int(getattr(settings, "search_debounce_ms", 300)),
        default_sort_by=getattr(settings, "default_sort_by", "created_at"),
        default_sort_order=getattr(settings, "default_sort_order", "desc"),
        persist_filters=bool(getattr(settings, "persist_filters", False)),
        storage_key=str(getattr(settings, "filters_storage_key", "taskFilters")),
    )


def create_initial_state(*, settings=None, kv: KeyValueStore | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if kv is None:
        kv = JsonFileKVStore(settings.filters_path)

    store = TaskStore(seed=DEMO_TASKS if settings.seed_demo_tasks else None)
    parser = TaskInputParser()
    facade = TaskFacade(store, SimulatedLatency(scale=settings.latency_scale), parser=parser)
    filters = TaskFilterEngine(store, build_filter_options(settings), kv=kv)

    logger.info("State ready tasks=%s persist_filters=%s", len(store.tasks), settings.persist_filters)
    return AppState(
        settings=settings,
        store=store,
        facade=facade,
        filters=filters,
        parser=parser,
        input_session=TaskInputSession(parser=parser),
    )
