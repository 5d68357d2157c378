# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdeck.cli.bootstrap import create_initial_state
from taskdeck.core.state import AppState
from taskdeck.tasks.task_api import TaskFacade
from taskdeck.tasks.task_store import TaskStore

from .fakes import FakeKVStore, RecordingBackend


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskdeck-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        filters_path=tmp_path / "filters.json",
        persist_filters=False,
        filters_storage_key="taskFilters",
        search_fields=["title", "category"],
        search_case_sensitive=False,
        search_min_length=1,
        search_debounce_ms=0,
        default_sort_by="id",
        default_sort_order="asc",
        latency_scale=0.0,
        seed_demo_tasks=True,
    )


@pytest.fixture()
def store() -> TaskStore:
    """Three tasks: two pending, one completed (id 2)."""
    s = TaskStore(
        seed=[
            {"title": "Learn Python", "priority": "high", "category": "learning"},
            {"title": "Build a todo app", "priority": "medium", "category": "project"},
            {"title": "Write documentation", "priority": "low", "category": "work"},
        ]
    )
    s.toggle_completed(2)
    return s


@pytest.fixture()
def backend(store: TaskStore) -> RecordingBackend:
    return RecordingBackend(store)


@pytest.fixture()
def facade(store: TaskStore, backend: RecordingBackend) -> TaskFacade:
    return TaskFacade(store, backend)


@pytest.fixture()
def kv() -> FakeKVStore:
    return FakeKVStore()


@pytest.fixture()
def state(settings: SimpleNamespace, kv: FakeKVStore) -> Iterator[AppState]:
    """AppState wired through the real composition root with a fake kv store."""
    app = create_initial_state(settings=settings, kv=kv)
    yield app
    app.close()
