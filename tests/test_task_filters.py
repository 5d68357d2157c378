# tests/test_task_filters.py

from __future__ import annotations

import asyncio
import json

import pytest

from taskdeck.core.errors import PersistenceWarning
from taskdeck.tasks.task_filters import (
    FilterOptions,
    FilterSpec,
    FilterState,
    TaskFilterEngine,
    active_filter_count,
    apply_filters,
    available_categories,
    has_active_filters,
    sort_tasks,
)
from taskdeck.tasks.task_store import TaskStore

from .fakes import FakeKVStore


def _ids(tasks) -> list[int]:
    return [t.id if hasattr(t, "id") else t["id"] for t in tasks]


def _no_debounce(**kwargs) -> FilterOptions:
    kwargs.setdefault("default_sort_by", "id")
    kwargs.setdefault("default_sort_order", "asc")
    return FilterOptions(enable_debounce=False, **kwargs)


# ---- pure pipeline ----


def test_search_matches_title_and_category_case_insensitively(store: TaskStore) -> None:
    spec = FilterSpec(search_text="PYTHON", sort_by="id", sort_order="asc")
    assert _ids(apply_filters(store.tasks, spec)) == [1]

    spec = FilterSpec(search_text="work", sort_by="id", sort_order="asc")
    assert _ids(apply_filters(store.tasks, spec)) == [3]


def test_search_case_sensitive(store: TaskStore) -> None:
    spec = FilterSpec(search_text="python", case_sensitive=True, sort_by=None)
    assert apply_filters(store.tasks, spec) == []


def test_search_below_min_length_is_inactive(store: TaskStore) -> None:
    spec = FilterSpec(search_text="zz", min_search_length=3, sort_by=None)
    assert len(apply_filters(store.tasks, spec)) == 3
    assert not has_active_filters(spec)


def test_status_priority_and_category_filters(store: TaskStore) -> None:
    assert _ids(apply_filters(store.tasks, FilterSpec(status="completed", sort_by=None))) == [2]
    assert _ids(apply_filters(store.tasks, FilterSpec(status="pending", sort_by=None))) == [1, 3]
    assert _ids(apply_filters(store.tasks, FilterSpec(priority="low", sort_by=None))) == [3]
    assert _ids(apply_filters(store.tasks, FilterSpec(category="project", sort_by=None))) == [2]


def test_disabled_stages_are_skipped(store: TaskStore) -> None:
    spec = FilterSpec(
        search_text="nothing matches",
        status="completed",
        enable_search=False,
        enable_status_filter=False,
        sort_by=None,
    )
    assert _ids(apply_filters(store.tasks, spec)) == [1, 2, 3]
    assert active_filter_count(spec) == 0


def test_filters_compose(store: TaskStore) -> None:
    spec = FilterSpec(search_text="o", status="pending", priority="high", sort_by=None)
    assert _ids(apply_filters(store.tasks, spec)) == [1]
    assert active_filter_count(spec) == 3


def test_apply_filters_does_not_mutate_input(store: TaskStore) -> None:
    tasks = list(store.tasks)
    before = [t.to_dict() for t in tasks]
    apply_filters(tasks, FilterSpec(search_text="o", status="pending", sort_by="title", sort_order="desc"))
    assert [t.to_dict() for t in tasks] == before
    assert _ids(tasks) == [1, 2, 3]


def test_apply_filters_is_idempotent(store: TaskStore) -> None:
    store.add({"title": "Organize notes", "priority": "low", "category": "work"})
    spec = FilterSpec(search_text="o", status="pending", sort_by="title", sort_order="desc")
    once = apply_filters(store.tasks, spec)
    assert _ids(once) == [3, 4, 1]
    assert apply_filters(once, spec) == once


def test_sort_by_text_ignores_case() -> None:
    tasks = [{"id": 1, "title": "banana"}, {"id": 2, "title": "Apple"}, {"id": 3, "title": "cherry"}]
    assert _ids(sort_tasks(tasks, "title", "asc")) == [2, 1, 3]
    assert _ids(sort_tasks(tasks, "title", "desc")) == [3, 1, 2]


def test_sort_puts_missing_values_last_in_both_directions() -> None:
    tasks = [{"id": 1, "due": 5}, {"id": 2}, {"id": 3, "due": 1}, {"id": 4, "due": None}]
    assert _ids(sort_tasks(tasks, "due", "asc")) == [3, 1, 2, 4]
    assert _ids(sort_tasks(tasks, "due", "desc")) == [1, 3, 2, 4]


def test_sort_is_stable_for_equal_keys() -> None:
    tasks = [{"id": i, "completed": i % 2 == 0} for i in range(1, 7)]
    assert _ids(sort_tasks(tasks, "completed", "asc")) == [1, 3, 5, 2, 4, 6]
    assert _ids(sort_tasks(tasks, "completed", "desc")) == [2, 4, 6, 1, 3, 5]


def test_available_categories_sorted_unique(store: TaskStore) -> None:
    store.add({"title": "x", "category": "learning"})
    assert available_categories(store.tasks) == ["learning", "project", "work"]


# ---- engine ----


def test_engine_view_follows_store_changes(store: TaskStore) -> None:
    engine = TaskFilterEngine(store, _no_debounce())
    engine.set_status("pending")
    assert _ids(engine.filtered_tasks) == [1, 3]

    store.toggle_completed(1)
    assert _ids(engine.filtered_tasks) == [3]

    engine.close()
    store.toggle_completed(3)
    # Detached engine keeps its last view.
    assert _ids(engine.filtered_tasks) == [3]


def test_engine_filtered_tasks_returns_copy(store: TaskStore) -> None:
    engine = TaskFilterEngine(store, _no_debounce())
    view = engine.filtered_tasks
    view.clear()
    assert len(engine.filtered_tasks) == 3
    engine.close()


def test_engine_rejects_invalid_selectors(store: TaskStore) -> None:
    engine = TaskFilterEngine(store, _no_debounce())
    with pytest.raises(ValueError):
        engine.set_status("done")
    with pytest.raises(ValueError):
        engine.set_priority("urgent")
    with pytest.raises(ValueError):
        engine.set_sort("title", "sideways")
    with pytest.raises(ValueError):
        engine.set_filter("colour", "red")
    assert engine.status == "all"
    engine.close()


def test_engine_set_filter_dispatch_and_clear(store: TaskStore) -> None:
    changes: list[FilterState] = []
    engine = TaskFilterEngine(store, _no_debounce(on_filter_change=changes.append))

    engine.set_filter("search", "o")
    engine.set_filter("priority", "medium")
    engine.set_filter("sortBy", "title")
    engine.set_filter("sortOrder", "desc")
    assert engine.effective_query == "o"
    assert engine.active_filter_count == 2
    assert _ids(engine.filtered_tasks) == [2]
    assert changes[-1] == FilterState(
        search="o", status="all", priority="medium", category="all", sort_by="title", sort_order="desc"
    )

    engine.clear_all_filters()
    assert not engine.has_active_filters
    assert (engine.sort_by, engine.sort_order) == ("id", "asc")
    assert _ids(engine.filtered_tasks) == [1, 2, 3]
    engine.close()


def test_toggle_sort_order(store: TaskStore) -> None:
    engine = TaskFilterEngine(store, _no_debounce())
    engine.toggle_sort_order()
    assert engine.sort_order == "desc"
    assert _ids(engine.filtered_tasks) == [3, 2, 1]
    engine.toggle_sort_order()
    assert engine.sort_order == "asc"
    engine.close()


def test_filter_stats_and_available_values(store: TaskStore) -> None:
    engine = TaskFilterEngine(store, _no_debounce())
    engine.set_status("completed")
    stats = engine.filter_stats
    assert (stats.total, stats.filtered, stats.hidden, stats.has_active_filters) == (3, 1, 2, True)
    assert engine.available_priorities == ["high", "medium", "low"]
    assert engine.available_categories == ["learning", "project", "work"]
    engine.close()

    hidden = TaskFilterEngine(
        store, _no_debounce(show_filter_count=False, enable_category_filter=False, enable_priority_filter=False)
    )
    assert hidden.filter_stats is None
    assert hidden.available_categories == []
    assert hidden.available_priorities == []
    hidden.close()


def test_search_without_running_loop_applies_immediately(store: TaskStore) -> None:
    engine = TaskFilterEngine(store, FilterOptions(debounce_ms=300, default_sort_by="id"))
    engine.set_search("docs")
    assert engine.effective_query == "docs"
    engine.close()


@pytest.mark.asyncio
async def test_search_is_debounced(store: TaskStore) -> None:
    seen: list[str] = []
    engine = TaskFilterEngine(
        store,
        FilterOptions(debounce_ms=20, default_sort_by="id", default_sort_order="asc", on_search_change=seen.append),
    )

    engine.set_search("l")
    engine.set_search("le")
    engine.set_search("learn")
    assert engine.search_query == "learn"
    assert engine.effective_query == ""
    assert len(engine.filtered_tasks) == 3

    await asyncio.sleep(0.08)
    assert seen == ["learn"]
    assert engine.effective_query == "learn"
    assert _ids(engine.filtered_tasks) == [1]
    engine.close()


@pytest.mark.asyncio
async def test_flush_and_close_cancel_pending_search(store: TaskStore) -> None:
    engine = TaskFilterEngine(store, FilterOptions(debounce_ms=50, default_sort_by="id"))
    engine.set_search("build")
    engine.flush_search()
    assert engine.effective_query == "build"

    engine.set_search("docs")
    engine.close()
    await asyncio.sleep(0.1)
    assert engine.effective_query == "build"


# ---- persistence ----


def test_selectors_are_persisted_and_restored(store: TaskStore) -> None:
    kv = FakeKVStore()
    options = _no_debounce(persist_filters=True, storage_key="f")
    engine = TaskFilterEngine(store, options, kv=kv)
    engine.set_status("pending")
    engine.set_search("doc")
    engine.close()

    saved = json.loads(kv.data["f"])
    assert saved["statusFilter"] == "pending"
    assert saved["searchQuery"] == "doc"
    assert set(saved) == {"searchQuery", "statusFilter", "priorityFilter", "categoryFilter", "sortBy", "sortOrder"}

    restored = TaskFilterEngine(store, _no_debounce(persist_filters=True, storage_key="f"), kv=kv)
    assert restored.status == "pending"
    assert restored.effective_query == "doc"
    assert _ids(restored.filtered_tasks) == [3]
    restored.close()


def test_persistence_disabled_writes_nothing(store: TaskStore) -> None:
    kv = FakeKVStore()
    engine = TaskFilterEngine(store, _no_debounce(), kv=kv)
    engine.set_status("pending")
    assert kv.writes == []
    engine.close()


def test_invalid_persisted_values_are_skipped(store: TaskStore) -> None:
    kv = FakeKVStore(data={"taskFilters": json.dumps({"statusFilter": "bogus", "priorityFilter": "high"})})
    engine = TaskFilterEngine(store, _no_debounce(persist_filters=True), kv=kv)
    assert engine.status == "all"
    assert engine.priority == "high"
    engine.close()


@pytest.mark.parametrize(
    "stored",
    [
        {"sortBy": ["title"]},
        {"sortBy": {"field": "title"}},
        {"categoryFilter": 5},
        {"statusFilter": ["pending"]},
        {"searchQuery": 42},
    ],
)
def test_wrongly_typed_persisted_values_are_skipped(store: TaskStore, stored: dict) -> None:
    kv = FakeKVStore(data={"taskFilters": json.dumps(stored)})
    engine = TaskFilterEngine(store, _no_debounce(persist_filters=True), kv=kv)
    assert (engine.sort_by, engine.category, engine.status, engine.search_query) == ("id", "all", "all", "")
    assert _ids(engine.filtered_tasks) == [1, 2, 3]
    engine.close()


def test_persisted_null_sort_keeps_insertion_order(store: TaskStore) -> None:
    kv = FakeKVStore(data={"taskFilters": json.dumps({"sortBy": None, "sortOrder": "desc"})})
    engine = TaskFilterEngine(store, _no_debounce(persist_filters=True), kv=kv)
    assert engine.sort_by is None
    assert _ids(engine.filtered_tasks) == [1, 2, 3]
    engine.close()


def test_corrupt_persisted_state_warns(store: TaskStore) -> None:
    kv = FakeKVStore(data={"taskFilters": "{not json"})
    with pytest.warns(PersistenceWarning):
        engine = TaskFilterEngine(store, _no_debounce(persist_filters=True), kv=kv)
    assert engine.status == "all"
    engine.close()


def test_storage_failures_warn_but_do_not_raise(store: TaskStore) -> None:
    kv = FakeKVStore(fail_get=True, fail_set=True)
    with pytest.warns(PersistenceWarning):
        engine = TaskFilterEngine(store, _no_debounce(persist_filters=True), kv=kv)
    with pytest.warns(PersistenceWarning):
        engine.set_status("completed")
    assert engine.status == "completed"
    assert _ids(engine.filtered_tasks) == [2]
    engine.close()
