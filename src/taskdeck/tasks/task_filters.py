# src/taskdeck/tasks/task_filters.py

from __future__ import annotations

"""
Task filtering and sorting.

apply_filters() is a pure function: FilterSpec + tasks -> new list.
TaskFilterEngine holds the user-editable selectors, debounces search edits,
caches the derived view and optionally persists selectors to a key-value store.
"""

import asyncio
import functools
import json
import logging
import warnings
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from ..core.errors import PersistenceWarning
from ..core.ports import KeyValueStore, TaskSource
from .task_models import Priority, Task

logger = logging.getLogger(__name__)

ALL = "all"
STATUS_VALUES = (ALL, "completed", "pending")
PRIORITY_VALUES = (ALL, *(p.value for p in Priority))
SORT_ORDERS = ("asc", "desc")
AVAILABLE_PRIORITIES = tuple(p.value for p in Priority)

# Keys of the persisted JSON object.
_PERSIST_KEYS = {
    "searchQuery": "search_query",
    "statusFilter": "status",
    "priorityFilter": "priority",
    "categoryFilter": "category",
    "sortBy": "sort_by",
    "sortOrder": "sort_order",
}


@dataclass(frozen=True, slots=True)
class FilterSpec:
    search_text: str = ""
    search_fields: tuple[str, ...] = ("title", "category")
    case_sensitive: bool = False
    status: str = ALL
    priority: str = ALL
    category: str = ALL
    sort_by: str | None = "created_at"
    sort_order: str = "desc"
    debounce_ms: int = 300
    min_search_length: int = 1

    enable_search: bool = True
    enable_status_filter: bool = True
    enable_priority_filter: bool = True
    enable_category_filter: bool = True
    enable_sorting: bool = True


@dataclass(frozen=True, slots=True)
class FilterStats:
    total: int
    filtered: int
    hidden: int
    has_active_filters: bool


@dataclass(frozen=True, slots=True)
class FilterState:
    """Snapshot passed to on_filter_change."""

    search: str
    status: str
    priority: str
    category: str
    sort_by: str | None
    sort_order: str


# ---- pure pipeline ----


def _field(task: Any, name: str) -> Any:
    if isinstance(task, Task):
        return task.get_field(name)
    if isinstance(task, dict):
        return task.get(name)
    return getattr(task, name, None)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _search_active(spec: FilterSpec) -> bool:
    return spec.enable_search and len(spec.search_text) >= spec.min_search_length


def _matches_search(task: Any, query: str, spec: FilterSpec) -> bool:
    for name in spec.search_fields:
        raw = _field(task, name)
        if raw is None:
            continue
        text = _as_text(raw)
        if not spec.case_sensitive:
            text = text.casefold()
        if query in text:
            return True
    return False


def _compare_values(a: Any, b: Any) -> int:
    """Compare two non-None sort values."""
    if isinstance(a, str) or isinstance(b, str):
        a, b = _as_text(a).casefold(), _as_text(b).casefold()
    elif isinstance(a, bool) or isinstance(b, bool):
        a, b = (1 if a else 0), (1 if b else 0)
    elif isinstance(a, (int, float)) and isinstance(b, (int, float)):
        pass
    else:
        a, b = _as_text(a).casefold(), _as_text(b).casefold()

    if a > b:
        return 1
    if a < b:
        return -1
    return 0


def sort_tasks(tasks: Iterable[Any], sort_by: str, sort_order: str = "asc") -> list[Any]:
    """Stable sort; tasks without a value for sort_by go last in either direction."""
    present: list[Any] = []
    missing: list[Any] = []
    for task in tasks:
        (missing if _field(task, sort_by) is None else present).append(task)

    sign = -1 if sort_order == "desc" else 1

    def cmp(x: Any, y: Any) -> int:
        return sign * _compare_values(_field(x, sort_by), _field(y, sort_by))

    present.sort(key=functools.cmp_to_key(cmp))
    return present + missing


def apply_filters(tasks: Iterable[Any], spec: FilterSpec) -> list[Any]:
    """Search -> status -> priority -> category -> sort. Never mutates tasks."""
    result = list(tasks)

    if _search_active(spec):
        query = spec.search_text if spec.case_sensitive else spec.search_text.casefold()
        result = [t for t in result if _matches_search(t, query, spec)]

    if spec.enable_status_filter and spec.status != ALL:
        if spec.status == "completed":
            result = [t for t in result if _field(t, "completed")]
        elif spec.status == "pending":
            result = [t for t in result if not _field(t, "completed")]

    if spec.enable_priority_filter and spec.priority != ALL:
        result = [t for t in result if _field(t, "priority") == spec.priority]

    if spec.enable_category_filter and spec.category != ALL:
        result = [t for t in result if _field(t, "category") == spec.category]

    if spec.enable_sorting and spec.sort_by:
        result = sort_tasks(result, spec.sort_by, spec.sort_order)

    return result


def active_filter_count(spec: FilterSpec) -> int:
    return sum(
        (
            _search_active(spec),
            spec.enable_status_filter and spec.status != ALL,
            spec.enable_priority_filter and spec.priority != ALL,
            spec.enable_category_filter and spec.category != ALL,
        )
    )


def has_active_filters(spec: FilterSpec) -> bool:
    return active_filter_count(spec) > 0


def available_categories(tasks: Iterable[Any]) -> list[str]:
    return sorted({c for c in (_field(t, "category") for t in tasks) if c is not None})


# ---- stateful engine ----


def _valid_persisted(attr: str, value: Any, allowed: dict[str, tuple[str, ...]]) -> bool:
    if attr in allowed:
        return isinstance(value, str) and value in allowed[attr]
    if attr == "sort_by":
        return value is None or isinstance(value, str)
    return isinstance(value, str)


@dataclass(slots=True)
class FilterOptions:
    search_fields: tuple[str, ...] = ("title", "category")
    search_case_sensitive: bool = False
    search_min_length: int = 1

    default_sort_by: str | None = "created_at"
    default_sort_order: str = "desc"

    debounce_ms: int = 300
    enable_debounce: bool = True

    enable_search: bool = True
    enable_status_filter: bool = True
    enable_priority_filter: bool = True
    enable_category_filter: bool = True
    enable_sorting: bool = True

    show_filter_count: bool = True
    persist_filters: bool = False
    storage_key: str = "taskFilters"

    on_filter_change: Callable[[FilterState], None] | None = None
    on_search_change: Callable[[str], None] | None = None


class TaskFilterEngine:
    """
    Filter/sort state over a TaskSource.

    The derived view is cached and recomputed after store changes or selector edits.
    Search edits are debounced with an asyncio timer; call close() when done.
    """

    def __init__(
        self,
        source: TaskSource,
        options: FilterOptions | None = None,
        *,
        kv: KeyValueStore | None = None,
    ) -> None:
        self._source = source
        self.options = options or FilterOptions()
        self._kv = kv

        self.search_query = ""
        self.effective_query = ""
        self.status = ALL
        self.priority = ALL
        self.category = ALL
        self.sort_by = self.options.default_sort_by
        self.sort_order = self.options.default_sort_order

        self._timer: asyncio.TimerHandle | None = None
        self._view: list[Any] | None = None
        self._closed = False

        if self.options.persist_filters:
            self._restore()

        self._unsubscribe: Callable[[], None] | None = source.subscribe(self._on_source_change)

    # ---- persistence ----

    def _restore(self) -> None:
        if self._kv is None:
            return
        try:
            raw = self._kv.get(self.options.storage_key)
        except Exception as e:
            warnings.warn(f"Failed to load persisted filters: {e}", PersistenceWarning, stacklevel=3)
            return
        if not raw:
            return

        try:
            stored = json.loads(raw)
        except json.JSONDecodeError as e:
            warnings.warn(f"Ignoring corrupt persisted filters: {e}", PersistenceWarning, stacklevel=3)
            return
        if not isinstance(stored, dict):
            warnings.warn("Ignoring persisted filters: not an object", PersistenceWarning, stacklevel=3)
            return

        allowed = {"status": STATUS_VALUES, "priority": PRIORITY_VALUES, "sort_order": SORT_ORDERS}
        for key, attr in _PERSIST_KEYS.items():
            if key not in stored:
                continue
            value = stored[key]
            if not _valid_persisted(attr, value, allowed):
                logger.warning("Ignoring persisted %s=%r", key, value)
                continue
            setattr(self, attr, value)
        self.effective_query = self.search_query
        logger.debug("Restored persisted filters key=%s", self.options.storage_key)

    def _persist(self) -> None:
        if not self.options.persist_filters or self._kv is None:
            return
        payload = {key: getattr(self, attr) for key, attr in _PERSIST_KEYS.items()}
        try:
            self._kv.set(self.options.storage_key, json.dumps(payload))
        except Exception as e:
            warnings.warn(f"Failed to persist filters: {e}", PersistenceWarning, stacklevel=3)

    # ---- change plumbing ----

    def _on_source_change(self, _change: Any) -> None:
        self._view = None

    def _changed(self) -> None:
        self._view = None
        self._persist()
        callback = self.options.on_filter_change
        if callback is not None:
            callback(
                FilterState(
                    search=self.effective_query,
                    status=self.status,
                    priority=self.priority,
                    category=self.category,
                    sort_by=self.sort_by,
                    sort_order=self.sort_order,
                )
            )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _apply_query(self, query: str) -> None:
        self._timer = None
        if self._closed:
            return
        self.effective_query = query
        self._view = None
        callback = self.options.on_search_change
        if callback is not None:
            callback(query)

    # ---- selectors ----

    def set_search(self, query: str) -> None:
        """Record a search edit; the effective query follows after the debounce interval."""
        self.search_query = query
        self._cancel_timer()

        if not self.options.enable_debounce or self.options.debounce_ms <= 0:
            self._apply_query(query)
        else:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # No event loop to debounce on (plain synchronous caller).
                self._apply_query(query)
            else:
                self._timer = loop.call_later(self.options.debounce_ms / 1000.0, self._apply_query, query)

        self._changed()

    def flush_search(self) -> None:
        """Apply the pending search edit now."""
        if self._timer is not None:
            self._cancel_timer()
            self._apply_query(self.search_query)

    def set_status(self, status: str) -> None:
        if status not in STATUS_VALUES:
            raise ValueError(f"Invalid status filter: {status!r}")
        self.status = status
        self._changed()

    def set_priority(self, priority: str) -> None:
        if priority not in PRIORITY_VALUES:
            raise ValueError(f"Invalid priority filter: {priority!r}")
        self.priority = priority
        self._changed()

    def set_category(self, category: str) -> None:
        self.category = category
        self._changed()

    def set_sort(self, sort_by: str | None, sort_order: str | None = None) -> None:
        if sort_order is not None and sort_order not in SORT_ORDERS:
            raise ValueError(f"Invalid sort order: {sort_order!r}")
        self.sort_by = sort_by
        if sort_order is not None:
            self.sort_order = sort_order
        self._changed()

    def toggle_sort_order(self) -> None:
        self.set_sort(self.sort_by, "desc" if self.sort_order == "asc" else "asc")

    def set_filter(self, kind: str, value: Any) -> None:
        if kind == "search":
            self.set_search(value)
        elif kind == "status":
            self.set_status(value)
        elif kind == "priority":
            self.set_priority(value)
        elif kind == "category":
            self.set_category(value)
        elif kind == "sortBy":
            self.set_sort(value)
        elif kind == "sortOrder":
            self.set_sort(self.sort_by, value)
        else:
            raise ValueError(f"Unknown filter: {kind!r}")

    def clear_all_filters(self) -> None:
        self._cancel_timer()
        self.search_query = ""
        self.effective_query = ""
        self.status = ALL
        self.priority = ALL
        self.category = ALL
        self.sort_by = self.options.default_sort_by
        self.sort_order = self.options.default_sort_order
        self._changed()

    # ---- derived view ----

    @property
    def spec(self) -> FilterSpec:
        o = self.options
        return FilterSpec(
            search_text=self.effective_query,
            search_fields=tuple(o.search_fields),
            case_sensitive=o.search_case_sensitive,
            status=self.status,
            priority=self.priority,
            category=self.category,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            debounce_ms=o.debounce_ms,
            min_search_length=o.search_min_length,
            enable_search=o.enable_search,
            enable_status_filter=o.enable_status_filter,
            enable_priority_filter=o.enable_priority_filter,
            enable_category_filter=o.enable_category_filter,
            enable_sorting=o.enable_sorting,
        )

    @property
    def filtered_tasks(self) -> list[Any]:
        if self._view is None:
            self._view = apply_filters(self._source.tasks, self.spec)
        return list(self._view)

    @property
    def has_active_filters(self) -> bool:
        return has_active_filters(self.spec)

    @property
    def active_filter_count(self) -> int:
        return active_filter_count(self.spec)

    @property
    def available_categories(self) -> list[str]:
        if not self.options.enable_category_filter:
            return []
        return available_categories(self._source.tasks)

    @property
    def available_priorities(self) -> list[str]:
        if not self.options.enable_priority_filter:
            return []
        return list(AVAILABLE_PRIORITIES)

    @property
    def filter_stats(self) -> FilterStats | None:
        if not self.options.show_filter_count:
            return None
        total = len(self._source.tasks)
        filtered = len(self.filtered_tasks)
        return FilterStats(
            total=total,
            filtered=filtered,
            hidden=total - filtered,
            has_active_filters=self.has_active_filters,
        )

    def close(self) -> None:
        """Cancel the pending search timer and stop listening to the source."""
        self._closed = True
        self._cancel_timer()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

