# src/taskdeck/tasks/task_store.py

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from ..core.errors import ValidationError
from .task_models import DEFAULT_CATEGORY, FIELD_ALIASES, Priority, Task, TaskChange, TaskStats

logger = logging.getLogger(__name__)

Subscriber = Callable[[TaskChange], None]

# Keys owned by the store; never copied from input.
_RESERVED_KEYS = frozenset({"id", "created_at", "createdAt", "completed"})
_IMMUTABLE_KEYS = frozenset({"id", "created_at", "createdAt"})

DEMO_TASKS: tuple[dict[str, Any], ...] = (
    {"title": "Learn Vue 3 Composition API", "priority": "high", "category": "learning"},
    {"title": "Build a todo app", "priority": "medium", "category": "project"},
    {"title": "Write documentation", "priority": "low", "category": "work"},
)


def _parse_category(raw: Any) -> str:
    if raw is None or raw == "":
        return DEFAULT_CATEGORY
    if not isinstance(raw, str):
        raise ValidationError(f"Invalid category: {raw!r}")
    return raw.strip() or DEFAULT_CATEGORY


def _now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TaskStore:
    """
    In-memory task collection.

    - ids come from a monotonic counter and are never reused
    - insertion order is the default display order
    - readers get tuples; only the methods below mutate the list
    - subscribers are notified after every successful mutation

    Lookups never raise: an unknown id yields None and the caller decides
    whether that is an error.
    """

    def __init__(self, seed: Iterable[Any] | None = None) -> None:
        self._tasks: list[Task] = []
        self._next_id = 1
        self._subscribers: list[Subscriber] = []
        self.loading = False
        self.error: str | None = None

        for item in seed or ():
            self.add(item)
        logger.info("TaskStore ready total=%s", len(self._tasks))

    # ---- low-level helpers ----

    @staticmethod
    def _fields_from_input(data: Any) -> dict[str, Any]:
        """Validate raw input and return constructor kwargs (without id/created_at)."""
        if isinstance(data, str):
            title: Any = data
            extra: dict[str, Any] = {}
            priority_raw: Any = None
            category_raw: Any = None
        elif isinstance(data, Mapping):
            title = data.get("title")
            priority_raw = data.get("priority")
            category_raw = data.get("category")
            extra = {
                k: v
                for k, v in data.items()
                if k not in _RESERVED_KEYS and k not in ("title", "priority", "category")
            }
        else:
            raise ValidationError(f"Cannot create a task from {type(data).__name__}")

        if not isinstance(title, str) or not title.strip():
            raise ValidationError("title is required")

        try:
            priority = Priority.parse(priority_raw)
        except ValueError as e:
            raise ValidationError(str(e)) from None

        return {
            "title": title,
            "priority": priority,
            "category": _parse_category(category_raw),
            "extra": extra,
        }

    def _create(self, fields: dict[str, Any]) -> Task:
        task = Task(id=self._next_id, created_at=_now_iso(), **fields)
        self._next_id += 1
        self._tasks.append(task)
        return task

    def _find_index(self, task_id: int) -> int:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        return -1

    def _notify(self, kind: str, tasks: Iterable[Task]) -> None:
        change = TaskChange(kind=kind, tasks=tuple(tasks))
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:
                logger.exception("Task subscriber failed kind=%s", kind)

    # ---- change notification ----

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ---- derived state ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def next_id(self) -> int:
        return self._next_id

    @property
    def completed_tasks(self) -> list[Task]:
        return [t for t in self._tasks if t.completed]

    @property
    def pending_tasks(self) -> list[Task]:
        return [t for t in self._tasks if not t.completed]

    @property
    def task_stats(self) -> TaskStats:
        total = len(self._tasks)
        completed = len(self.completed_tasks)
        # Round half up (round() would round 12.5 down to 12).
        rate = math.floor(completed / total * 100 + 0.5) if total else 0
        return TaskStats(
            total=total,
            completed=completed,
            pending=total - completed,
            completion_rate=rate,
        )

    # ---- public API ----

    def get_by_id(self, task_id: int) -> Task | None:
        idx = self._find_index(task_id)
        return self._tasks[idx] if idx != -1 else None

    def has_task(self, task_id: int) -> bool:
        return self._find_index(task_id) != -1

    def add(self, data: Any) -> Task:
        """
        Create a task from a title string or a record with a "title" key.

        Missing priority/category fall back to medium/general.
        """
        task = self._create(self._fields_from_input(data))
        logger.debug("Task added id=%s priority=%s category=%s", task.id, task.priority, task.category)
        self._notify("add", [task])
        return task

    def add_many(self, items: Iterable[Any]) -> list[Task]:
        """
        Add several tasks in order.

        Fail-fast: every item is validated first; if any is malformed nothing is added.
        """
        validated: list[dict[str, Any]] = []
        for index, item in enumerate(items):
            try:
                validated.append(self._fields_from_input(item))
            except ValidationError as e:
                raise ValidationError(f"Invalid task at index {index}: {e.message}", index=index) from e

        created = [self._create(fields) for fields in validated]
        logger.debug("Tasks added count=%s", len(created))
        if created:
            self._notify("add_many", created)
        return created

    def update(self, task_id: int, updates: Mapping[str, Any]) -> Task | None:
        idx = self._find_index(task_id)
        if idx == -1:
            return None

        bad = _IMMUTABLE_KEYS.intersection(updates)
        if bad:
            raise ValidationError(f"Cannot change immutable field(s): {', '.join(sorted(bad))}")

        # Validate everything before touching the task.
        changes: dict[str, Any] = {}
        for key, value in updates.items():
            attr = FIELD_ALIASES.get(key, key)
            if attr == "title":
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError("title is required")
            elif attr == "priority":
                try:
                    value = Priority.parse(value)
                except ValueError as e:
                    raise ValidationError(str(e)) from None
            elif attr == "category":
                value = _parse_category(value)
            elif attr == "completed":
                value = bool(value)
            changes[attr] = value

        task = self._tasks[idx]
        for attr, value in changes.items():
            if attr in ("title", "priority", "category", "completed"):
                setattr(task, attr, value)
            else:
                task.extra[attr] = value

        logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))
        self._notify("update", [task])
        return task

    def remove(self, task_id: int) -> Task | None:
        idx = self._find_index(task_id)
        if idx == -1:
            return None
        task = self._tasks.pop(idx)
        logger.debug("Task removed id=%s", task_id)
        self._notify("remove", [task])
        return task

    def toggle_completed(self, task_id: int) -> Task | None:
        task = self.get_by_id(task_id)
        if task is None:
            return None
        task.completed = not task.completed
        logger.debug("Task toggled id=%s completed=%s", task_id, task.completed)
        self._notify("toggle", [task])
        return task

    def clear_completed(self) -> int:
        """Drop completed tasks, keeping the relative order of the rest. Returns the count removed."""
        removed = [t for t in self._tasks if t.completed]
        self._tasks = [t for t in self._tasks if not t.completed]
        logger.debug("Cleared completed tasks count=%s", len(removed))
        if removed:
            self._notify("clear_completed", removed)
        return len(removed)

    def set_loading(self, loading: bool) -> None:
        self.loading = loading

    def set_error(self, error: str | None) -> None:
        self.error = error
