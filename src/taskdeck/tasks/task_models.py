# src/taskdeck/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

DEFAULT_CATEGORY = "general"

# Field names as they appear in raw input / persisted filter state.
FIELD_ALIASES = {
    "createdAt": "created_at",
}


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, raw: Any) -> Priority:
        """
        Normalize a raw priority.

        Empty/None -> MEDIUM. Unknown values raise ValueError.
        """
        if raw is None or raw == "":
            return cls.MEDIUM
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            raise ValueError(f"Invalid priority: {raw!r}")
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid priority: {raw!r}") from None


@dataclass(slots=True)
class Task:
    id: int
    title: str
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    category: str | None = DEFAULT_CATEGORY
    created_at: str = ""

    # Additional caller-supplied fields passed through from input.
    extra: dict[str, Any] = field(default_factory=dict)

    def get_field(self, name: str) -> Any:
        """Read a field by name (aliases and extra fields included); None if absent."""
        attr = FIELD_ALIASES.get(name, name)
        if attr in _TASK_ATTRS:
            return getattr(self, attr)
        return self.extra.get(name)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update(
            id=self.id,
            title=self.title,
            completed=self.completed,
            priority=str(self.priority),
            category=self.category,
            createdAt=self.created_at,
        )
        return out


_TASK_ATTRS = frozenset({"id", "title", "completed", "priority", "category", "created_at"})


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    completion_rate: int


@dataclass(frozen=True, slots=True)
class TaskChange:
    """
    Change notification delivered to store subscribers.

    kind: add | add_many | update | remove | toggle | clear_completed
    tasks: tasks affected by the change (removed tasks for remove/clear_completed).
    """

    kind: str
    tasks: tuple[Task, ...]
