# src/taskdeck/core/errors.py

from __future__ import annotations

"""
Error taxonomy.

- ValidationError: malformed task input (parser, store add/update).
- NotFoundError: a task id is absent; raised by the facade, never by the store.
- PersistenceWarning: the optional key-value store failed; always non-fatal.
"""


class TaskError(Exception):
    """Base class for task errors surfaced to callers."""


class ValidationError(TaskError, ValueError):
    def __init__(self, message: str, *, index: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.index = index


class NotFoundError(TaskError, LookupError):
    def __init__(self, task_id: int, message: str = "Task not found") -> None:
        super().__init__(f"{message}: id={task_id}")
        self.task_id = task_id


class PersistenceWarning(UserWarning):
    """Reading or writing persisted filter state failed."""
