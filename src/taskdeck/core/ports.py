# src/taskdeck/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps persistence and the mutation backend swappable and makes testing easier.
"""

from collections.abc import Callable
from typing import Any, Awaitable, Protocol

TaskRecord = dict[str, Any]
# Normalized task-creation record: {"title": ..., "priority": ..., "category": ..., **extra}.


class KeyValueStore(Protocol):
    """String key-value storage (browser localStorage equivalent)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MutationBackend(Protocol):
    """
    The seam where a remote call would happen before a mutation is applied.

    op is one of: add, update, delete, toggle, clear_completed, add_many.
    Raising from before_mutation aborts the mutation.
    """

    def before_mutation(self, op: str) -> Awaitable[None]: ...


class TaskSource(Protocol):
    """Read-only view of the task collection plus change notification."""

    @property
    def tasks(self) -> tuple[Any, ...]: ...

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]: ...
