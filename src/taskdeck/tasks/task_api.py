# src/taskdeck/tasks/task_api.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from ..core.errors import NotFoundError, TaskError, ValidationError
from ..core.ports import MutationBackend
from .task_input import TaskInputParser
from .task_models import Task, TaskStats
from .task_store import TaskStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LATENCY: dict[str, float] = {
    "add": 0.1,
    "update": 0.05,
    "delete": 0.05,
    "toggle": 0.0,
    "clear_completed": 0.1,
    "add_many": 0.2,
}


class SimulatedLatency:
    """
    MutationBackend that only waits: a stand-in for a remote API call.

    scale=0 disables the delay (the coroutine still yields once).
    """

    def __init__(self, delays: Mapping[str, float] | None = None, *, scale: float = 1.0) -> None:
        self.delays = dict(DEFAULT_LATENCY if delays is None else delays)
        self.scale = max(0.0, float(scale))

    async def before_mutation(self, op: str) -> None:
        await asyncio.sleep(self.delays.get(op, 0.0) * self.scale)


class TaskFacade:
    """
    Async task operations on top of TaskStore.

    Every mutation:
    - sets store.loading and clears store.error before starting
    - awaits the backend seam, then applies the change to the store
    - on failure records a readable store.error and re-raises
    - always resets store.loading

    Mutations are serialized (one writer at a time).
    "Not found" results from the store become NotFoundError here.
    """

    def __init__(
        self,
        store: TaskStore,
        backend: MutationBackend | None = None,
        *,
        parser: TaskInputParser | None = None,
    ) -> None:
        self.store = store
        self.backend: MutationBackend = backend or SimulatedLatency()
        self.parser = parser or TaskInputParser()
        self._lock = asyncio.Lock()

    async def _mutate(self, op: str, error_message: str, apply: Callable[[], T]) -> T:
        async with self._lock:
            self.store.set_loading(True)
            self.store.set_error(None)
            try:
                await self.backend.before_mutation(op)
                return apply()
            except TaskError as e:
                logger.warning("Task operation rejected op=%s: %s", op, e)
                self.store.set_error(error_message)
                raise
            except Exception:
                logger.exception("Task operation failed op=%s", op)
                self.store.set_error(error_message)
                raise
            finally:
                self.store.set_loading(False)

    @staticmethod
    def _require(task: Task | None, task_id: int) -> Task:
        if task is None:
            raise NotFoundError(task_id)
        return task

    # ---- state ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self.store.tasks

    @property
    def completed_tasks(self) -> list[Task]:
        return self.store.completed_tasks

    @property
    def pending_tasks(self) -> list[Task]:
        return self.store.pending_tasks

    @property
    def task_stats(self) -> TaskStats:
        return self.store.task_stats

    @property
    def loading(self) -> bool:
        return self.store.loading

    @property
    def error(self) -> str | None:
        return self.store.error

    # ---- mutations ----

    async def add_task(self, data: Any) -> Task:
        task = await self._mutate("add", "Failed to add task", lambda: self.store.add(data))
        logger.info("Task added id=%s", task.id)
        return task

    async def update_task(self, task_id: int, updates: Mapping[str, Any]) -> Task:
        return await self._mutate(
            "update",
            "Failed to update task",
            lambda: self._require(self.store.update(task_id, updates), task_id),
        )

    async def delete_task(self, task_id: int) -> Task:
        return await self._mutate(
            "delete",
            "Failed to delete task",
            lambda: self._require(self.store.remove(task_id), task_id),
        )

    async def toggle_task(self, task_id: int) -> Task:
        return await self._mutate(
            "toggle",
            "Failed to toggle task",
            lambda: self._require(self.store.toggle_completed(task_id), task_id),
        )

    async def clear_completed(self) -> int:
        count = await self._mutate(
            "clear_completed", "Failed to clear completed tasks", self.store.clear_completed
        )
        logger.info("Cleared %s completed task(s)", count)
        return count

    async def add_many(self, items: Iterable[Any]) -> list[Task]:
        batch = list(items)
        added = await self._mutate(
            "add_many", "Failed to add multiple tasks", lambda: self.store.add_many(batch)
        )
        logger.info("%s task(s) added", len(added))
        return added

    async def import_text(self, text: str) -> list[Task]:
        """Parse free text / JSON (see TaskInputParser.parse_bulk_text) and add the result."""
        try:
            records = self.parser.parse_bulk_text(text)
        except ValidationError:
            self.store.set_error("Failed to import tasks")
            raise
        return await self.add_many(records)

    # ---- lookups ----

    def get_task_by_id(self, task_id: int) -> Task | None:
        return self.store.get_by_id(task_id)

    def has_task(self, task_id: int) -> bool:
        return self.store.has_task(task_id)

    def clear_error(self) -> None:
        self.store.set_error(None)

