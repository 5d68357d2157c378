# src/taskdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..tasks.task_api import TaskFacade
from ..tasks.task_filters import TaskFilterEngine
from ..tasks.task_input import TaskInputParser, TaskInputSession
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    store: TaskStore
    facade: TaskFacade
    filters: TaskFilterEngine
    parser: TaskInputParser = field(default_factory=TaskInputParser)
    input_session: TaskInputSession = field(default_factory=TaskInputSession)

    def close(self) -> None:
        self.filters.close()
