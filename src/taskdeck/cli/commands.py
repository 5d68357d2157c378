# src/taskdeck/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import cast

from ..core.errors import TaskError
from ..core.state import AppState
from ..tasks.task_input import EXAMPLE_NAMES
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Task errors (validation, not found) become the reply text.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                result = cast(CommandHandler3, handler)(state, args, emit)
            else:
                result = cast(CommandHandler2, handler)(state, args)
            if inspect.isawaitable(result):
                result = await result
        except (TaskError, ValueError) as e:
            logger.debug("Command /%s rejected: %s", name, e)
            return f"Error: {e}"
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("Any other text is added as a new task.")
        return "\n".join(lines)


registry = CommandRegistry()


def format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    category = task.category if task.category is not None else "-"
    return f"[{mark}] #{task.id} {task.title} ({task.priority}, {category})"


def _parse_id(args: list[str], usage: str) -> int:
    if not args:
        raise ValueError(usage)
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        raise ValueError(f"Invalid task id: {args[0]!r}") from None


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    filters = state.filters
    tasks = filters.filtered_tasks
    lines = [format_task(t) for t in tasks] or ["(no tasks)"]

    stats = filters.filter_stats
    if stats is not None and stats.has_active_filters:
        lines.append(f"-- showing {stats.filtered} of {stats.total} ({stats.hidden} hidden)")
    return "\n".join(lines)


async def cmd_add(state: AppState, args: list[str]) -> str:
    record = state.parser.parse_one(" ".join(args))
    task = await state.facade.add_task(record)
    return f"Added {format_task(task)}"


async def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /import a, b, c
    /import [{"title": "x"}, {"title": "y", "priority": "high"}]
    """
    if emit:
        emit("Importing...")
    added = await state.facade.import_text(" ".join(args))
    return "\n".join([f"Imported {len(added)} task(s):"] + [format_task(t) for t in added])


async def cmd_example(state: AppState, args: list[str]) -> str:
    """
    /example <name>: load a sample into the input session, process it and add the result.
    Without a name, lists the available samples.
    """
    names = ", ".join(EXAMPLE_NAMES)
    if not args:
        return f"Examples: {names}"
    if args[0] not in EXAMPLE_NAMES:
        raise ValueError(f"Unknown example: {args[0]!r}. Choose one of: {names}")

    session = state.input_session
    session.load_example(args[0])
    summary = session.summary()
    parsed = session.process()
    records = parsed if isinstance(parsed, list) else [parsed]
    added = await state.facade.add_many(records)
    session.clear()
    return "\n".join([f"{summary.mode}: added {len(added)} task(s):"] + [format_task(t) for t in added])


async def cmd_done(state: AppState, args: list[str]) -> str:
    task = await state.facade.toggle_task(_parse_id(args, "Usage: /done <id>"))
    return format_task(task)


async def cmd_rm(state: AppState, args: list[str]) -> str:
    task = await state.facade.delete_task(_parse_id(args, "Usage: /rm <id>"))
    return f"Deleted #{task.id} {task.title}"


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <id> title=New title priority=high category=work
    Text after key= runs until the next key=.
    """
    task_id = _parse_id(args, "Usage: /edit <id> key=value ...")
    updates: dict[str, str] = {}
    key: str | None = None
    for word in args[1:]:
        if "=" in word:
            key, _, value = word.partition("=")
            updates[key] = value
        elif key is not None:
            updates[key] = f"{updates[key]} {word}"
    if not updates:
        raise ValueError("Usage: /edit <id> key=value ...")
    fields: dict[str, object] = dict(updates)
    if "completed" in fields:
        fields["completed"] = updates["completed"].strip().lower() in {"1", "true", "yes", "y", "on"}
    task = await state.facade.update_task(task_id, fields)
    return format_task(task)


async def cmd_clear(state: AppState, args: list[str]) -> str:
    count = await state.facade.clear_completed()
    return f"Removed {count} completed task(s)."


def cmd_stats(state: AppState, args: list[str]) -> str:
    s = state.facade.task_stats
    return (
        "Stats:\n"
        f"  Total: {s.total}\n"
        f"  Completed: {s.completed}\n"
        f"  Pending: {s.pending}\n"
        f"  Completion: {s.completion_rate}%"
    )


def cmd_search(state: AppState, args: list[str]) -> str:
    query = " ".join(args)
    state.filters.set_search(query)
    # The console shows results right away; skip the debounce window.
    state.filters.flush_search()
    return f"Search: {query!r}" if query else "Search cleared."


def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter status completed|pending|all
    /filter priority high|medium|low|all
    /filter category <name>|all
    """
    if len(args) < 2 or args[0] not in ("status", "priority", "category"):
        return "Usage: /filter status|priority|category <value>"
    kind, value = args[0], " ".join(args[1:])
    state.filters.set_filter(kind, value)
    return f"Filter {kind} = {value}"


def cmd_sort(state: AppState, args: list[str]) -> str:
    if not args:
        f = state.filters
        return f"Sorted by {f.sort_by} ({f.sort_order})."
    state.filters.set_sort(args[0], args[1].lower() if len(args) > 1 else None)
    return f"Sorted by {state.filters.sort_by} ({state.filters.sort_order})."


def cmd_reset(state: AppState, args: list[str]) -> str:
    state.filters.clear_all_filters()
    return "Filters cleared."


def cmd_categories(state: AppState, args: list[str]) -> str:
    cats = state.filters.available_categories
    return "Categories: " + (", ".join(cats) if cats else "(none)")


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show tasks with current filters.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <title>.")
registry.register("import", cmd_import, help_text="Add several tasks from text or JSON.")
registry.register("example", cmd_example, help_text="Add a sample input: /example <name>.")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.", aliases=["toggle"])
registry.register("edit", cmd_edit, help_text="Update fields: /edit <id> key=value ...")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("clear", cmd_clear, help_text="Remove completed tasks.")
registry.register("stats", cmd_stats, help_text="Show task totals.")
registry.register("search", cmd_search, help_text="Search titles/categories: /search <text>.")
registry.register("filter", cmd_filter, help_text="Filter: /filter status|priority|category <value>.")
registry.register("sort", cmd_sort, help_text="Sort: /sort <field> [asc|desc].")
registry.register("reset", cmd_reset, help_text="Clear all filters.")
registry.register("categories", cmd_categories, help_text="List known categories.")
