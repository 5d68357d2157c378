# src/taskdeck/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import format_task
from ..cli.commands import registry as command_registry
from ..core.errors import TaskError
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


async def handle_line(state: AppState, line: str) -> str | None:
    """
    One console line -> reply text.

    Slash commands go to the registry; anything else is added as a task.
    """
    cmd_response = await command_registry.handle(state, line, emit=_print_ts)
    if cmd_response is not None:
        return cmd_response

    try:
        record = state.parser.parse_one(line)
        task = await state.facade.add_task(record)
    except TaskError as e:
        return f"Error: {e}"
    return f"Added {format_task(task)}"


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (tasks=%s).", len(state.store.tasks))
    _print_ts("[CONSOLE] Type a task to add it. Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = await handle_line(state, user_input)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response:
            _print_ts(response)

    logger.info("Console connector finished.")
