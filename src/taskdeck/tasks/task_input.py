# src/taskdeck/tasks/task_input.py

from __future__ import annotations

"""
Task input parsing.

Accepted shapes:
- "Task title"
- {"title": "Task", "priority": "high", "category": "work", ...extra}
- ["Task 1", {"title": "Task 2"}]
- free text: one task per line or comma, optionally JSON ({...} lines or a whole JSON document)

Everything is normalized into TaskRecord dicts that TaskStore.add accepts.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..core.errors import ValidationError
from ..core.ports import TaskRecord
from .task_models import DEFAULT_CATEGORY, Priority

logger = logging.getLogger(__name__)

INPUT_MODES = ("simple", "advanced", "bulk")


def _is_object_line(line: str) -> bool:
    return line.startswith("{") and line.endswith("}")


def _split_commas(line: str) -> list[str]:
    """Split on commas outside {...} nesting (and outside JSON strings within it)."""
    parts: list[str] = []
    start = 0
    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(line):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(line[start:i])
            start = i + 1
    parts.append(line[start:])
    return parts


def _split_lines(text: str) -> list[str]:
    """Split on newlines, then on top-level commas; {...} segments stay whole."""
    out: list[str] = []
    for raw_line in text.splitlines():
        out.extend(p.strip() for p in _split_commas(raw_line) if p.strip())
    return out


class TaskInputParser:
    """Normalize heterogeneous input into task records, or raise ValidationError."""

    def parse_one(self, value: Any) -> TaskRecord | list[TaskRecord]:
        if value is None:
            raise ValidationError("Input cannot be empty")

        if isinstance(value, str):
            return self._parse_string(value)

        if isinstance(value, Mapping):
            return self._parse_mapping(value)

        if isinstance(value, (list, tuple)):
            if not value:
                raise ValidationError("Task array cannot be empty")
            records: list[TaskRecord] = []
            for index, item in enumerate(value):
                try:
                    parsed = self.parse_one(item)
                except ValidationError as e:
                    raise ValidationError(
                        f"Invalid task at index {index}: {e.message}", index=index
                    ) from e
                if isinstance(parsed, list):
                    records.extend(parsed)
                else:
                    records.append(parsed)
            return records

        raise ValidationError("Invalid input type. Expected string, object, or array.")

    @staticmethod
    def _parse_string(value: str) -> TaskRecord:
        title = value.strip()
        if not title:
            raise ValidationError("Task title cannot be empty")
        return {
            "title": title,
            "priority": Priority.MEDIUM,
            "category": DEFAULT_CATEGORY,
        }

    @staticmethod
    def _parse_mapping(value: Mapping[str, Any]) -> TaskRecord:
        title = value.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Task object must have a valid title")

        try:
            priority = Priority.parse(value.get("priority"))
        except ValueError as e:
            raise ValidationError(str(e)) from None

        category = value.get("category")
        if category is None or category == "":
            category = DEFAULT_CATEGORY
        elif not isinstance(category, str):
            raise ValidationError(f"Invalid category: {category!r}")
        else:
            category = category.strip() or DEFAULT_CATEGORY

        record: TaskRecord = {k: v for k, v in value.items() if k not in ("title", "priority", "category")}
        record.update(title=title.strip(), priority=priority, category=category)
        return record

    def parse_bulk_text(self, text: Any) -> list[TaskRecord]:
        """
        Parse free text into records: one task per line or top-level comma.

        A text that is entirely a JSON array, object or string goes through parse_one
        and its ValidationError propagates; unlike a bad {...} line, it does not fall
        back to plain titles, so a broken JSON document is reported instead of being
        imported as junk.
        """
        if not isinstance(text, str):
            raise ValidationError("Bulk input must be a string")

        trimmed = text.strip()
        if not trimmed:
            raise ValidationError("Bulk input cannot be empty")

        # Whole document as JSON first. Scalars other than strings are read as plain text.
        try:
            document = json.loads(trimmed)
        except json.JSONDecodeError:
            pass
        else:
            if isinstance(document, (list, dict, str)):
                parsed = self.parse_one(document)
                return parsed if isinstance(parsed, list) else [parsed]

        lines = _split_lines(trimmed)
        if not lines:
            raise ValidationError("No valid tasks found in bulk input")

        records = [self._parse_line(line) for line in lines]
        logger.debug("Parsed bulk input lines=%s", len(records))
        return records

    def _parse_line(self, line: str) -> TaskRecord:
        if _is_object_line(line):
            try:
                return self._parse_mapping(json.loads(line))
            except (json.JSONDecodeError, ValidationError):
                # Looks like an object but isn't a valid task: keep the line as a title.
                logger.debug("Object-like line fell back to plain text: %s", line)
        return self._parse_string(line)


@dataclass(slots=True)
class InputSummary:
    mode: str
    preview: str
    valid: bool
    details: dict[str, Any] | None = None


def _blank_advanced() -> dict[str, Any]:
    return {"title": "", "priority": "medium", "category": DEFAULT_CATEGORY}


_EXAMPLES: dict[str, tuple[str, Any]] = {
    "simple": ("simple", "Review project documentation"),
    "advanced": (
        "advanced",
        {"title": "Implement user authentication", "priority": "high", "category": "development"},
    ),
    "bulk-text": (
        "bulk",
        "Setup development environment\nWrite unit tests\nDeploy to staging\nReview code changes",
    ),
    "bulk-json": (
        "bulk",
        "[\n"
        '  {"title": "Design database schema", "priority": "high", "category": "database"},\n'
        '  {"title": "Create API endpoints", "priority": "medium", "category": "backend"},\n'
        '  {"title": "Build user interface", "priority": "medium", "category": "frontend"}\n'
        "]",
    ),
    "bulk-mixed": (
        "bulk",
        "Quick task\n"
        '{"title": "Complex task", "priority": "high", "category": "important"}\n'
        "Another simple task",
    ),
}

EXAMPLE_NAMES = tuple(_EXAMPLES)


@dataclass
class TaskInputSession:
    """
    Mode-based input buffer: simple text, advanced fields, or bulk text.

    process() parses the buffer of the current mode; it does not add anything to a store.
    """

    parser: TaskInputParser = field(default_factory=TaskInputParser)
    mode: str = "simple"
    input_value: str = ""
    advanced_input: dict[str, Any] = field(default_factory=_blank_advanced)
    bulk_input: str = ""
    is_processing: bool = False
    last_processed: dict[str, Any] | None = None

    @property
    def is_valid(self) -> bool:
        if self.mode == "simple":
            return bool(self.input_value.strip())
        if self.mode == "advanced":
            return bool(str(self.advanced_input.get("title") or "").strip())
        if self.mode == "bulk":
            return bool(self.bulk_input.strip())
        return False

    def process(self) -> TaskRecord | list[TaskRecord]:
        if not self.is_valid:
            raise ValidationError("Invalid input")

        self.is_processing = True
        try:
            if self.mode == "simple":
                result = self.parser.parse_one(self.input_value)
                self.last_processed = {"type": "simple", "value": self.input_value}
            elif self.mode == "advanced":
                result = self.parser.parse_one(self.advanced_input)
                self.last_processed = {"type": "advanced", "value": dict(self.advanced_input)}
            else:
                result = self.parser.parse_bulk_text(self.bulk_input)
                self.last_processed = {"type": "bulk", "value": self.bulk_input}
            return result
        finally:
            self.is_processing = False

    def clear(self) -> None:
        if self.mode == "simple":
            self.input_value = ""
        elif self.mode == "advanced":
            self.advanced_input = _blank_advanced()
        elif self.mode == "bulk":
            self.bulk_input = ""

    def set_mode(self, mode: str) -> None:
        if mode not in INPUT_MODES:
            logger.debug("Ignoring unknown input mode %r", mode)
            return
        self.mode = mode
        self.clear()

    def load_example(self, name: str) -> None:
        example = _EXAMPLES.get(name)
        if example is None:
            return
        mode, value = example
        self.set_mode(mode)
        if mode == "simple":
            self.input_value = value
        elif mode == "advanced":
            self.advanced_input = dict(value)
        else:
            self.bulk_input = value

    def summary(self) -> InputSummary:
        if self.mode == "simple":
            return InputSummary(
                mode="Simple Text",
                preview=self.input_value or "Enter task title...",
                valid=self.is_valid,
            )
        if self.mode == "advanced":
            return InputSummary(
                mode="Advanced Object",
                preview=self.advanced_input.get("title") or "Enter task details...",
                valid=self.is_valid,
                details={
                    "priority": self.advanced_input.get("priority"),
                    "category": self.advanced_input.get("category"),
                },
            )
        lines = [line for line in self.bulk_input.split("\n") if line.strip()]
        return InputSummary(
            mode="Bulk Input",
            preview=f"{len(lines)} task(s)",
            valid=self.is_valid,
            details={"taskCount": len(lines)},
        )
