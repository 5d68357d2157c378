# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class FakeKVStore:
    """
    In-memory KeyValueStore that records writes.

    fail_get / fail_set make the corresponding call raise OSError.
    """

    data: dict[str, str] = field(default_factory=dict)
    writes: list[tuple[str, str]] = field(default_factory=list)
    fail_get: bool = False
    fail_set: bool = False

    def get(self, key: str) -> str | None:
        if self.fail_get:
            raise OSError("storage unavailable")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_set:
            raise OSError("quota exceeded")
        self.writes.append((key, value))
        self.data[key] = value


class RecordingBackend:
    """
    MutationBackend without delays.

    - records the op names it was asked about
    - captures store.loading at the time of the call
    - raises `error` (if set) to simulate a failing remote call
    """

    def __init__(self, store=None, error: Exception | None = None) -> None:
        self.store = store
        self.error = error
        self.ops: list[str] = []
        self.loading_seen: list[bool] = []

    async def before_mutation(self, op: str) -> None:
        self.ops.append(op)
        if self.store is not None:
            self.loading_seen.append(self.store.loading)
        if self.error is not None:
            raise self.error
