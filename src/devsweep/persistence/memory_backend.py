"""Dict-backed backends for unit tests and local runs."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any


class MemoryKeyValueStore:
    """Dict-backed IKeyValueStore."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def list_keys(self, prefix: str) -> list[str]:
        return [k for k in self._store if k.startswith(prefix)]


class MemoryContinuationScheduler:
    """Dict-backed IContinuationScheduler + IPendingContinuations."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._pending: dict[str, float] = {}
        self.history: list[tuple[str, int]] = []

    @property
    def pending(self) -> dict[str, float]:
        return dict(self._pending)

    def schedule_after(self, entry_point: str, delay_seconds: int) -> None:
        self.cancel_all(entry_point)
        self._pending[entry_point] = self._clock() + delay_seconds
        self.history.append((entry_point, delay_seconds))

    def cancel_all(self, entry_point: str) -> None:
        self._pending.pop(entry_point, None)

    def pop_due(self, now: float) -> list[str]:
        due = sorted((at, name) for name, at in self._pending.items() if at <= now)
        for _, name in due:
            del self._pending[name]
        return [name for _, name in due]


class MemoryResultSink:
    """List-backed IResultSink."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def record(self, item: str, outcome_tag: str, details: dict[str, Any]) -> None:
        self.records.append((item, outcome_tag, details))

    def tags_for(self, item: str) -> list[str]:
        return [tag for recorded, tag, _ in self.records if recorded == item]
