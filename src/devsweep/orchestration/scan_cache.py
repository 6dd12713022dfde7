"""ScanCache: TTL record of recently completed work items."""

from __future__ import annotations

import time
from collections.abc import Callable

from devsweep.core.protocols import IKeyValueStore

CACHE_PREFIX = "scan_cache:"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ScanCache:
    """Advisory skip list keyed by run kind and item.

    A stale or missing entry only costs a re-scan. Entries outlive runs and
    are removed only by :meth:`clear`.
    """

    def __init__(self, store: IKeyValueStore, namespace: str,
                 now_ms: Callable[[], int] = _now_ms) -> None:
        self._store = store
        self._namespace = namespace
        self._now_ms = now_ms

    def _key(self, key: str) -> str:
        return f"{CACHE_PREFIX}{self._namespace}:{key}"

    def last_processed(self, key: str) -> int | None:
        raw = self._store.get(self._key(key))
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def should_process(self, key: str, ttl_ms: int) -> bool:
        if ttl_ms <= 0:
            return True
        last = self.last_processed(key)
        if last is None:
            return True
        return self._now_ms() - last > ttl_ms

    def mark_processed(self, key: str, ttl_ms: int) -> None:
        if ttl_ms <= 0:
            return
        self._store.set(self._key(key), str(self._now_ms()))

    def clear(self) -> int:
        """Remove every cache entry of every namespace."""
        keys = self._store.list_keys(CACHE_PREFIX)
        for key in keys:
            self._store.delete(key)
        return len(keys)
