"""Redis backends: key-value store, continuation scheduler, result stream."""

from __future__ import annotations

import json
import re
import time
from collections.abc import Callable
from typing import Any

import redis

from devsweep.core.exceptions import PersistenceError, SchedulerError

_GLOB_SPECIALS = re.compile(r"([*?\[\]\\])")


def _client(host: str, port: int, db: int) -> redis.Redis:
    return redis.Redis(host=host, port=port, db=db, decode_responses=True)


class RedisKeyValueStore:
    """Production IKeyValueStore backed by Redis strings."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "devsweep:") -> None:
        self._key_prefix = key_prefix
        self._client = _client(host, port, db)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(self._key(key))
        except Exception as exc:
            raise PersistenceError(f"Redis GET failed for key={key!r}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(self._key(key), value)
        except Exception as exc:
            raise PersistenceError(f"Redis SET failed for key={key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except Exception as exc:
            raise PersistenceError(f"Redis DELETE failed for key={key!r}: {exc}") from exc

    def list_keys(self, prefix: str) -> list[str]:
        pattern = _GLOB_SPECIALS.sub(r"\\\1", self._key(prefix)) + "*"
        strip = len(self._key_prefix)
        try:
            return [k[strip:] for k in self._client.scan_iter(match=pattern, count=500)]
        except Exception as exc:
            raise PersistenceError(f"Redis SCAN failed for prefix={prefix!r}: {exc}") from exc


class RedisContinuationScheduler:
    """IContinuationScheduler backed by a sorted set of entry point -> fire time.

    One member per entry point, so at most one continuation is ever pending
    for a run kind.
    """

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "devsweep:",
                 clock: Callable[[], float] = time.time) -> None:
        self._zset = f"{key_prefix}continuations"
        self._clock = clock
        self._client = _client(host, port, db)

    def schedule_after(self, entry_point: str, delay_seconds: int) -> None:
        fire_at = self._clock() + delay_seconds
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.zrem(self._zset, entry_point)
            pipe.zadd(self._zset, {entry_point: fire_at})
            pipe.execute()
        except Exception as exc:
            raise SchedulerError(f"Redis schedule failed for {entry_point!r}: {exc}") from exc

    def cancel_all(self, entry_point: str) -> None:
        try:
            self._client.zrem(self._zset, entry_point)
        except Exception as exc:
            raise SchedulerError(f"Redis cancel failed for {entry_point!r}: {exc}") from exc

    def pop_due(self, now: float) -> list[str]:
        """Claim every continuation due at ``now``; a ZREM win is the claim."""
        try:
            due = self._client.zrangebyscore(self._zset, "-inf", now)
            return [name for name in due if self._client.zrem(self._zset, name)]
        except Exception as exc:
            raise SchedulerError(f"Redis pop_due failed: {exc}") from exc


class RedisStreamResultSink:
    """IResultSink appending outcome records to a capped Redis stream."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "devsweep:", maxlen: int = 100_000) -> None:
        self._stream = f"{key_prefix}results"
        self._maxlen = maxlen
        self._client = _client(host, port, db)

    def record(self, item: str, outcome_tag: str, details: dict[str, Any]) -> None:
        fields = {"item": item, "tag": outcome_tag, "details": json.dumps(details, default=str)}
        try:
            self._client.xadd(self._stream, fields, maxlen=self._maxlen, approximate=True)
        except Exception as exc:
            raise PersistenceError(f"Redis XADD failed for item={item!r}: {exc}") from exc
