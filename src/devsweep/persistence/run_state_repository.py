"""RunState persistence over an IKeyValueStore with chunked item lists."""

from __future__ import annotations

import json
from datetime import datetime

from pydantic import ValidationError

from devsweep.core.exceptions import PersistenceError
from devsweep.core.protocols import IKeyValueStore
from devsweep.models.run_state import RunCounters, RunKind, RunState

DEFAULT_MAX_VALUE_BYTES = 64000


def _meta_key(kind: RunKind) -> str:
    return f"run:{kind.value}:meta"


def _chunk_prefix(kind: RunKind) -> str:
    return f"run:{kind.value}:items:"


def chunk_items(items: list[str], max_bytes: int) -> list[list[str]]:
    """Split items so each chunk's JSON encoding stays within ``max_bytes``."""
    chunks: list[list[str]] = []
    current: list[str] = []
    size = 2  # "[]"
    for item in items:
        cost = len(json.dumps(item).encode()) + 1
        if current and size + cost > max_bytes:
            chunks.append(current)
            current, size = [], 2
        current.append(item)
        size += cost
    if current:
        chunks.append(current)
    return chunks


class RunStateRepository:
    """Loads, creates, checkpoints and deletes one RunState per run kind.

    The item list is immutable after creation, so it is written once as
    chunks; checkpoints rewrite only the small meta record holding the
    cursor and counters together.
    """

    def __init__(self, store: IKeyValueStore, max_value_bytes: int = DEFAULT_MAX_VALUE_BYTES) -> None:
        self._store = store
        self._max_value_bytes = max_value_bytes

    def exists(self, kind: RunKind) -> bool:
        return self._store.get(_meta_key(kind)) is not None

    def load(self, kind: RunKind) -> RunState | None:
        raw = self._store.get(_meta_key(kind))
        if raw is None:
            return None
        try:
            meta = json.loads(raw)
            items: list[str] = []
            for index in range(meta["chunks"]):
                chunk = self._store.get(f"{_chunk_prefix(kind)}{index}")
                if chunk is None:
                    raise PersistenceError(f"Run record for {kind} is missing item chunk {index}")
                items.extend(json.loads(chunk))
            state = RunState(
                kind=kind,
                items=items,
                cursor=meta["cursor"],
                counters=RunCounters.model_validate(meta["counters"]),
                started_at=datetime.fromisoformat(meta["started_at"]),
            )
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            raise PersistenceError(f"Run record for {kind} is unreadable: {exc}") from exc
        if len(items) != meta.get("total", len(items)) or not 0 <= state.cursor <= state.total:
            raise PersistenceError(
                f"Run record for {kind} is inconsistent: cursor={state.cursor}, "
                f"items={len(items)}, total={meta.get('total')}"
            )
        return state

    def create(self, state: RunState) -> None:
        chunks = chunk_items(state.items, self._max_value_bytes)
        for index, chunk in enumerate(chunks):
            self._store.set(f"{_chunk_prefix(state.kind)}{index}", json.dumps(chunk))
        self._write_meta(state, len(chunks))

    def save_progress(self, state: RunState) -> None:
        raw = self._store.get(_meta_key(state.kind))
        if raw is None:
            raise PersistenceError(f"Cannot checkpoint {state.kind}: run record no longer exists")
        self._write_meta(state, json.loads(raw)["chunks"])

    def delete(self, kind: RunKind) -> None:
        # Meta first: a half-deleted record must read as absent.
        self._store.delete(_meta_key(kind))
        for key in self._store.list_keys(_chunk_prefix(kind)):
            self._store.delete(key)

    def _write_meta(self, state: RunState, chunk_count: int) -> None:
        meta = {
            "cursor": state.cursor,
            "total": state.total,
            "counters": state.counters.model_dump(),
            "started_at": state.started_at.isoformat(),
            "chunks": chunk_count,
        }
        self._store.set(_meta_key(state.kind), json.dumps(meta))
