"""Shared test doubles: the memory backends and the mock directory."""

from __future__ import annotations

from devsweep.directory_providers.mock_provider import MockDirectoryService
from devsweep.persistence.memory_backend import (
    MemoryContinuationScheduler,
    MemoryKeyValueStore,
    MemoryResultSink,
)

__all__ = [
    "MemoryContinuationScheduler",
    "MemoryKeyValueStore",
    "MemoryResultSink",
    "MockDirectoryService",
]
