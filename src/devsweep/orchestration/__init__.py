"""Engine wiring: builds state machines and the continuation worker."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from devsweep.core.config import AppSettings
from devsweep.core.protocols import (
    IContinuationScheduler,
    IDirectoryService,
    IKeyValueStore,
    IPendingContinuations,
    IResultSink,
)
from devsweep.directory_providers import create_directory
from devsweep.models.run_state import RunKind
from devsweep.models.scan_config import ScanConfig
from devsweep.orchestration.batch_state_machine import BatchStateMachine
from devsweep.orchestration.continuation_worker import ContinuationWorker
from devsweep.orchestration.retry_policy import RetryPolicy
from devsweep.orchestration.scan_cache import ScanCache
from devsweep.orchestration.shard_processor import ShardProcessor
from devsweep.persistence import create_persistence
from devsweep.persistence.run_state_repository import DEFAULT_MAX_VALUE_BYTES, RunStateRepository


def build_engine(
    kind: RunKind,
    *,
    config: ScanConfig,
    store: IKeyValueStore,
    scheduler: IContinuationScheduler,
    sink: IResultSink,
    directory: IDirectoryService,
    max_value_bytes: int = DEFAULT_MAX_VALUE_BYTES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **machine_kwargs: Any,
) -> BatchStateMachine:
    """Assemble a BatchStateMachine for ``kind`` over the given collaborators."""
    retry = RetryPolicy(
        config.max_attempts, config.base_delay_ms, max_delay_ms=config.max_delay_ms, sleep=sleep,
    )
    return BatchStateMachine(
        kind=kind,
        config=config,
        repository=RunStateRepository(store, max_value_bytes=max_value_bytes),
        cache=ScanCache(store, namespace=kind.value),
        processor=ShardProcessor(directory, retry, destructive=kind.destructive),
        scheduler=scheduler,
        sink=sink,
        **machine_kwargs,
    )


@dataclass
class Runtime:
    """Everything one process needs to serve both run kinds."""

    settings: AppSettings
    store: IKeyValueStore
    scheduler: IContinuationScheduler
    sink: IResultSink
    directory: IDirectoryService
    engines: dict[RunKind, BatchStateMachine] = field(default_factory=dict)

    def engine(self, kind: RunKind) -> BatchStateMachine:
        return self.engines[kind]

    def worker(self, poll_interval: float = 5.0) -> ContinuationWorker:
        if not isinstance(self.scheduler, IPendingContinuations):
            raise TypeError(f"{type(self.scheduler).__name__} cannot be polled for due continuations")
        return ContinuationWorker(
            self.scheduler,
            self.scheduler,
            {engine.entry_point: engine.resume for engine in self.engines.values()},
            poll_interval=poll_interval,
            retry_delay_seconds=self.settings.engine.continuation_delay_seconds,
        )


def build_runtime(
    settings: AppSettings | None = None, *, directory: IDirectoryService | None = None,
) -> Runtime:
    """Create persistence, directory provider and one engine per run kind."""
    if settings is None:
        settings = AppSettings()
    store, scheduler, sink = create_persistence(settings)
    if directory is None:
        directory = create_directory(settings.directory, environment=settings.environment)
    runtime = Runtime(settings=settings, store=store, scheduler=scheduler, sink=sink, directory=directory)
    config = settings.engine.scan_config()
    for kind in RunKind:
        runtime.engines[kind] = build_engine(
            kind,
            config=config,
            store=store,
            scheduler=scheduler,
            sink=sink,
            directory=directory,
            max_value_bytes=settings.engine.max_value_bytes,
        )
    return runtime
