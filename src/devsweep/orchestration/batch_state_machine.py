"""BatchStateMachine: time-boxed, resumable scan over a persisted item list.

Idle -> Running -> Paused (continuation scheduled) -> Running ... -> Completed -> Idle.

Each invocation loads the run record once, processes shards until either the
list is exhausted or the time budget is spent, and writes the record back at
checkpoints and on every exit path. Per-item failures become outcomes;
anything raised outside item processing propagates and the last checkpoint
becomes the recovery point.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import structlog

from devsweep.core.protocols import IContinuationScheduler, IResultSink
from devsweep.models.outcomes import ShardOutcome
from devsweep.models.run_state import RunKind, RunPhase, RunReport, RunState, RunStatus
from devsweep.models.scan_config import ScanConfig
from devsweep.models.work_items import normalize_items
from devsweep.orchestration.scan_cache import ScanCache
from devsweep.orchestration.shard_processor import ShardProcessor
from devsweep.persistence.run_state_repository import RunStateRepository

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BatchStateMachine:
    """Drives one run kind through shards under a wall-clock budget."""

    def __init__(
        self,
        *,
        kind: RunKind,
        config: ScanConfig,
        repository: RunStateRepository,
        cache: ScanCache,
        processor: ShardProcessor,
        scheduler: IContinuationScheduler,
        sink: IResultSink,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._kind = kind
        self._config = config
        self._repository = repository
        self._cache = cache
        self._processor = processor
        self._scheduler = scheduler
        self._sink = sink
        self._clock = clock
        self._now = now
        self._log = logger.bind(kind=kind.value)

    @property
    def kind(self) -> RunKind:
        return self._kind

    @property
    def entry_point(self) -> str:
        return self._kind.entry_point

    def phase(self) -> RunPhase:
        return RunPhase.RUNNING if self._repository.exists(self._kind) else RunPhase.IDLE

    def status(self) -> RunStatus | None:
        state = self._repository.load(self._kind)
        return state.status() if state is not None else None

    async def start(self, items: Sequence[str]) -> RunReport:
        """Create a run from ``items`` (or resume the existing one) and process it.

        Raises:
            InputError: ``items`` is malformed; nothing is persisted.
            EmptyInputError: ``items`` is empty; nothing is persisted.
        """
        started = self._clock()
        state = self._repository.load(self._kind)
        if state is None:
            state = RunState(kind=self._kind, items=normalize_items(items), started_at=self._now())
            self._repository.create(state)
            self._log.info("run_created", total=state.total)
        else:
            self._log.info("run_resumed_ignoring_items", cursor=state.cursor, total=state.total,
                           supplied=len(items))
        return await self._run(state, started)

    async def resume(self) -> RunReport:
        """Continuation entry point: resume the persisted run, if any."""
        started = self._clock()
        state = self._repository.load(self._kind)
        if state is None:
            self._log.info("resume_without_run")
            return RunReport(kind=self._kind, phase=RunPhase.IDLE)
        self._log.info("run_resumed", cursor=state.cursor, total=state.total)
        return await self._run(state, started)

    def reset(self, *, full: bool = False) -> None:
        """Drop the run record (and for ``full``, the whole scan cache)."""
        self._repository.delete(self._kind)
        cleared = self._cache.clear() if full else 0
        self._scheduler.cancel_all(self.entry_point)
        self._log.warning("run_reset", full=full, cache_entries_cleared=cleared)

    # ---- loop ----

    async def _run(self, state: RunState, started: float) -> RunReport:
        # Outcomes folded into ``state`` but not yet covered by a checkpoint.
        uncommitted: list[ShardOutcome] = []
        since_checkpoint = 0
        while not state.done:
            elapsed = self._clock() - started
            if elapsed >= self._config.time_budget_seconds:
                return self._pause(state, elapsed, uncommitted)

            shard = state.next_shard(self._config.shard_size)
            uncommitted.extend(await self._process(state, shard))
            state.advance(len(shard))

            since_checkpoint += 1
            if since_checkpoint >= self._config.checkpoint_every_shards or state.done:
                self._checkpoint(state, uncommitted)
                since_checkpoint = 0

        return self._complete(state, self._clock() - started)

    async def _process(self, state: RunState, shard: list[str]) -> list[ShardOutcome]:
        ttl_ms = self._config.cache_ttl_ms
        eligible = [item for item in shard if self._cache.should_process(item, ttl_ms)]
        state.counters.cached_skipped += len(shard) - len(eligible)

        outcomes = await self._processor.process_shard(eligible, self._config.concurrency)
        for outcome in outcomes:
            state.counters.fold(outcome)

        self._log.info(
            "shard_processed",
            cursor=state.cursor,
            size=len(shard),
            cached=len(shard) - len(eligible),
            total=state.total,
        )
        return outcomes

    def _checkpoint(self, state: RunState, uncommitted: list[ShardOutcome]) -> None:
        self._repository.save_progress(state)
        self._log.debug("checkpoint_saved", cursor=state.cursor)
        self._commit(uncommitted)

    def _commit(self, outcomes: list[ShardOutcome]) -> None:
        """Cache and report outcomes once the run record covers them.

        Items of a shard without a checkpoint are re-processed on resume and
        stay uncached until then.
        """
        ttl_ms = self._config.cache_ttl_ms
        for outcome in outcomes:
            if outcome.succeeded:
                self._cache.mark_processed(outcome.item, ttl_ms)
        for outcome in outcomes:
            self._sink.record(outcome.item, outcome.tag.value, outcome.details())
        outcomes.clear()

    # ---- exits ----

    def _pause(self, state: RunState, elapsed: float, uncommitted: list[ShardOutcome]) -> RunReport:
        self._checkpoint(state, uncommitted)
        self._scheduler.schedule_after(self.entry_point, self._config.continuation_delay_seconds)
        self._log.info(
            "run_paused",
            cursor=state.cursor,
            total=state.total,
            elapsed_seconds=round(elapsed, 1),
            resume_in_seconds=self._config.continuation_delay_seconds,
        )
        return self._report(state, RunPhase.PAUSED, elapsed)

    def _complete(self, state: RunState, elapsed: float) -> RunReport:
        self._repository.delete(self._kind)
        self._scheduler.cancel_all(self.entry_point)
        counters = state.counters
        self._log.info(
            "run_completed",
            total=state.total,
            processed=counters.processed,
            units_affected=counters.units_affected,
            errors=counters.errors,
            not_found=counters.not_found,
            active_skipped=counters.active_skipped,
            cached_skipped=counters.cached_skipped,
            started_at=state.started_at.isoformat(),
        )
        return self._report(state, RunPhase.COMPLETED, elapsed)

    def _report(self, state: RunState, phase: RunPhase, elapsed: float) -> RunReport:
        return RunReport(
            kind=self._kind,
            phase=phase,
            cursor=state.cursor,
            total=state.total,
            counters=state.counters.model_copy(),
            started_at=state.started_at,
            elapsed_seconds=elapsed,
        )
