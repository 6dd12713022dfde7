"""ContinuationWorker: long-lived loop that fires due continuations."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog

from devsweep.core.protocols import IContinuationScheduler, IPendingContinuations

logger = structlog.get_logger(__name__)

EntryPoint = Callable[[], Awaitable[Any]]


class ContinuationWorker:
    """Polls scheduled continuations and invokes their entry points.

    An entry point that raises is re-scheduled after ``retry_delay_seconds``
    so a run interrupted by a persistence failure is picked up again from its
    last checkpoint instead of being orphaned.
    """

    def __init__(
        self,
        pending: IPendingContinuations,
        scheduler: IContinuationScheduler,
        entry_points: Mapping[str, EntryPoint],
        *,
        poll_interval: float = 5.0,
        retry_delay_seconds: int = 60,
        now: Callable[[], float] = time.time,
    ) -> None:
        self._pending = pending
        self._scheduler = scheduler
        self._entry_points = dict(entry_points)
        self._poll_interval = poll_interval
        self._retry_delay_seconds = retry_delay_seconds
        self._now = now

    async def run_once(self) -> list[str]:
        """Fire every due continuation sequentially; return the names fired."""
        fired: list[str] = []
        for name in self._pending.pop_due(self._now()):
            entry_point = self._entry_points.get(name)
            if entry_point is None:
                logger.error("unknown_entry_point", entry_point=name)
                continue
            fired.append(name)
            try:
                await entry_point()
            except Exception:
                logger.exception("continuation_failed", entry_point=name,
                                  retry_in_seconds=self._retry_delay_seconds)
                self._scheduler.schedule_after(name, self._retry_delay_seconds)
        return fired

    async def run_forever(self, stop: asyncio.Event) -> None:
        logger.info("continuation_worker_started", entry_points=sorted(self._entry_points))
        while not stop.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._poll_interval)
            except TimeoutError:
                pass
        logger.info("continuation_worker_stopped")
