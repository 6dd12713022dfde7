"""Run kinds, persistent run state and run reports."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional, assert_never

from pydantic import BaseModel, Field

from devsweep.models.outcomes import OutcomeTag, ShardOutcome


class RunKind(StrEnum):
    REMOVE = "remove"
    PREVIEW = "preview"

    @property
    def destructive(self) -> bool:
        return self is RunKind.REMOVE

    @property
    def entry_point(self) -> str:
        """Name the continuation scheduler fires to resume this kind."""
        return f"devsweep.scan.{self.value}"

    @classmethod
    def from_entry_point(cls, name: str) -> RunKind:
        for kind in cls:
            if kind.entry_point == name:
                return kind
        raise ValueError(f"Unknown entry point {name!r}")


class RunPhase(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class RunCounters(BaseModel):
    """Cumulative totals of a run; every fold is a commutative increment."""

    processed: int = 0
    units_affected: int = 0
    errors: int = 0
    with_units: int = 0
    no_work_found: int = 0
    not_found: int = 0
    active_skipped: int = 0
    failed_items: int = 0
    cached_skipped: int = 0

    def fold(self, outcome: ShardOutcome) -> None:
        self.processed += 1
        self.units_affected += outcome.units_affected
        self.errors += outcome.error_count
        match outcome.tag:
            case OutcomeTag.REMOVED | OutcomeTag.FOUND:
                self.with_units += 1
            case OutcomeTag.NO_WORK_FOUND:
                self.no_work_found += 1
            case OutcomeTag.NOT_FOUND:
                self.not_found += 1
            case OutcomeTag.ACTIVE_SKIP:
                self.active_skipped += 1
            case OutcomeTag.TRANSIENT_ERROR | OutcomeTag.FATAL_ERROR:
                self.failed_items += 1
            case _:
                assert_never(outcome.tag)


class RunState(BaseModel):
    """Working copy of one run's persistent progress record."""

    kind: RunKind
    items: list[str]
    cursor: int = 0
    counters: RunCounters = Field(default_factory=RunCounters)
    started_at: datetime

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def done(self) -> bool:
        return self.cursor >= self.total

    def next_shard(self, size: int) -> list[str]:
        return self.items[self.cursor:self.cursor + size]

    def advance(self, count: int) -> None:
        if count < 0 or self.cursor + count > self.total:
            raise ValueError(f"Cannot advance cursor {self.cursor} by {count} (total {self.total})")
        self.cursor += count

    def status(self) -> RunStatus:
        return RunStatus(
            kind=self.kind,
            cursor=self.cursor,
            total=self.total,
            counters=self.counters.model_copy(),
            started_at=self.started_at,
        )


class RunStatus(BaseModel):
    """Externally pollable snapshot of a run."""

    kind: RunKind
    cursor: int
    total: int
    counters: RunCounters
    started_at: datetime


class RunReport(BaseModel):
    """What a single invocation of the engine ended with."""

    kind: RunKind
    phase: RunPhase
    cursor: int = 0
    total: int = 0
    counters: RunCounters = Field(default_factory=RunCounters)
    started_at: Optional[datetime] = None
    elapsed_seconds: float = 0.0
