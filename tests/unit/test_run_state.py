"""Tests for RunState, counters and outcome folding."""

from __future__ import annotations

import itertools
from datetime import UTC, datetime

import pytest

from devsweep.models.outcomes import OutcomeTag, ShardOutcome
from devsweep.models.run_state import RunCounters, RunKind, RunState


def _state(n: int = 5) -> RunState:
    return RunState(
        kind=RunKind.REMOVE,
        items=[f"u{i}@example.com" for i in range(n)],
        started_at=datetime(2026, 1, 1, tzinfo=UTC),
    )


class TestRunKind:
    def test_entry_points_are_distinct(self):
        assert RunKind.REMOVE.entry_point != RunKind.PREVIEW.entry_point

    def test_round_trips_entry_point(self):
        assert RunKind.from_entry_point(RunKind.PREVIEW.entry_point) is RunKind.PREVIEW

    def test_only_remove_is_destructive(self):
        assert RunKind.REMOVE.destructive
        assert not RunKind.PREVIEW.destructive


class TestCursor:
    def test_next_shard_and_advance(self):
        state = _state(5)
        assert state.next_shard(2) == ["u0@example.com", "u1@example.com"]
        state.advance(2)
        assert state.next_shard(10) == ["u2@example.com", "u3@example.com", "u4@example.com"]

    def test_cannot_advance_past_total(self):
        state = _state(3)
        with pytest.raises(ValueError):
            state.advance(4)
        assert state.cursor == 0

    def test_cannot_move_backwards(self):
        state = _state(3)
        state.advance(2)
        with pytest.raises(ValueError):
            state.advance(-1)


class TestFold:
    def test_tags_land_in_their_tallies(self):
        counters = RunCounters()
        counters.fold(ShardOutcome(item="a", tag=OutcomeTag.REMOVED, units_found=2, units_affected=2))
        counters.fold(ShardOutcome(item="b", tag=OutcomeTag.NOT_FOUND))
        counters.fold(ShardOutcome(item="c", tag=OutcomeTag.ACTIVE_SKIP))
        counters.fold(ShardOutcome(item="d", tag=OutcomeTag.NO_WORK_FOUND))
        counters.fold(ShardOutcome(item="e", tag=OutcomeTag.TRANSIENT_ERROR))
        assert counters.processed == 5
        assert counters.units_affected == 2
        assert counters.with_units == 1
        assert counters.not_found == 1
        assert counters.active_skipped == 1
        assert counters.no_work_found == 1
        assert counters.failed_items == 1
        assert counters.errors == 1  # not-found is not an error

    def test_partial_removal_counts_unit_errors(self):
        counters = RunCounters()
        counters.fold(ShardOutcome(
            item="a", tag=OutcomeTag.FATAL_ERROR, units_found=3, units_affected=1, unit_errors=2,
        ))
        assert counters.units_affected == 1
        assert counters.errors == 2

    def test_fold_is_order_independent(self):
        outcomes = [
            ShardOutcome(item="a", tag=OutcomeTag.REMOVED, units_found=1, units_affected=1),
            ShardOutcome(item="b", tag=OutcomeTag.FATAL_ERROR),
            ShardOutcome(item="c", tag=OutcomeTag.REMOVED, units_found=3, units_affected=3),
            ShardOutcome(item="d", tag=OutcomeTag.TRANSIENT_ERROR),
            ShardOutcome(item="e", tag=OutcomeTag.NO_WORK_FOUND),
        ]
        results = set()
        for order in itertools.permutations(outcomes):
            counters = RunCounters()
            for outcome in order:
                counters.fold(outcome)
            results.add(tuple(counters.model_dump().items()))
        assert len(results) == 1
