"""Tests for the HTTP run-control surface."""

from __future__ import annotations

import itertools

import pytest
from fastapi.testclient import TestClient

from devsweep.api.app import create_app
from devsweep.core.config import AppSettings
from devsweep.core.exceptions import PersistenceError
from devsweep.models.run_state import RunKind
from devsweep.orchestration import Runtime, build_engine
from tests.fakes import (
    MemoryContinuationScheduler,
    MemoryKeyValueStore,
    MemoryResultSink,
    MockDirectoryService,
)

ITEMS = [f"user{i}@example.com" for i in range(12)]


class BrokenStore(MemoryKeyValueStore):
    def get(self, key: str) -> str | None:
        raise PersistenceError("store unavailable")


def _runtime(store=None, clock=None) -> Runtime:
    settings = AppSettings()
    directory = MockDirectoryService()
    for item in ITEMS:
        directory.add_account(item, devices=1)
    directory.add_account("active@example.com", deactivated=False, devices=1)
    runtime = Runtime(
        settings=settings,
        store=store if store is not None else MemoryKeyValueStore(),
        # continuations come due immediately
        scheduler=MemoryContinuationScheduler(clock=lambda: 0.0),
        sink=MemoryResultSink(),
        directory=directory,
    )
    extra = {"clock": clock} if clock is not None else {}
    for kind in RunKind:
        runtime.engines[kind] = build_engine(
            kind,
            config=settings.engine.scan_config(),
            store=runtime.store,
            scheduler=runtime.scheduler,
            sink=runtime.sink,
            directory=directory,
            **extra,
        )
    return runtime


def _pausing_clock():
    # start reading, one shard, then the budget is spent on every later reading
    readings = itertools.chain([0.0, 0.0], itertools.repeat(10_000.0))
    return lambda: next(readings)


@pytest.fixture
def runtime():
    return _runtime()


@pytest.fixture
def client(runtime):
    with TestClient(create_app(runtime)) as c:
        yield c


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, client):
        assert client.get("/ready").status_code == 200

    def test_not_ready_when_store_fails(self):
        with TestClient(create_app(_runtime(store=BrokenStore()))) as c:
            resp = c.get("/ready")
        assert resp.status_code == 503


class TestRuns:
    def test_idle_status(self, client):
        assert client.get("/runs/remove").json() == {"kind": "remove", "phase": "idle"}

    def test_unknown_kind(self, client):
        assert client.get("/runs/bogus").status_code == 422

    def test_start_with_items(self, client, runtime):
        resp = client.post("/runs/preview/start", json={"items": ITEMS[:3]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["phase"] == "completed"
        assert body["counters"]["processed"] == 3
        assert body["counters"]["units_affected"] == 3
        assert runtime.directory.removed == []

    def test_start_without_items_enumerates_deactivated_accounts(self, client, runtime):
        body = client.post("/runs/remove/start").json()
        assert body["total"] == len(ITEMS)
        assert "active@example.com" not in runtime.directory.calls_for("list_dependent_units")
        assert runtime.directory.calls_for("list_deactivated_accounts") == ["*"]

    @pytest.mark.parametrize("items", [[], ["   "], ["not-an-address"]])
    def test_rejects_bad_items(self, client, runtime, items):
        resp = client.post("/runs/remove/start", json={"items": items})
        assert resp.status_code == 422
        assert runtime.store.list_keys("") == []

    def test_resume_when_idle(self, client):
        assert client.post("/runs/remove/resume").json()["phase"] == "idle"


class TestContinuations:
    @pytest.fixture
    def runtime(self):
        return _runtime(clock=_pausing_clock())

    def test_paused_run_is_reported_and_continued(self, client, runtime):
        started = client.post("/runs/remove/start", json={"items": ITEMS}).json()
        assert started["phase"] == "paused"
        assert started["cursor"] == 5

        status = client.get("/runs/remove").json()
        assert status["phase"] == "running"
        assert (status["cursor"], status["total"]) == (5, 12)

        # the clock stops advancing, so the continuation finishes within its budget
        assert client.post("/continuations/dispatch").json() == {"fired": [RunKind.REMOVE.entry_point]}
        assert client.get("/runs/remove").json() == {"kind": "remove", "phase": "idle"}
        assert len(runtime.directory.removed) == len(ITEMS)

    def test_reset_cancels_continuation(self, client, runtime):
        client.post("/runs/remove/start", json={"items": ITEMS})
        resp = client.post("/runs/remove/reset", params={"full": True})
        assert resp.json() == {"kind": "remove", "phase": "idle", "full": True}
        assert runtime.scheduler.pending == {}
        assert client.post("/continuations/dispatch").json() == {"fired": []}
