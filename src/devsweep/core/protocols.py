"""Protocol interfaces for the engine's external collaborators.

Adapters satisfy them structurally and are checked with isinstance()
where they are wired.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from devsweep.models.directory import AccountState, UnitPage


# ---------------------------------------------------------------------------
# Directory Service
# ---------------------------------------------------------------------------

@runtime_checkable
class IDirectoryService(Protocol):
    """Directory API operations the engine depends on."""

    async def get_account_state(self, item: str) -> AccountState: ...

    async def list_dependent_units(self, item: str, page_token: Optional[str] = None) -> UnitPage: ...

    async def remove_unit(self, unit_id: str) -> None: ...

    async def list_deactivated_accounts(self) -> list[str]: ...


# ---------------------------------------------------------------------------
# Persistence: Key-Value Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IKeyValueStore(Protocol):
    """Durable string key-value store holding run state and the scan cache."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def list_keys(self, prefix: str) -> list[str]: ...


# ---------------------------------------------------------------------------
# Continuation Scheduling
# ---------------------------------------------------------------------------

@runtime_checkable
class IContinuationScheduler(Protocol):
    """Schedules the trigger that re-invokes an entry point after a pause.

    At most one continuation is pending per entry point; scheduling replaces
    whatever was pending before.
    """

    def schedule_after(self, entry_point: str, delay_seconds: int) -> None: ...

    def cancel_all(self, entry_point: str) -> None: ...


@runtime_checkable
class IPendingContinuations(Protocol):
    """Worker-side view of scheduled continuations."""

    def pop_due(self, now: float) -> list[str]: ...


# ---------------------------------------------------------------------------
# Result Sink
# ---------------------------------------------------------------------------

@runtime_checkable
class IResultSink(Protocol):
    """Append-only per-item outcome log; never read back by the engine."""

    def record(self, item: str, outcome_tag: str, details: dict[str, Any]) -> None: ...
