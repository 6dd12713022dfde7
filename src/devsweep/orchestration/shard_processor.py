"""ShardProcessor: runs one shard of work items against the directory service.

With ``concurrency == 1`` each item runs lookup -> enumerate -> act in order.
With ``concurrency > 1`` every item's unit listing is fetched concurrently,
then (after a barrier) each item re-validates its account and acts, again
concurrently under the same bound. Failures are contained per item and per
unit; one item never cancels a sibling.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

import structlog

from devsweep.core.exceptions import FatalRemoteError, NotFoundError, RemoteError
from devsweep.core.protocols import IDirectoryService
from devsweep.models.directory import MobileDevice
from devsweep.models.outcomes import OutcomeTag, ShardOutcome
from devsweep.orchestration.retry_policy import RetryPolicy

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class _Listing:
    """Phase-one result: the item's drained units, or a terminal outcome."""

    item: str
    units: list[MobileDevice] | None = None
    outcome: ShardOutcome | None = None


class ShardProcessor:
    """Processes shards for one run kind; ``destructive`` removes units."""

    def __init__(self, directory: IDirectoryService, retry: RetryPolicy, *, destructive: bool) -> None:
        self._directory = directory
        self._retry = retry
        self._destructive = destructive

    async def process_shard(self, items: Sequence[str], concurrency: int) -> list[ShardOutcome]:
        """Return one outcome per item, in the items' order."""
        if not items:
            return []
        if concurrency <= 1:
            return [await self._contained(item, self._process_sequential(item)) for item in items]

        bound = asyncio.Semaphore(concurrency)
        listings = await asyncio.gather(*(self._bounded(bound, self._list_phase(item)) for item in items))
        return list(await asyncio.gather(
            *(self._bounded(bound, self._act_phase(listing)) for listing in listings)
        ))

    # ---- phases ----

    async def _process_sequential(self, item: str) -> ShardOutcome:
        blocked = await self._check_eligible(item)
        if blocked is not None:
            return blocked
        units = await self._drain_units(item)
        if not units:
            return ShardOutcome(item=item, tag=OutcomeTag.NO_WORK_FOUND)
        return await self._act(item, units)

    async def _list_phase(self, item: str) -> _Listing:
        try:
            return _Listing(item=item, units=await self._drain_units(item))
        except Exception as exc:
            return _Listing(item=item, outcome=self._failure_outcome(item, exc))

    async def _act_phase(self, listing: _Listing) -> ShardOutcome:
        if listing.outcome is not None:
            return listing.outcome
        item, units = listing.item, listing.units or []
        if not units:
            return ShardOutcome(item=item, tag=OutcomeTag.NO_WORK_FOUND)

        async def validate_then_act() -> ShardOutcome:
            blocked = await self._check_eligible(item)
            if blocked is not None:
                return blocked
            return await self._act(item, units)

        return await self._contained(item, validate_then_act())

    # ---- per-item steps ----

    async def _check_eligible(self, item: str) -> ShardOutcome | None:
        """Outcome that stops the item, or None if its account is deactivated."""
        state = await self._retry.execute(lambda: self._directory.get_account_state(item))
        if not state.deactivated:
            return ShardOutcome(item=item, tag=OutcomeTag.ACTIVE_SKIP)
        return None

    async def _drain_units(self, item: str) -> list[MobileDevice]:
        units: list[MobileDevice] = []
        token: str | None = None
        while True:
            page = await self._retry.execute(
                lambda token=token: self._directory.list_dependent_units(item, token)
            )
            units.extend(page.units)
            token = page.next_page_token
            if not token:
                return units

    async def _act(self, item: str, units: list[MobileDevice]) -> ShardOutcome:
        found = len(units)
        if not self._destructive:
            return ShardOutcome(
                item=item, tag=OutcomeTag.FOUND, units_found=found, units_affected=found,
                units=tuple(units),
            )

        removed = 0
        errors: list[str] = []
        for unit in units:
            try:
                await self._retry.execute(lambda unit=unit: self._directory.remove_unit(unit.resource_id))
                removed += 1
            except NotFoundError:
                logger.info("unit_already_gone", item=item, unit=unit.resource_id)
            except RemoteError as exc:
                errors.append(f"{unit.resource_id}: {exc}")
        return ShardOutcome(
            item=item,
            tag=OutcomeTag.FATAL_ERROR if errors else OutcomeTag.REMOVED,
            units_found=found,
            units_affected=removed,
            unit_errors=len(errors),
            message="; ".join(errors),
            units=tuple(units),
        )

    # ---- containment ----

    @staticmethod
    async def _bounded(bound: asyncio.Semaphore, coro: Awaitable[T]) -> T:
        async with bound:
            return await coro

    async def _contained(self, item: str, coro: Awaitable[ShardOutcome]) -> ShardOutcome:
        try:
            return await coro
        except Exception as exc:
            return self._failure_outcome(item, exc)

    @staticmethod
    def _failure_outcome(item: str, exc: Exception) -> ShardOutcome:
        if isinstance(exc, NotFoundError):
            return ShardOutcome(item=item, tag=OutcomeTag.NOT_FOUND, message=str(exc))
        if isinstance(exc, FatalRemoteError) and exc.exhausted:
            return ShardOutcome(item=item, tag=OutcomeTag.TRANSIENT_ERROR, message=str(exc))
        if not isinstance(exc, RemoteError):
            logger.warning("item_failed_unexpectedly", item=item, exc_info=exc)
        return ShardOutcome(item=item, tag=OutcomeTag.FATAL_ERROR, message=str(exc))
