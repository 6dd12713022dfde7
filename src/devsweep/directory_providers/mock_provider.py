"""Mock directory provider for local development and testing.

Serves accounts and devices from dicts. No network calls.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Optional

from devsweep.core.exceptions import NotFoundError
from devsweep.models.directory import AccountState, MobileDevice, UnitPage


class MockDirectoryService:
    """IDirectoryService implementation backed by in-memory accounts."""

    def __init__(self, page_size: int = 2) -> None:
        self._page_size = page_size
        self._accounts: dict[str, bool] = {}
        self._devices: dict[str, list[MobileDevice]] = defaultdict(list)
        self._failures: dict[tuple[str, str], list[BaseException]] = defaultdict(list)
        self._delays: dict[str, float] = {}
        self.calls: list[tuple[str, str]] = []
        self.removed: list[str] = []

    def add_account(self, email: str, *, deactivated: bool = True, devices: int = 0) -> None:
        """Register an account with ``devices`` generated device records."""
        self._accounts[email] = deactivated
        for n in range(devices):
            self._devices[email].append(MobileDevice(
                resource_id=f"{email}#dev{n}", device_id=f"dev{n}", model="Pixel", os="Android 14",
            ))

    def fail(self, operation: str, key: str, *errors: BaseException) -> None:
        """Queue errors raised by the next calls of ``operation`` for ``key``."""
        self._failures[(operation, key)].extend(errors)

    def delay(self, key: str, seconds: float) -> None:
        """Make every call for ``key`` suspend before answering."""
        self._delays[key] = seconds

    async def _enter(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if key in self._delays:
            await asyncio.sleep(self._delays[key])
        queued = self._failures.get((operation, key))
        if queued:
            raise queued.pop(0)

    def calls_for(self, operation: str) -> list[str]:
        return [key for op, key in self.calls if op == operation]

    # ---- IDirectoryService methods ----

    async def get_account_state(self, item: str) -> AccountState:
        await self._enter("get_account_state", item)
        if item not in self._accounts:
            raise NotFoundError(f"Account {item} not found")
        return AccountState(email=item, deactivated=self._accounts[item])

    async def list_dependent_units(self, item: str, page_token: Optional[str] = None) -> UnitPage:
        await self._enter("list_dependent_units", item)
        start = int(page_token or 0)
        devices = self._devices.get(item, [])
        end = start + self._page_size
        return UnitPage(
            units=devices[start:end],
            next_page_token=str(end) if end < len(devices) else None,
        )

    async def remove_unit(self, unit_id: str) -> None:
        await self._enter("remove_unit", unit_id)
        email = unit_id.split("#", 1)[0]
        devices = self._devices.get(email, [])
        for device in devices:
            if device.resource_id == unit_id:
                devices.remove(device)
                self.removed.append(unit_id)
                return
        raise NotFoundError(f"Device {unit_id} not found")

    async def list_deactivated_accounts(self) -> list[str]:
        await self._enter("list_deactivated_accounts", "*")
        return [email for email, deactivated in self._accounts.items() if deactivated]
