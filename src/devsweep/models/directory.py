"""Directory service records: account state and mobile device units."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AccountState(BaseModel):
    """Eligibility view of a directory account."""

    model_config = ConfigDict(frozen=True)

    email: str
    deactivated: bool


class MobileDevice(BaseModel):
    """A mobile device registration (dependent unit) of an account."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    resource_id: str = Field(alias="resourceId")
    device_id: str = Field(default="", alias="deviceId")
    model: str = ""
    os: str = ""
    type: str = ""
    status: str = ""
    last_sync: Optional[str] = Field(default=None, alias="lastSync")

    def summary(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class UnitPage(BaseModel):
    """One page of an account's dependent units."""

    units: list[MobileDevice] = Field(default_factory=list)
    next_page_token: Optional[str] = None
