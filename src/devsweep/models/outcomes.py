"""Per-item shard outcomes."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from devsweep.models.directory import MobileDevice


class OutcomeTag(StrEnum):
    REMOVED = "removed"
    FOUND = "found"
    NO_WORK_FOUND = "no-work-found"
    NOT_FOUND = "not-found"
    ACTIVE_SKIP = "active-skip"
    TRANSIENT_ERROR = "transient-error"
    FATAL_ERROR = "fatal-error"


SUCCESS_TAGS = frozenset({OutcomeTag.REMOVED, OutcomeTag.FOUND, OutcomeTag.NO_WORK_FOUND})
ERROR_TAGS = frozenset({OutcomeTag.TRANSIENT_ERROR, OutcomeTag.FATAL_ERROR})


class ShardOutcome(BaseModel):
    """Result of processing one work item within a shard."""

    model_config = ConfigDict(frozen=True)

    item: str
    tag: OutcomeTag
    units_found: int = 0
    units_affected: int = 0  # removed for destructive runs, found for previews
    unit_errors: int = 0
    message: str = ""
    units: tuple[MobileDevice, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.tag in SUCCESS_TAGS

    @property
    def error_count(self) -> int:
        if self.tag in ERROR_TAGS:
            return max(1, self.unit_errors)
        return self.unit_errors

    def details(self) -> dict[str, Any]:
        """Payload handed to the result sink."""
        details: dict[str, Any] = {
            "units_found": self.units_found,
            "units_affected": self.units_affected,
            "unit_errors": self.unit_errors,
        }
        if self.message:
            details["message"] = self.message
        if self.units:
            details["units"] = [unit.summary() for unit in self.units]
        return details
