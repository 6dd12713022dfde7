"""structlog backend implementing IResultSink."""

from __future__ import annotations

from typing import Any

import structlog

from devsweep.models.outcomes import ERROR_TAGS

logger = structlog.get_logger("devsweep.results")


class LogResultSink:
    """Emits one ``item_outcome`` log record per processed item."""

    def record(self, item: str, outcome_tag: str, details: dict[str, Any]) -> None:
        log = logger.warning if outcome_tag in ERROR_TAGS else logger.info
        log("item_outcome", item=item, tag=outcome_tag, **details)
