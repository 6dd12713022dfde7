"""Immutable engine configuration passed into each invocation."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScanConfig(BaseModel):
    """Per-invocation tunables; frozen so nothing mutates them mid-run."""

    model_config = ConfigDict(frozen=True)

    concurrency: int = Field(default=5, ge=1)
    time_budget_seconds: float = Field(default=270.0, gt=0)
    hard_ceiling_seconds: float = Field(default=360.0, gt=0)
    continuation_delay_seconds: int = Field(default=60, ge=1)
    checkpoint_every_shards: int = Field(default=1, ge=1)
    cache_ttl_seconds: int = 86400
    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=60000, ge=0)

    @model_validator(mode="after")
    def _budget_below_ceiling(self) -> ScanConfig:
        if self.time_budget_seconds >= self.hard_ceiling_seconds:
            raise ValueError(
                f"time_budget_seconds ({self.time_budget_seconds}) must be below "
                f"hard_ceiling_seconds ({self.hard_ceiling_seconds})"
            )
        return self

    @property
    def shard_size(self) -> int:
        return self.concurrency

    @property
    def cache_ttl_ms(self) -> int:
        return self.cache_ttl_seconds * 1000
