"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from devsweep.models.scan_config import ScanConfig


class EngineConfig(BaseSettings):
    """Batch-scan engine tunables."""

    model_config = {"env_prefix": "DEVSWEEP_ENGINE_"}

    concurrency: int = Field(default=5, ge=1, le=50)
    time_budget_seconds: float = Field(default=270.0, gt=0)
    hard_ceiling_seconds: float = Field(default=360.0, gt=0)
    continuation_delay_seconds: int = Field(default=60, ge=1)
    checkpoint_every_shards: int = Field(default=1, ge=1)
    cache_ttl_seconds: int = 86400  # 0 disables the scan cache
    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=60000, ge=0)
    max_value_bytes: int = Field(default=64000, ge=1024)

    @model_validator(mode="after")
    def _budget_below_ceiling(self) -> EngineConfig:
        if self.time_budget_seconds >= self.hard_ceiling_seconds:
            raise ValueError(
                f"time_budget_seconds ({self.time_budget_seconds}) must be below "
                f"hard_ceiling_seconds ({self.hard_ceiling_seconds})"
            )
        return self

    def scan_config(self) -> ScanConfig:
        """Freeze the current values into the struct handed to the engine."""
        return ScanConfig(
            concurrency=self.concurrency,
            time_budget_seconds=self.time_budget_seconds,
            hard_ceiling_seconds=self.hard_ceiling_seconds,
            continuation_delay_seconds=self.continuation_delay_seconds,
            checkpoint_every_shards=self.checkpoint_every_shards,
            cache_ttl_seconds=self.cache_ttl_seconds,
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            max_delay_ms=self.max_delay_ms,
        )


class DirectoryConfig(BaseSettings):
    """Admin SDK Directory API configuration."""

    model_config = {"env_prefix": "DEVSWEEP_DIRECTORY_"}

    base_url: str = "https://admin.googleapis.com/admin/directory/v1"
    customer_id: str = "my_customer"
    access_token: str = ""
    timeout: float = 30.0
    page_size: int = Field(default=100, ge=1, le=100)


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "DEVSWEEP_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis store/scheduler configuration."""

    model_config = {"env_prefix": "DEVSWEEP_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "devsweep:"
    results_stream_maxlen: int = 100_000


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "DEVSWEEP_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool = False

    store_backend: Literal["memory", "redis", "dynamodb"] = "memory"
    scheduler_backend: Literal["memory", "redis"] = "memory"
    result_sink: Literal["log", "redis"] = "log"

    engine: EngineConfig = EngineConfig()
    directory: DirectoryConfig = DirectoryConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
