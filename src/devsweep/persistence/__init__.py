"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from devsweep.core.config import AppSettings
from devsweep.core.protocols import IContinuationScheduler, IKeyValueStore, IResultSink
from devsweep.persistence.dynamodb_backend import DynamoDBKeyValueStore
from devsweep.persistence.log_backend import LogResultSink
from devsweep.persistence.memory_backend import (
    MemoryContinuationScheduler,
    MemoryKeyValueStore,
)
from devsweep.persistence.redis_backend import (
    RedisContinuationScheduler,
    RedisKeyValueStore,
    RedisStreamResultSink,
)


def create_persistence(
    settings: AppSettings | None = None,
) -> tuple[IKeyValueStore, IContinuationScheduler, IResultSink]:
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (store, scheduler, result_sink).
    """
    if settings is None:
        settings = AppSettings()
    redis_kwargs = {
        "host": settings.redis.host,
        "port": settings.redis.port,
        "db": settings.redis.db,
        "key_prefix": settings.redis.key_prefix,
    }

    store: IKeyValueStore
    if settings.store_backend == "redis":
        store = RedisKeyValueStore(**redis_kwargs)
    elif settings.store_backend == "dynamodb":
        store = DynamoDBKeyValueStore(
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
        )
    else:
        store = MemoryKeyValueStore()

    scheduler: IContinuationScheduler
    if settings.scheduler_backend == "redis":
        scheduler = RedisContinuationScheduler(**redis_kwargs)
    else:
        scheduler = MemoryContinuationScheduler()

    sink: IResultSink
    if settings.result_sink == "redis":
        sink = RedisStreamResultSink(**redis_kwargs, maxlen=settings.redis.results_stream_maxlen)
    else:
        sink = LogResultSink()

    return store, scheduler, sink
