"""Cache factory - builds the storage adapter selected in config."""

from __future__ import annotations

from typing import Literal

import structlog

from streamgarr.domain.ports.cache import CachePort
from streamgarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from streamgarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from streamgarr.infrastructure.cache.redis_adapter import RedisAdapter

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory", "diskcache", "redis"]


def create_cache(
    backend: CacheBackend = "memory",
    *,
    directory: str = "./.cache/streamgarr",
    redis_url: str = "redis://localhost:6379/0",
    retention_seconds: int = 604_800,
    max_concurrent: int = 10,
) -> CachePort:
    """Create the cache storage adapter for ``backend``.

    Args:
        backend: "memory", "diskcache" (SQLite) or "redis".
        directory: Diskcache path.
        redis_url: Redis connection string.
        retention_seconds: How long entries (including stale ones) are kept.
        max_concurrent: Semaphore limit for diskcache (Redis uses 50).

    Raises:
        ValueError: If `backend` is unknown.
    """
    log.info(
        "cache_factory_create",
        backend=backend,
        retention=retention_seconds,
    )
    if backend == "memory":
        return MemoryCacheAdapter(retention_seconds=retention_seconds)
    if backend == "diskcache":
        return DiskcacheAdapter(
            directory=directory,
            retention_seconds=retention_seconds,
            max_concurrent=max_concurrent,
        )
    if backend == "redis":
        return RedisAdapter(
            url=redis_url,
            retention_seconds=retention_seconds,
            max_concurrent=50,
        )
    raise ValueError(
        f"Unknown cache backend: {backend!r}. Must be 'memory', 'diskcache' or 'redis'."
    )
