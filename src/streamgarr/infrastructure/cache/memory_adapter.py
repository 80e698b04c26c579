"""In-process cache adapter - plain dict with monotonic retention."""

from __future__ import annotations

import time
from typing import Any

import structlog

log = structlog.get_logger(__name__)


class MemoryCacheAdapter:
    """Process-local CachePort implementation.

    Values are stored as-is (no serialization); callers store immutable
    ``CacheEntry`` objects, so sharing references is safe.

    Args:
        retention_seconds: Default retention for ``set()`` without explicit value.
    """

    def __init__(self, retention_seconds: int = 604_800) -> None:
        self.default_retention = retention_seconds
        self._data: dict[str, tuple[Any, float]] = {}

    async def __aenter__(self) -> MemoryCacheAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._data.clear()

    async def get(self, key: str) -> Any | None:
        item = self._data.get(key)
        if item is None:
            log.debug("cache_get", key=key, hit=False)
            return None
        value, expires_at = item
        if time.monotonic() >= expires_at:
            self._data.pop(key, None)
            log.debug("cache_get", key=key, hit=False, expired=True)
            return None
        log.debug("cache_get", key=key, hit=True)
        return value

    async def set(self, key: str, value: Any, *, retention: int | None = None) -> None:
        keep = retention if retention is not None else self.default_retention
        self._data[key] = (value, time.monotonic() + keep)
        log.debug("cache_set", key=key, retention=keep)

    async def delete(self, key: str) -> bool:
        deleted = self._data.pop(key, None) is not None
        log.debug("cache_delete", key=key, deleted=deleted)
        return deleted

    async def clear(self) -> None:
        self._data.clear()
        log.warning("cache_cleared", backend="memory")
