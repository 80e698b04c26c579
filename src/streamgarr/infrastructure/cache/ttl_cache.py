"""TTL cache with stale-if-error refresh on top of a CachePort backend."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import structlog

from streamgarr.domain.entities import CacheEntry
from streamgarr.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

T = TypeVar("T")


class TtlCache(Generic[T]):
    """Namespaced TTL cache storing ``CacheEntry`` records in a backend.

    Freshness is ``now - fetched_at < ttl``. Expired entries stay in the
    backend for its retention window and are only handed out by
    ``get_or_refresh`` when a refresh fails.

    Args:
        backend: Storage adapter (memory, diskcache, redis).
        namespace: Key prefix, keeps caches sharing one backend apart.
        ttl_seconds: Default TTL for ``get``/``get_or_refresh``.
        clock: Wall-clock source in epoch seconds.
    """

    def __init__(
        self,
        backend: CachePort,
        *,
        namespace: str,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def _load(self, key: str) -> CacheEntry[T] | None:
        entry = await self._backend.get(self._key(key))
        if isinstance(entry, CacheEntry):
            return entry
        return None

    async def get(self, key: str, *, ttl: float | None = None) -> T | None:
        """Return the value if present and fresh, else None."""
        entry = await self._load(key)
        if entry is None:
            return None
        effective_ttl = self.ttl_seconds if ttl is None else ttl
        if not entry.is_fresh(self._clock(), effective_ttl):
            return None
        return entry.value

    async def set(self, key: str, value: T) -> None:
        entry = CacheEntry(value=value, fetched_at=self._clock())
        await self._backend.set(self._key(key), entry)

    async def delete(self, key: str) -> bool:
        return await self._backend.delete(self._key(key))

    async def entry(self, key: str) -> CacheEntry[T] | None:
        """Raw entry regardless of freshness (used for age checks)."""
        return await self._load(key)

    async def get_or_refresh(
        self,
        key: str,
        refresh_fn: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """Fresh value, else refreshed value, else stale value.

        Raises whatever ``refresh_fn`` raised when no previous value exists.
        """
        effective_ttl = self.ttl_seconds if ttl is None else ttl
        previous = await self._load(key)
        if previous is not None and previous.is_fresh(self._clock(), effective_ttl):
            log.debug("cache_hit", namespace=self.namespace, key=key)
            return previous.value

        try:
            value = await refresh_fn()
        except Exception as e:
            if previous is None:
                log.debug(
                    "cache_refresh_failed",
                    namespace=self.namespace,
                    key=key,
                    error=str(e),
                )
                raise
            log.warning(
                "cache_stale_fallback",
                namespace=self.namespace,
                key=key,
                age_seconds=round(self._clock() - previous.fetched_at, 1),
                error=str(e),
            )
            return previous.value

        await self.set(key, value)
        log.debug("cache_refreshed", namespace=self.namespace, key=key)
        return value
