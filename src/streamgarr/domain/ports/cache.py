"""Cache Port - Interface for backend-agnostic cache storage."""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Port for an async key-value store with optional retention.

    Implementations:
      - MemoryCacheAdapter (process-local dict)
      - DiskcacheAdapter (SQLite-based, no daemon)
      - RedisAdapter (Redis async client)

    Backends only *store* entries. Freshness (TTL) is decided by
    ``TtlCache`` from the stored ``CacheEntry.fetched_at``; the backend
    ``retention`` only bounds how long stale entries stay around.
    """

    async def get(self, key: str) -> Any:
        """Retrieve value. None = not found / past retention."""
        ...

    async def set(self, key: str, value: Any, *, retention: int | None = None) -> None:
        """Store value, kept for ``retention`` seconds (None = backend default)."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. True = deleted, False = did not exist."""
        ...

    async def clear(self) -> None:
        """Delete ALL keys."""
        ...

    async def aclose(self) -> None:
        """Cleanup hook (e.g. close Redis connection)."""
        ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
