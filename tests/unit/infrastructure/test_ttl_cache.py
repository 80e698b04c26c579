"""Tests for TtlCache (expiry + stale-if-error refresh)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from streamgarr.domain.entities import CacheEntry
from streamgarr.domain.providers import FetchFailure
from streamgarr.infrastructure.cache.ttl_cache import TtlCache


class TestGetSet:
    @pytest.mark.asyncio()
    async def test_fresh_value_returned(self, make_ttl_cache) -> None:
        cache = make_ttl_cache(ttl_seconds=60)
        await cache.set("k", "v")
        assert await cache.get("k") == "v"

    @pytest.mark.asyncio()
    async def test_expired_value_hidden(self, make_ttl_cache, clock) -> None:
        cache = make_ttl_cache(ttl_seconds=60)
        await cache.set("k", "v")
        clock.advance(60)
        assert await cache.get("k") is None

    @pytest.mark.asyncio()
    async def test_explicit_ttl_overrides_default(self, make_ttl_cache, clock) -> None:
        cache = make_ttl_cache(ttl_seconds=60)
        await cache.set("k", "v")
        clock.advance(30)
        assert await cache.get("k", ttl=10) is None
        assert await cache.get("k", ttl=120) == "v"

    @pytest.mark.asyncio()
    async def test_entry_kept_after_expiry(self, make_ttl_cache, clock) -> None:
        cache = make_ttl_cache(ttl_seconds=60)
        await cache.set("k", "v")
        clock.advance(3600)
        entry = await cache.entry("k")
        assert entry is not None
        assert entry.value == "v"

    @pytest.mark.asyncio()
    async def test_namespaces_isolated(self, make_ttl_cache) -> None:
        a = make_ttl_cache(namespace="a")
        b = make_ttl_cache(namespace="b")
        await a.set("k", 1)
        assert await b.get("k") is None

    @pytest.mark.asyncio()
    async def test_keys_prefixed_in_backend(self, mock_cache) -> None:
        cache: TtlCache[str] = TtlCache(mock_cache, namespace="code", ttl_seconds=5)
        await cache.set("vidzee", "src")
        key, entry = mock_cache.set.await_args.args
        assert key == "code:vidzee"
        assert isinstance(entry, CacheEntry)

    @pytest.mark.asyncio()
    async def test_foreign_backend_value_ignored(self, mock_cache) -> None:
        mock_cache.get = AsyncMock(return_value="not-an-entry")
        cache: TtlCache[str] = TtlCache(mock_cache, namespace="x", ttl_seconds=5)
        assert await cache.get("k") is None

    @pytest.mark.asyncio()
    async def test_delete(self, make_ttl_cache) -> None:
        cache = make_ttl_cache()
        await cache.set("k", "v")
        assert await cache.delete("k") is True
        assert await cache.get("k") is None


class TestGetOrRefresh:
    @pytest.mark.asyncio()
    async def test_miss_calls_refresh_and_stores(self, make_ttl_cache) -> None:
        cache = make_ttl_cache()
        refresh = AsyncMock(return_value="fresh")
        assert await cache.get_or_refresh("k", refresh) == "fresh"
        assert await cache.get("k") == "fresh"
        refresh.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_fresh_hit_skips_refresh(self, make_ttl_cache) -> None:
        cache = make_ttl_cache()
        await cache.set("k", "cached")
        refresh = AsyncMock(return_value="new")
        assert await cache.get_or_refresh("k", refresh) == "cached"
        refresh.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_expired_refreshes(self, make_ttl_cache, clock) -> None:
        cache = make_ttl_cache(ttl_seconds=60)
        await cache.set("k", "old")
        clock.advance(61)
        refresh = AsyncMock(return_value="new")
        assert await cache.get_or_refresh("k", refresh) == "new"

    @pytest.mark.asyncio()
    async def test_stale_if_error(self, make_ttl_cache, clock) -> None:
        cache = make_ttl_cache(ttl_seconds=60)
        await cache.set("k", "old")
        clock.advance(600)
        refresh = AsyncMock(side_effect=FetchFailure("down"))
        assert await cache.get_or_refresh("k", refresh) == "old"

    @pytest.mark.asyncio()
    async def test_stale_value_not_rewritten(self, make_ttl_cache, clock) -> None:
        cache = make_ttl_cache(ttl_seconds=60)
        await cache.set("k", "old")
        clock.advance(600)
        await cache.get_or_refresh("k", AsyncMock(side_effect=FetchFailure("down")))
        # Still stale: the next call retries the upstream.
        assert await cache.get("k") is None

    @pytest.mark.asyncio()
    async def test_error_without_previous_propagates(self, make_ttl_cache) -> None:
        cache = make_ttl_cache()
        with pytest.raises(FetchFailure):
            await cache.get_or_refresh("k", AsyncMock(side_effect=FetchFailure("x")))

    @pytest.mark.asyncio()
    async def test_failed_refresh_not_cached(self, make_ttl_cache) -> None:
        cache = make_ttl_cache()
        with pytest.raises(FetchFailure):
            await cache.get_or_refresh("k", AsyncMock(side_effect=FetchFailure("x")))
        assert await cache.entry("k") is None
