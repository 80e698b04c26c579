"""Shared test fixtures for Streamgarr test suite."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from streamgarr.domain.entities import ProviderInfo, Stream
from streamgarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from streamgarr.infrastructure.cache.ttl_cache import TtlCache

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def static_info() -> ProviderInfo:
    """Catalog record of a native provider."""
    return ProviderInfo(id="alpha", name="Alpha", description="Alpha streams")


@pytest.fixture()
def remote_info() -> ProviderInfo:
    """Catalog record of a manifest-listed provider."""
    return ProviderInfo(
        id="beta",
        name="Beta",
        source="remote",
        location="providers/beta.py",
    )


@pytest.fixture()
def stream() -> Stream:
    """Minimal valid Stream."""
    return Stream(
        name="Alpha",
        title="Iron Man (2008)",
        url="https://cdn.example.com/iron-man.m3u8",
        quality="1080p",
        provider="alpha",
    )


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakeProvider:
    """Native provider returning a fixed result (or raising)."""

    def __init__(
        self,
        info: ProviderInfo,
        result: Any = None,
        *,
        error: BaseException | None = None,
    ) -> None:
        self.info = info
        self._result = [] if result is None else result
        self._error = error
        self.calls: list[tuple[Any, ...]] = []

    async def get_streams(
        self,
        internal_id: str,
        media_kind: str,
        season: int | None = None,
        episode: int | None = None,
    ) -> Any:
        self.calls.append((internal_id, media_kind, season, episode))
        if self._error is not None:
            raise self._error
        return self._result


@pytest.fixture()
def fake_provider_cls() -> type[FakeProvider]:
    return FakeProvider


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def memory_backend() -> MemoryCacheAdapter:
    return MemoryCacheAdapter(retention_seconds=3600)


class FakeClock:
    """Controllable wall clock (epoch seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_ttl_cache(memory_backend: MemoryCacheAdapter, clock: FakeClock):
    """Factory for TtlCaches sharing the memory backend and fake clock."""

    def _make(namespace: str = "test", ttl_seconds: float = 60.0) -> TtlCache[Any]:
        return TtlCache(
            memory_backend, namespace=namespace, ttl_seconds=ttl_seconds, clock=clock
        )

    return _make


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    """Real httpx.AsyncClient for use with respx mocking."""
    async with httpx.AsyncClient() as client:
        yield client


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache


@pytest.fixture()
def mock_tmdb() -> AsyncMock:
    """Mock TmdbClientPort."""
    tmdb = AsyncMock()
    tmdb.find_tmdb_id = AsyncMock(return_value="1726")
    tmdb.get_title_info = AsyncMock(return_value=None)
    return tmdb


@pytest.fixture()
def mock_registry() -> MagicMock:
    """Mock ProviderRegistryPort (async methods)."""
    registry = MagicMock()
    registry.list_enabled = AsyncMock(return_value=[])
    registry.list_all = AsyncMock(return_value=[])
    return registry
