"""Tests for provider/stream domain entities."""

from __future__ import annotations

import pytest

from streamgarr.domain.entities import (
    CacheEntry,
    ProviderInfo,
    Stream,
    StreamRequest,
    StremioStream,
)
from streamgarr.domain.providers import (
    FetchFailure,
    InvalidPlugin,
    ProviderError,
    ResolutionMiss,
)


class TestProviderInfo:
    def test_defaults(self) -> None:
        info = ProviderInfo(id="alpha", name="Alpha")
        assert info.source == "static"
        assert info.enabled is True
        assert info.supported_kinds == ("movie", "series")
        assert info.location is None

    def test_supports(self) -> None:
        info = ProviderInfo(id="films", name="Films", supported_kinds=("movie",))
        assert info.supports("movie")
        assert not info.supports("series")

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="id"):
            ProviderInfo(id="", name="Nameless")

    def test_remote_requires_location(self) -> None:
        with pytest.raises(ValueError, match="location"):
            ProviderInfo(id="beta", name="Beta", source="remote")

    def test_static_rejects_location(self) -> None:
        with pytest.raises(ValueError, match="location"):
            ProviderInfo(id="alpha", name="Alpha", location="alpha.py")

    def test_frozen(self) -> None:
        info = ProviderInfo(id="alpha", name="Alpha")
        with pytest.raises(AttributeError):
            info.enabled = False  # type: ignore[misc]


class TestStream:
    def test_optional_fields(self, stream: Stream) -> None:
        assert stream.size is None
        assert stream.headers is None

    def test_frozen(self, stream: Stream) -> None:
        with pytest.raises(AttributeError):
            stream.url = "https://other"  # type: ignore[misc]


class TestCacheEntry:
    def test_fresh_within_ttl(self) -> None:
        entry = CacheEntry(value="x", fetched_at=100.0)
        assert entry.is_fresh(now=159.9, ttl=60)

    def test_stale_at_ttl_boundary(self) -> None:
        entry = CacheEntry(value="x", fetched_at=100.0)
        assert not entry.is_fresh(now=160.0, ttl=60)


class TestRequests:
    def test_stream_request_defaults(self) -> None:
        req = StreamRequest(external_id="tt0371746", media_kind="movie")
        assert req.season is None
        assert req.episode is None

    def test_stremio_stream_hints_default_empty(self) -> None:
        s = StremioStream(name="A\n1080p", url="https://x.example/v.mp4")
        assert s.title == ""
        assert s.behavior_hints == {}


class TestExceptions:
    def test_hierarchy(self) -> None:
        for exc in (FetchFailure, InvalidPlugin, ResolutionMiss):
            assert issubclass(exc, ProviderError)
        assert issubclass(ProviderError, Exception)
