"""Tests for StremioStreamUseCase and Stremio stream rendering."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from streamgarr.application.use_cases import StremioStreamUseCase
from streamgarr.application.use_cases.stremio_stream import to_stremio_stream
from streamgarr.domain.entities import Stream, StreamRequest, StremioStream


@pytest.fixture()
def resolver() -> AsyncMock:
    resolver = AsyncMock()
    resolver.resolve = AsyncMock(return_value="1726")
    return resolver


@pytest.fixture()
def aggregator(stream: Stream) -> AsyncMock:
    aggregator = AsyncMock()
    aggregator.execute = AsyncMock(return_value=[stream])
    return aggregator


class TestToStremioStream:
    def test_name_and_title(self, stream: Stream) -> None:
        out = to_stremio_stream(stream)
        assert out == StremioStream(
            name="Alpha\n1080p",
            title="Iron Man (2008)",
            url="https://cdn.example.com/iron-man.m3u8",
        )

    def test_size_appended_to_title(self) -> None:
        out = to_stremio_stream(
            Stream(
                name="Beta",
                title="Lost S01E02",
                url="https://cdn.example.com/x.mp4",
                quality="720p",
                provider="beta",
                size="850 MB",
            )
        )
        assert out.title == "Lost S01E02\n850 MB"

    def test_headers_become_proxy_hints(self) -> None:
        out = to_stremio_stream(
            Stream(
                name="Gamma",
                title="",
                url="https://cdn.example.com/x.m3u8",
                quality="Auto",
                provider="gamma",
                headers={"Referer": "https://gamma.example/"},
            )
        )
        assert out.behavior_hints == {
            "notWebReady": True,
            "proxyHeaders": {"request": {"Referer": "https://gamma.example/"}},
        }

    def test_no_headers_no_hints(self, stream: Stream) -> None:
        assert to_stremio_stream(stream).behavior_hints == {}


class TestStremioStreamUseCase:
    @pytest.mark.asyncio()
    async def test_movie(self, resolver, aggregator) -> None:
        uc = StremioStreamUseCase(resolver=resolver, aggregator=aggregator)
        result = await uc.execute(StreamRequest(external_id="tt0371746", media_kind="movie"))

        assert [s.url for s in result] == ["https://cdn.example.com/iron-man.m3u8"]
        resolver.resolve.assert_awaited_once_with("tt0371746", "movie")
        aggregator.execute.assert_awaited_once_with(
            "1726", "movie", season=None, episode=None
        )

    @pytest.mark.asyncio()
    async def test_series_passes_episode(self, resolver, aggregator) -> None:
        resolver.resolve = AsyncMock(return_value="1399")
        uc = StremioStreamUseCase(resolver=resolver, aggregator=aggregator)
        await uc.execute(
            StreamRequest(external_id="tt0944947", media_kind="series", season=1, episode=5)
        )
        aggregator.execute.assert_awaited_once_with(
            "1399", "series", season=1, episode=5
        )

    @pytest.mark.asyncio()
    async def test_unresolved_id_skips_providers(self, resolver, aggregator) -> None:
        resolver.resolve = AsyncMock(return_value=None)
        uc = StremioStreamUseCase(resolver=resolver, aggregator=aggregator)
        result = await uc.execute(StreamRequest(external_id="tt0000000", media_kind="movie"))

        assert result == []
        aggregator.execute.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_order_preserved(self, resolver, aggregator) -> None:
        streams = [
            Stream(name=n, title="", url=f"https://{n}.example/", quality="", provider=n)
            for n in ("a", "b", "c")
        ]
        aggregator.execute = AsyncMock(return_value=streams)
        uc = StremioStreamUseCase(resolver=resolver, aggregator=aggregator)
        result = await uc.execute(StreamRequest(external_id="tt1", media_kind="movie"))
        assert [s.url for s in result] == [
            "https://a.example/",
            "https://b.example/",
            "https://c.example/",
        ]
