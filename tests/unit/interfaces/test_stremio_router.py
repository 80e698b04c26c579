"""Tests for Stremio addon router endpoints."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from streamgarr.domain.entities import ProviderInfo, StreamRequest, StremioStream
from streamgarr.interfaces.api.stremio.router import (
    build_manifest,
    parse_stream_id,
    router,
)


def _make_app(
    *,
    providers: list[ProviderInfo] | None = None,
    stremio_stream_uc: AsyncMock | None = None,
) -> FastAPI:
    """Create a minimal FastAPI app with the stremio router."""
    app = FastAPI()
    app.include_router(router)

    registry = MagicMock()
    registry.list_all = AsyncMock(return_value=providers or [])
    app.state.registry = registry
    app.state.stremio_stream_uc = stremio_stream_uc or AsyncMock()

    return app


def _stream_uc(streams: list[StremioStream]) -> AsyncMock:
    uc = AsyncMock()
    uc.execute = AsyncMock(return_value=streams)
    return uc


class TestParseStreamId:
    def test_movie_id(self) -> None:
        assert parse_stream_id("movie", "tt1234567") == StreamRequest(
            external_id="tt1234567", media_kind="movie"
        )

    def test_series_id_with_season_episode(self) -> None:
        result = parse_stream_id("series", "tt1234567:1:5")
        assert result == StreamRequest(
            external_id="tt1234567", media_kind="series", season=1, episode=5
        )

    def test_movie_ignores_episode_parts(self) -> None:
        result = parse_stream_id("movie", "tt1234567:1:5")
        assert result is not None
        assert result.season is None

    def test_series_without_season_episode(self) -> None:
        result = parse_stream_id("series", "tt1234567")
        assert result is not None
        assert result.season is None
        assert result.episode is None

    def test_series_non_numeric_season(self) -> None:
        assert parse_stream_id("series", "tt1234567:abc:5") is None

    def test_tmdb_ids(self) -> None:
        assert parse_stream_id("movie", "tmdb:12345") == StreamRequest(
            external_id="tmdb:12345", media_kind="movie"
        )
        assert parse_stream_id("series", "tmdb:1399:2:3") == StreamRequest(
            external_id="tmdb:1399", media_kind="series", season=2, episode=3
        )

    def test_tmdb_non_numeric(self) -> None:
        assert parse_stream_id("movie", "tmdb:abc") is None
        assert parse_stream_id("movie", "tmdb:") is None

    def test_invalid_prefix(self) -> None:
        assert parse_stream_id("movie", "nm1234567") is None

    def test_invalid_content_type(self) -> None:
        assert parse_stream_id("channel", "tt1234567") is None
        assert parse_stream_id("tv", "tt1234567") is None


class TestManifest:
    def test_build_manifest(self) -> None:
        manifest = build_manifest("https://addon.example.org")
        assert manifest["id"] == "com.nuvio.stremio"
        assert manifest["resources"] == ["stream"]
        assert manifest["types"] == ["movie", "series"]
        assert manifest["catalogs"] == []
        assert manifest["idPrefixes"] == ["tt"]
        assert manifest["logo"] == "https://addon.example.org/logo.png"

    def test_endpoint_with_cors(self) -> None:
        client = TestClient(_make_app())
        resp = client.get("/manifest.json")
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.json()["logo"] == "http://testserver/logo.png"

    def test_forwarded_headers(self) -> None:
        client = TestClient(_make_app())
        resp = client.get(
            "/manifest.json",
            headers={"X-Forwarded-Proto": "https", "X-Forwarded-Host": "addon.example.org"},
        )
        assert resp.json()["logo"] == "https://addon.example.org/logo.png"

    def test_preflight(self) -> None:
        client = TestClient(_make_app())
        resp = client.options("/stream/movie/tt1.json")
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-methods"] == "GET, OPTIONS"


class TestStreamEndpoint:
    def test_streams_rendered(self) -> None:
        uc = _stream_uc(
            [
                StremioStream(
                    name="Alpha\n1080p",
                    title="Iron Man",
                    url="https://cdn.example.com/a.m3u8",
                ),
                StremioStream(
                    name="Beta\nAuto",
                    title="",
                    url="https://cdn.example.com/b.m3u8",
                    behavior_hints={
                        "notWebReady": True,
                        "proxyHeaders": {"request": {"Referer": "https://b.example/"}},
                    },
                ),
            ]
        )
        client = TestClient(_make_app(stremio_stream_uc=uc))
        resp = client.get("/stream/movie/tt0371746.json")

        assert resp.status_code == 200
        assert resp.json() == {
            "streams": [
                {
                    "name": "Alpha\n1080p",
                    "title": "Iron Man",
                    "url": "https://cdn.example.com/a.m3u8",
                },
                {
                    "name": "Beta\nAuto",
                    "title": "",
                    "url": "https://cdn.example.com/b.m3u8",
                    "behaviorHints": {
                        "notWebReady": True,
                        "proxyHeaders": {"request": {"Referer": "https://b.example/"}},
                    },
                },
            ]
        }
        uc.execute.assert_awaited_once_with(
            StreamRequest(external_id="tt0371746", media_kind="movie")
        )

    def test_series_episode(self) -> None:
        uc = _stream_uc([])
        client = TestClient(_make_app(stremio_stream_uc=uc))
        resp = client.get("/stream/series/tt0944947:1:5.json")
        assert resp.json() == {"streams": []}
        uc.execute.assert_awaited_once_with(
            StreamRequest(
                external_id="tt0944947", media_kind="series", season=1, episode=5
            )
        )

    @pytest.mark.parametrize(
        "path",
        ["/stream/channel/tt1.json", "/stream/movie/nm123.json", "/stream/movie/tmdb:x.json"],
    )
    def test_invalid_request_is_empty(self, path: str) -> None:
        uc = _stream_uc([])
        client = TestClient(_make_app(stremio_stream_uc=uc))
        resp = client.get(path)
        assert resp.status_code == 200
        assert resp.json() == {"streams": []}
        uc.execute.assert_not_awaited()

    def test_internal_error_is_empty(self) -> None:
        uc = AsyncMock()
        uc.execute = AsyncMock(side_effect=RuntimeError("boom"))
        client = TestClient(_make_app(stremio_stream_uc=uc))
        resp = client.get("/stream/movie/tt0371746.json")
        assert resp.status_code == 200
        assert resp.json() == {"streams": []}


class TestAddonApi:
    def _providers(self) -> list[ProviderInfo]:
        return [
            ProviderInfo(id="alpha", name="Alpha", logo="https://alpha.example/logo.png"),
            ProviderInfo(
                id="beta",
                name="Beta",
                source="remote",
                location="providers/beta.py",
                supported_kinds=("series",),
                content_language=("en",),
            ),
            ProviderInfo(id="off", name="Off", enabled=False),
        ]

    def test_providers(self) -> None:
        client = TestClient(_make_app(providers=self._providers()))
        resp = client.get("/api/providers")
        assert resp.status_code == 200
        body = resp.json()
        assert [p["id"] for p in body] == ["alpha", "beta"]
        assert body[0]["supportedTypes"] == ["movie", "tv"]
        assert body[0]["filename"] == ""
        assert body[0]["source"] == "static"
        assert body[1]["supportedTypes"] == ["tv"]
        assert body[1]["filename"] == "providers/beta.py"
        assert body[1]["contentLanguage"] == ["en"]

    def test_providers_error(self) -> None:
        app = _make_app()
        app.state.registry.list_all = AsyncMock(side_effect=RuntimeError("down"))
        resp = TestClient(app).get("/api/providers")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to get providers"}

    def test_addon_info(self) -> None:
        client = TestClient(_make_app(providers=self._providers()))
        resp = client.get("/api/addon-info")
        body = resp.json()
        assert body["manifest"]["id"] == "com.nuvio.stremio"
        assert [p["id"] for p in body["providers"]] == ["alpha", "beta"]
        assert body["installUrl"] == "stremio://testserver/manifest.json"

    def test_addon_info_error(self) -> None:
        app = _make_app()
        app.state.registry.list_all = AsyncMock(side_effect=RuntimeError("down"))
        resp = TestClient(app).get("/api/addon-info")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to get addon info"}

    def test_health(self) -> None:
        resp = TestClient(_make_app()).get("/api/health")
        body = resp.json()
        assert body["status"] == "ok"
        assert datetime.fromisoformat(body["timestamp"]).tzinfo is not None
