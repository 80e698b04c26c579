"""Async TMDB API client (httpx)."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from streamgarr.domain.entities import MediaKind, TitleInfo
from streamgarr.domain.providers import FetchFailure, ResolutionMiss
from streamgarr.infrastructure.cache.ttl_cache import TtlCache

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.themoviedb.org/3"


def _endpoint(media_kind: MediaKind) -> str:
    return "tv" if media_kind == "series" else "movie"


class HttpxTmdbClient:
    """Async TMDB client using httpx.

    Implements ``TmdbClientPort`` from domain.ports.tmdb. Title lookups are
    cached in ``title_cache``; id lookups are cached one level up by
    ``TmdbIdentifierResolver``.
    """

    def __init__(
        self,
        *,
        api_key: str,
        http_client: httpx.AsyncClient,
        title_cache: TtlCache[TitleInfo],
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._http = http_client
        self._title_cache = title_cache
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get(self, path: str, **extra: Any) -> dict[str, Any] | None:
        """GET request. Parsed JSON, None on 404, FetchFailure otherwise."""
        url = f"{_BASE_URL}{path}"
        try:
            resp = await self._http.get(
                url, params={"api_key": self._api_key, **extra}, timeout=self._timeout
            )
            if resp.status_code == 401:
                log.error("tmdb_api_key_invalid", status=401)
                raise FetchFailure("TMDB rejected the API key")
            if resp.status_code == 404:
                log.debug("tmdb_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            log.warning("tmdb_http_error", path=path, exc_info=True)
            raise FetchFailure(f"TMDB returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            log.warning("tmdb_network_error", path=path, exc_info=True)
            raise FetchFailure(f"TMDB request failed: {e}") from e
        except ValueError as e:
            log.warning("tmdb_invalid_json", path=path)
            raise FetchFailure("TMDB returned invalid JSON") from e

    # ------------------------------------------------------------------
    # Public API (TmdbClientPort)
    # ------------------------------------------------------------------

    async def find_tmdb_id(self, imdb_id: str, media_kind: MediaKind) -> str:
        data = await self._get(f"/find/{imdb_id}", external_source="imdb_id")
        key = "tv_results" if media_kind == "series" else "movie_results"
        results = data.get(key) if isinstance(data, dict) else None
        first = results[0] if isinstance(results, list) and results else None
        if not isinstance(first, dict) or first.get("id") is None:
            raise ResolutionMiss(f"no TMDB {_endpoint(media_kind)} entry for {imdb_id}")
        return str(first["id"])

    async def get_title_info(
        self, tmdb_id: str, media_kind: MediaKind
    ) -> TitleInfo | None:
        """Get title and release year for a TMDB id. None if unavailable."""
        cache_key = f"{media_kind}:{tmdb_id}"
        cached = await self._title_cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = await self._get(f"/{_endpoint(media_kind)}/{tmdb_id}")
        except FetchFailure:
            return None
        if not isinstance(data, dict):
            return None

        if media_kind == "series":
            title = data.get("name") or ""
            original = data.get("original_name") or ""
            date_str = data.get("first_air_date") or ""
        else:
            title = data.get("title") or ""
            original = data.get("original_title") or ""
            date_str = data.get("release_date") or ""
        if not title:
            return None

        year = int(date_str[:4]) if date_str[:4].isdigit() else None
        info = TitleInfo(title=title, original_title=original, year=year)
        await self._title_cache.set(cache_key, info)
        return info
