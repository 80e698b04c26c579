"""SoaperTV native provider (HTML search + AJAX stream endpoint).

Flow: TMDB title -> site search (cached) -> match by normalized title/year
-> season page episode index (cached) -> content page ``#hId`` pass value
-> ``getMInfoAjax`` / ``getEInfoAjax`` -> stream path.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from streamgarr.domain.entities import MediaKind, ProviderInfo, TitleInfo
from streamgarr.domain.providers import FetchFailure
from streamgarr.domain.ports.tmdb import TmdbClientPort
from streamgarr.infrastructure.cache.ttl_cache import TtlCache

from .base import HttpxProviderBase

BASE_URL = "https://soaper.cc"
_AJAX_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 18_0 like Mac OS X) AppleWebKit/605.1.15"
)


@dataclass(frozen=True)
class SearchHit:
    title: str
    year: int | None
    url: str


@dataclass(frozen=True)
class EpisodeLink:
    number: int
    url: str


def _normalize(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def matches(info: TitleInfo, hit: SearchHit) -> bool:
    """Same normalized title; years must agree when both are known."""
    if _normalize(info.title) != _normalize(hit.title):
        return False
    return not (info.year and hit.year and info.year != hit.year)


def parse_search_results(html: str) -> list[SearchHit]:
    soup = BeautifulSoup(html, "lxml")
    hits: list[SearchHit] = []
    for thumb in soup.select(".thumbnail"):
        link = thumb.select_one("h5 a")
        if link is None:
            continue
        title = link.get_text(strip=True)
        href = link.get("href")
        if not title or not href:
            continue
        year_el = thumb.select_one(".img-tip")
        year_text = year_el.get_text(strip=True) if year_el else ""
        year = int(year_text[:4]) if year_text[:4].isdigit() else None
        hits.append(SearchHit(title=title, year=year, url=str(href)))
    return hits


def parse_episode_index(html: str, season: int) -> list[EpisodeLink]:
    """Episode links of one season block (``<h4>Season3: ...</h4>`` + links)."""
    soup = BeautifulSoup(html, "lxml")
    wanted = f"season{season}"
    for heading in soup.find_all("h4"):
        label = heading.get_text(strip=True).split(":")[0].strip().lower()
        if label.replace(" ", "") != wanted:
            continue
        block = heading.parent
        if block is None:
            return []
        episodes: list[EpisodeLink] = []
        for a in block.find_all("a"):
            num_text = a.get_text(strip=True).split(".")[0].strip()
            href = a.get("href")
            if num_text.isdigit() and href:
                episodes.append(EpisodeLink(number=int(num_text), url=str(href)))
        return episodes
    return []


class SoaperTvProvider(HttpxProviderBase):
    info = ProviderInfo(
        id="soapertv",
        name="SoaperTV",
        description="SoaperTV streaming for movies and TV shows",
        logo="https://soaper.cc/favicon.ico",
    )

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        tmdb: TmdbClientPort | None = None,
        site_cache: TtlCache[Any],
    ) -> None:
        super().__init__(http_client=http_client, tmdb=tmdb)
        self._site_cache = site_cache

    async def get_streams(
        self,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[dict[str, Any]]:
        info = await self._title_info(internal_id, media_kind)
        if info is None:
            return []

        hits = await self._search(info.title)
        match = next((h for h in hits if matches(info, h)), None)
        if match is None:
            self._log.info("soapertv_no_match", title=info.title, results=len(hits))
            return []

        content_url = match.url
        suffix = ""
        if media_kind == "series":
            if not season or not episode:
                return []
            episodes = await self._episodes(match.url, season)
            target = next((e for e in episodes if e.number == episode), None)
            if target is None:
                self._log.info(
                    "soapertv_episode_missing", url=match.url, season=season, episode=episode
                )
                return []
            content_url = target.url
            suffix = f" S{season:02d}E{episode:02d}"

        stream_url = await self._resolve_stream(content_url, media_kind)
        if stream_url is None:
            return []
        return [
            {
                "name": "SoaperTV",
                "title": f"{info.title}{suffix} - SoaperTV",
                "url": stream_url,
                "quality": "Auto",
            }
        ]

    async def _search(self, title: str) -> list[SearchHit]:
        async def _fetch() -> list[SearchHit]:
            resp = await self._safe_fetch(
                f"{BASE_URL}/search.html", params={"keyword": title}, context="search"
            )
            if resp is None:
                raise FetchFailure(f"search failed for {title!r}")
            return parse_search_results(resp.text)

        try:
            return await self._site_cache.get_or_refresh(
                f"search:{title.lower()}", _fetch
            )
        except FetchFailure:
            return []

    async def _episodes(self, show_url: str, season: int) -> list[EpisodeLink]:
        async def _fetch() -> list[EpisodeLink]:
            resp = await self._safe_fetch(
                urljoin(BASE_URL, show_url), context="show page"
            )
            if resp is None:
                raise FetchFailure(f"show page failed for {show_url}")
            episodes = parse_episode_index(resp.text, season)
            # An empty index is not cached.
            if not episodes:
                raise FetchFailure(f"no season {season} episodes on {show_url}")
            return episodes

        try:
            return await self._site_cache.get_or_refresh(
                f"episodes:{show_url}-s{season}".lower(), _fetch
            )
        except FetchFailure:
            return []

    async def _resolve_stream(self, content_url: str, media_kind: MediaKind) -> str | None:
        page_url = urljoin(BASE_URL, content_url)
        resp = await self._safe_fetch(page_url, context="content page")
        if resp is None:
            return None
        pass_el = BeautifulSoup(resp.text, "lxml").select_one("#hId")
        pass_value = pass_el.get("value") if pass_el is not None else None
        if not pass_value:
            self._log.warning("soapertv_pass_missing", url=page_url)
            return None

        endpoint = (
            "/home/index/getEInfoAjax" if media_kind == "series" else "/home/index/getMInfoAjax"
        )
        info_resp = await self._safe_fetch(
            f"{BASE_URL}{endpoint}",
            method="POST",
            data={"pass": str(pass_value), "e2": "0", "server": "0"},
            headers={
                "Referer": page_url,
                "User-Agent": _AJAX_USER_AGENT,
                "X-Requested-With": "XMLHttpRequest",
            },
            context="stream info",
        )
        if info_resp is None:
            return None
        data = self._safe_parse_json(info_resp, context="stream info")
        stream_path = data.get("val") if isinstance(data, dict) else None
        if not isinstance(stream_path, str) or not stream_path:
            self._log.warning("soapertv_no_stream", url=page_url)
            return None
        return urljoin(BASE_URL + "/", stream_path)
