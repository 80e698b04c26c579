"""MP4Hydra native provider (slug-based playlist API)."""

from __future__ import annotations

import json
import re
from typing import Any

from streamgarr.domain.entities import MediaKind, ProviderInfo

from .base import HttpxProviderBase

_BASE_URL = "https://mp4hydra.org"
_INFO_URL = f"{_BASE_URL}/info2?v=8"
# (server key in the API response, label shown to users)
_SERVERS = (("Beta", "#1"), ("Beta#3", "#2"))


def make_slug(title: str) -> str:
    """Slugify a title: "The Dark Knight!" -> "the-dark-knight"."""
    slug = re.sub(r"[^\w\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)


class Mp4HydraProvider(HttpxProviderBase):
    info = ProviderInfo(
        id="mp4hydra",
        name="MP4Hydra",
        description="MP4Hydra streaming with auto quality selection",
        logo="https://mp4hydra.org/favicon.ico",
    )
    _timeout = 15.0
    _user_agent = "Mozilla/5.0 (Linux; Android 6.0; Nexus 5 Build/MRA58N) AppleWebKit/537.36"

    async def get_streams(
        self,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[dict[str, Any]]:
        details = await self._title_info(internal_id, media_kind)
        if details is None:
            return []

        slug = make_slug(details.title)
        if media_kind == "movie" and details.year:
            slug = f"{slug}-{details.year}"
        site_kind = "tv" if media_kind == "series" else "movie"

        payload = [{"s": slug, "t": site_kind, "se": season, "ep": episode}]
        resp = await self._safe_fetch(
            _INFO_URL,
            method="POST",
            data={"v": "8", "z": json.dumps(payload)},
            headers={
                "Accept": "*/*",
                "Origin": _BASE_URL,
                "Referer": f"{_BASE_URL}/{site_kind}/{slug}",
            },
            context=slug,
        )
        if resp is None:
            return []
        data = self._safe_parse_json(resp, context=slug)
        if not isinstance(data, dict):
            return []
        playlist = data.get("playlist") or []
        servers = data.get("servers") or {}
        if not playlist or not isinstance(servers, dict):
            self._log.info("mp4hydra_no_playlist", slug=slug)
            return []

        if media_kind == "series":
            if not season or not episode:
                return []
            code = f"S{season:02d}E{episode:02d}"
            items = [
                item
                for item in playlist
                if isinstance(item, dict) and str(item.get("title", "")).upper() == code
            ][:1]
            if not items:
                self._log.info("mp4hydra_episode_missing", slug=slug, episode=code)
                return []
            label = f"{details.title} - {code}"
        else:
            items = [item for item in playlist if isinstance(item, dict)]
            label = details.title

        streams: list[dict[str, Any]] = []
        for server_key, server_label in _SERVERS:
            base = servers.get(server_key)
            if not base:
                continue
            for item in items:
                if not item.get("src"):
                    continue
                quality = str(item.get("quality") or item.get("label") or "Unknown")
                streams.append(
                    {
                        "name": "MP4Hydra",
                        "title": f"{label} - {quality} [MP4Hydra {server_label}]",
                        "url": f"{base}{item['src']}",
                        "quality": quality,
                    }
                )
        self._log.info("mp4hydra_streams_found", slug=slug, count=len(streams))
        return streams
