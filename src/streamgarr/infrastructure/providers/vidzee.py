"""VidZee native provider (JSON API, several mirror servers)."""

from __future__ import annotations

import asyncio
from typing import Any

from streamgarr.domain.entities import MediaKind, ProviderInfo

from .base import HttpxProviderBase

_API_URL = "https://player.vidzee.wtf/api/server"
_REFERER = "https://core.vidzee.wtf/"
_SERVERS = (3, 4, 5)


class VidZeeProvider(HttpxProviderBase):
    """Queries every VidZee server in parallel and merges their sources."""

    info = ProviderInfo(
        id="vidzee",
        name="VidZee",
        description="VidZee streaming with multiple servers",
        logo="https://vidzee.wtf/favicon.ico",
    )
    _timeout = 7.0

    async def get_streams(
        self,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[dict[str, Any]]:
        if media_kind == "series" and (not season or not episode):
            self._log.warning("vidzee_missing_episode", internal_id=internal_id)
            return []

        per_server = await asyncio.gather(
            *(
                self._fetch_server(sr, internal_id, media_kind, season, episode)
                for sr in _SERVERS
            )
        )
        streams = [s for server_streams in per_server for s in server_streams]
        self._log.info("vidzee_streams_found", count=len(streams))
        return streams

    async def _fetch_server(
        self,
        sr: int,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None,
        episode: int | None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"id": internal_id, "sr": sr}
        if media_kind == "series":
            params.update(ss=season, ep=episode)

        resp = await self._safe_fetch(
            _API_URL,
            params=params,
            headers={"Referer": _REFERER},
            context=f"server {sr}",
        )
        if resp is None:
            return []
        data = self._safe_parse_json(resp, context=f"server {sr}")
        if not isinstance(data, dict):
            return []

        if isinstance(data.get("url"), list):
            sources = data["url"]
        elif isinstance(data.get("link"), str):
            sources = [data]
        else:
            return []

        return [
            s for s in (_source_to_stream(item, sr) for item in sources) if s is not None
        ]


def _source_to_stream(item: Any, sr: int) -> dict[str, Any] | None:
    if not isinstance(item, dict) or not item.get("link"):
        return None
    label = str(item.get("name") or item.get("type") or "VidZee")
    quality = f"{label}p" if label.isdigit() else label
    language = item.get("language") or item.get("lang")
    title = f"VidZee S{sr} - {quality}"
    if language:
        title += f" [{language}]"
    return {
        "name": f"VidZee S{sr}",
        "title": title,
        "url": item["link"],
        "quality": quality,
    }
