"""Convert raw provider results into normalized Streams.

Pure transformation logic, no I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlparse

import structlog

from streamgarr.domain.entities import ProviderInfo, Stream

log = structlog.get_logger(__name__)

UNKNOWN_QUALITY = "Unknown"


def is_playable_url(url: Any) -> bool:
    """Non-empty absolute http(s) URL with a host."""
    if not isinstance(url, str) or not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _headers(value: Any) -> dict[str, str] | None:
    if not isinstance(value, Mapping) or not value:
        return None
    return {str(k): str(v) for k, v in value.items()}


def _convert_single_result(raw: Any, provider: ProviderInfo) -> Stream | None:
    """One raw entry (mapping or Stream) -> Stream, None if unusable."""
    if isinstance(raw, Stream):
        raw = {
            "name": raw.name,
            "title": raw.title,
            "url": raw.url,
            "quality": raw.quality,
            "size": raw.size,
            "headers": raw.headers,
        }
    if not isinstance(raw, Mapping):
        return None

    url = raw.get("url")
    if not is_playable_url(url):
        return None

    return Stream(
        name=_text(raw.get("name")) or provider.name,
        title=_text(raw.get("title")) or "",
        url=url,
        quality=_text(raw.get("quality")) or UNKNOWN_QUALITY,
        provider=provider.id,
        size=_text(raw.get("size")),
        headers=_headers(raw.get("headers")),
    )


def normalize_streams(results: Iterable[Any], provider: ProviderInfo) -> list[Stream]:
    """Normalize one provider's results, dropping malformed entries."""
    streams: list[Stream] = []
    dropped = 0
    for raw in results:
        stream = _convert_single_result(raw, provider)
        if stream is None:
            dropped += 1
            continue
        streams.append(stream)
    if dropped:
        log.debug("stream_entries_dropped", provider=provider.id, dropped=dropped)
    return streams
