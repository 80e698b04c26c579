"""Stremio stream resolution use case.

External id -> internal (TMDB) id -> aggregate -> StremioStream list.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog

from streamgarr.domain.entities import MediaKind, Stream, StreamRequest, StremioStream
from streamgarr.domain.ports.tmdb import IdentifierResolverPort

log = structlog.get_logger(__name__)


class _Aggregator(Protocol):
    async def execute(
        self,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[Stream]: ...


def _build_behavior_hints(stream: Stream) -> dict[str, Any]:
    """Build Stremio ``behaviorHints`` for a stream that needs request headers.

    ``notWebReady: true`` makes Stremio play the stream through its local
    streaming server, which applies ``proxyHeaders`` to every request.
    """
    if not stream.headers:
        return {}
    return {
        "notWebReady": True,
        "proxyHeaders": {"request": dict(stream.headers)},
    }


def to_stremio_stream(stream: Stream) -> StremioStream:
    title = f"{stream.title}\n{stream.size}" if stream.size else stream.title
    return StremioStream(
        name=f"{stream.name}\n{stream.quality}",
        title=title,
        url=stream.url,
        behavior_hints=_build_behavior_hints(stream),
    )


class StremioStreamUseCase:
    """Resolve Stremio stream requests into sorted stream entries.

    Flow:
        1. Map the external id to an internal (TMDB) id.
        2. Aggregate streams from every eligible provider.
        3. Render each stream in the Stremio wire shape.

    An unresolvable id yields ``[]`` without calling any provider.
    """

    def __init__(
        self,
        *,
        resolver: IdentifierResolverPort,
        aggregator: _Aggregator,
    ) -> None:
        self._resolver = resolver
        self._aggregator = aggregator

    async def execute(self, request: StreamRequest) -> list[StremioStream]:
        internal_id = await self._resolver.resolve(
            request.external_id, request.media_kind
        )
        if internal_id is None:
            log.info(
                "stremio_id_unresolved",
                external_id=request.external_id,
                media_kind=request.media_kind,
            )
            return []

        streams = await self._aggregator.execute(
            internal_id,
            request.media_kind,
            season=request.season,
            episode=request.episode,
        )
        log.info(
            "stremio_streams_ready",
            external_id=request.external_id,
            internal_id=internal_id,
            count=len(streams),
        )
        return [to_stremio_stream(s) for s in streams]
