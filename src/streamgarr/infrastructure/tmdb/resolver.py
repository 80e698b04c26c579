"""External id -> TMDB id resolution behind a long-TTL cache."""

from __future__ import annotations

import structlog

from streamgarr.domain.entities import MediaKind
from streamgarr.domain.ports.tmdb import TmdbClientPort
from streamgarr.domain.providers import FetchFailure, ResolutionMiss
from streamgarr.infrastructure.cache.ttl_cache import TtlCache

log = structlog.get_logger(__name__)

TMDB_PREFIX = "tmdb:"


class TmdbIdentifierResolver:
    """Implements ``IdentifierResolverPort``.

    - ``tmdb:<n>`` ids are already internal and pass through.
    - IMDb ids go through TMDB ``/find`` (cached per kind + id).
    - No mapping or no TMDB client -> None; misses are not cached.
    """

    def __init__(
        self,
        *,
        tmdb: TmdbClientPort | None,
        cache: TtlCache[str],
    ) -> None:
        self._tmdb = tmdb
        self._cache = cache

    async def resolve(self, external_id: str, media_kind: MediaKind) -> str | None:
        if external_id.startswith(TMDB_PREFIX):
            internal = external_id[len(TMDB_PREFIX):]
            return internal if internal.isdigit() else None

        if self._tmdb is None:
            log.warning("tmdb_not_configured", external_id=external_id)
            return None

        tmdb = self._tmdb

        async def _lookup() -> str:
            return await tmdb.find_tmdb_id(external_id, media_kind)

        try:
            internal_id = await self._cache.get_or_refresh(
                f"{media_kind}:{external_id}", _lookup
            )
        except ResolutionMiss:
            log.info("identifier_unresolved", external_id=external_id, media_kind=media_kind)
            return None
        except FetchFailure as e:
            log.warning(
                "identifier_lookup_failed",
                external_id=external_id,
                media_kind=media_kind,
                error=str(e),
            )
            return None

        log.debug("identifier_resolved", external_id=external_id, internal_id=internal_id)
        return internal_id
