"""Port for TMDB API operations."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from streamgarr.domain.entities import MediaKind, TitleInfo


@runtime_checkable
class TmdbClientPort(Protocol):
    """Async interface for TMDB lookups."""

    async def find_tmdb_id(self, imdb_id: str, media_kind: MediaKind) -> str:
        """Map an IMDb ID to a TMDB id.

        Raises ResolutionMiss when TMDB has no entry of that kind,
        FetchFailure when TMDB cannot be reached.
        """
        ...

    async def get_title_info(
        self, tmdb_id: str, media_kind: MediaKind
    ) -> TitleInfo | None:
        """Get title and release year for a TMDB id. None if unavailable."""
        ...


class IdentifierResolverPort(Protocol):
    """Maps external content ids to the internal ids providers expect."""

    async def resolve(self, external_id: str, media_kind: MediaKind) -> str | None: ...
