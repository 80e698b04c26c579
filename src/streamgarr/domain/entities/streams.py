"""Domain entities for provider aggregation.

Pure value objects, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Literal, TypeVar

MediaKind = Literal["movie", "series"]
ProviderSource = Literal["static", "remote"]

MEDIA_KINDS: tuple[MediaKind, ...] = ("movie", "series")

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderInfo:
    """Catalog record for one provider.

    A provider is either compiled into the process (``source="static"``)
    or loaded from the remote registry (``source="remote"``), in which case
    ``location`` names the source file to fetch.
    A remote record whose id matches a static provider is kept for display
    with ``shadowed=True``; only the static one is ever executed.
    """

    id: str
    name: str
    description: str = ""
    supported_kinds: tuple[MediaKind, ...] = MEDIA_KINDS
    enabled: bool = True
    source: ProviderSource = "static"
    location: str | None = None
    version: str | None = None
    author: str | None = None
    logo: str | None = None
    content_language: tuple[str, ...] = ()
    formats: tuple[str, ...] = ()
    limited: bool = False
    shadowed: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("provider id must not be empty")
        if self.source == "remote" and not self.location:
            raise ValueError(f"remote provider {self.id!r} needs a location")
        if self.source == "static" and self.location:
            raise ValueError(f"static provider {self.id!r} must not have a location")

    def supports(self, kind: MediaKind) -> bool:
        return kind in self.supported_kinds


@dataclass(frozen=True)
class Stream:
    """One normalized playable-URL candidate returned by a provider."""

    name: str
    title: str
    url: str
    quality: str
    provider: str
    size: str | None = None
    headers: dict[str, str] | None = None


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value plus the wall-clock time (epoch seconds) it was fetched."""

    value: T
    fetched_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.fetched_at < ttl


@dataclass(frozen=True)
class TitleInfo:
    """Title metadata for an internal (TMDB) id."""

    title: str
    original_title: str = ""
    year: int | None = None


@dataclass(frozen=True)
class StreamRequest:
    """Parsed stream request.

    Created from a Stremio path id: ``tt1234567`` (movie) or
    ``tt1234567:1:5`` (series, season 1, episode 5).
    """

    external_id: str
    media_kind: MediaKind
    season: int | None = None
    episode: int | None = None


@dataclass(frozen=True)
class StremioStream:
    """Stremio protocol Stream object (JSON-serializable)."""

    name: str
    url: str
    title: str = ""
    behavior_hints: dict[str, object] = field(default_factory=dict)
