"""Ports for the provider execution engine."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from streamgarr.domain.entities import MediaKind, ProviderInfo


@runtime_checkable
class StreamProviderPort(Protocol):
    """The single call contract every provider satisfies.

    Native providers and sandboxed plugin handles both implement it.
    The return value must be a list (possibly empty); anything else is
    treated as a malformed result by the caller.
    """

    async def get_streams(
        self,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[Any]: ...


class NativeProviderPort(StreamProviderPort, Protocol):
    """A statically compiled provider carrying its own catalog record."""

    info: ProviderInfo


class ProviderRegistryPort(Protocol):
    """Merged provider catalog (native + remote manifest)."""

    async def list_enabled(self, media_kind: MediaKind) -> list[ProviderInfo]: ...

    async def list_all(self) -> list[ProviderInfo]: ...


class PluginLoaderPort(Protocol):
    """Turns a catalog record into an executable provider."""

    async def resolve(self, provider: ProviderInfo) -> StreamProviderPort: ...
