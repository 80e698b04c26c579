"""Provider registry merging native providers with the remote manifest."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace

import structlog

from streamgarr.domain.entities import MediaKind, ProviderInfo
from streamgarr.infrastructure.plugins.manifest import RemoteManifestSource

log = structlog.get_logger(__name__)


class ProviderRegistry:
    """
    Uniform provider catalog.

    list_all():
      - native entries first, then remote ones; a remote entry whose id
        collides with a native one is kept but marked shadowed
    list_enabled(kind):
      - list_all() filtered by enabled flag, shadowing, media kind and
        config denylist
    """

    def __init__(
        self,
        *,
        static_providers: Sequence[ProviderInfo],
        manifest: RemoteManifestSource | None,
        disabled: Iterable[str] = (),
    ) -> None:
        seen: set[str] = set()
        for info in static_providers:
            if info.id in seen:
                raise ValueError(f"duplicate native provider id: {info.id!r}")
            seen.add(info.id)
        self._static = list(static_providers)
        self._manifest = manifest
        self._disabled = frozenset(disabled)

    async def list_all(self) -> list[ProviderInfo]:
        merged = list(self._static)
        ids = {p.id for p in merged}

        remote = await self._manifest.providers() if self._manifest is not None else []
        for info in remote:
            if info.id in ids:
                log.info("remote_provider_shadowed", provider=info.id)
                info = replace(info, shadowed=True)
            else:
                ids.add(info.id)
            merged.append(info)

        return [p for p in merged if p.id not in self._disabled]

    async def list_enabled(self, media_kind: MediaKind) -> list[ProviderInfo]:
        providers = [
            p
            for p in await self.list_all()
            if p.enabled and not p.shadowed and p.supports(media_kind)
        ]
        log.debug(
            "providers_selected",
            media_kind=media_kind,
            count=len(providers),
            ids=[p.id for p in providers],
        )
        return providers
