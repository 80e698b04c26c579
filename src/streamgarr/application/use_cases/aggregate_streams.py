"""Stream aggregation use case.

Enabled providers -> resolve handle -> parallel get_streams (per-provider
timeout) -> normalize -> sort by quality.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from typing import Any, Protocol

import structlog

from streamgarr.domain.entities import MediaKind, ProviderInfo, Stream
from streamgarr.domain.ports.provider import PluginLoaderPort, ProviderRegistryPort
from streamgarr.domain.providers.exceptions import MalformedResult, ProviderTimeout

log = structlog.get_logger(__name__)


class _StreamSorter(Protocol):
    """Orders normalized streams best-first."""

    def sort(self, streams: list[Stream]) -> list[Stream]: ...


_ConvertFn = Callable[[Iterable[Any], ProviderInfo], list[Stream]]


class AggregateStreamsUseCase:
    """Fans one title lookup out to every eligible provider.

    A provider that times out, raises, or returns something other than a
    list contributes nothing; its siblings are unaffected.  Cancelling
    ``execute`` cancels every in-flight provider task.
    """

    def __init__(
        self,
        *,
        registry: ProviderRegistryPort,
        loader: PluginLoaderPort,
        sorter: _StreamSorter,
        convert_fn: _ConvertFn,
        provider_timeout: float = 30.0,
        max_concurrent_providers: int = 0,
    ) -> None:
        self._registry = registry
        self._loader = loader
        self._sorter = sorter
        self._convert_fn = convert_fn
        self._provider_timeout = provider_timeout
        self._max_concurrent = max_concurrent_providers

    async def execute(
        self,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[Stream]:
        providers = await self._registry.list_enabled(media_kind)
        if not providers:
            log.info("aggregate_no_providers", media_kind=media_kind)
            return []

        semaphore = (
            asyncio.Semaphore(self._max_concurrent) if self._max_concurrent > 0 else None
        )

        async def _run_one(provider: ProviderInfo) -> list[Stream]:
            if semaphore is None:
                return await self._run_bounded(
                    provider, internal_id, media_kind, season, episode
                )
            async with semaphore:
                return await self._run_bounded(
                    provider, internal_id, media_kind, season, episode
                )

        per_provider = await asyncio.gather(*(_run_one(p) for p in providers))

        streams: list[Stream] = []
        for provider_streams in per_provider:
            streams.extend(provider_streams)
        sorted_streams = self._sorter.sort(streams)

        log.info(
            "aggregate_complete",
            internal_id=internal_id,
            media_kind=media_kind,
            providers=len(providers),
            streams=len(sorted_streams),
        )
        return sorted_streams

    async def _run_bounded(
        self,
        provider: ProviderInfo,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None,
        episode: int | None,
    ) -> list[Stream]:
        try:
            return await asyncio.wait_for(
                self._run_single(provider, internal_id, media_kind, season, episode),
                timeout=self._provider_timeout,
            )
        except TimeoutError:
            log.warning(
                "provider_timeout",
                provider=provider.id,
                timeout=self._provider_timeout,
            )
            return []

    async def _run_single(
        self,
        provider: ProviderInfo,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None,
        episode: int | None,
    ) -> list[Stream]:
        """Resolve and call one provider, catching and logging errors."""
        t0 = time.perf_counter_ns()
        try:
            handle = await self._loader.resolve(provider)
            raw = await handle.get_streams(internal_id, media_kind, season, episode)
            if not isinstance(raw, list):
                raise MalformedResult(
                    f"{provider.id} returned {type(raw).__name__}, expected list"
                )
            streams = self._convert_fn(raw, provider)
        except TimeoutError:
            raise
        except ProviderTimeout:
            log.warning("provider_timeout", provider=provider.id, source="sandbox")
            return []
        except Exception:
            log.warning("provider_failed", provider=provider.id, exc_info=True)
            return []
        except BaseException:
            log.warning("provider_cancelled", provider=provider.id)
            raise

        log.debug(
            "provider_complete",
            provider=provider.id,
            raw=len(raw),
            streams=len(streams),
            duration_ms=(time.perf_counter_ns() - t0) // 1_000_000,
        )
        return streams
