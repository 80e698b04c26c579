"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from streamgarr.application.use_cases import (
    AggregateStreamsUseCase,
    StremioStreamUseCase,
)
from streamgarr.domain.entities import ProviderInfo, TitleInfo
from streamgarr.domain.ports import CachePort
from streamgarr.infrastructure.cache import TtlCache, create_cache
from streamgarr.infrastructure.config.schema import AppConfig
from streamgarr.infrastructure.plugins import (
    PluginLoader,
    ProviderRegistry,
    RemoteManifestSource,
)
from streamgarr.infrastructure.providers import build_native_providers
from streamgarr.infrastructure.sandbox import SandboxRuntime
from streamgarr.infrastructure.stremio.stream_converter import normalize_streams
from streamgarr.infrastructure.stremio.stream_sorter import StreamSorter
from streamgarr.infrastructure.tmdb import HttpxTmdbClient, TmdbIdentifierResolver
from streamgarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


class _Caches:
    """The per-concern TTL caches sharing one storage backend."""

    def __init__(self, backend: CachePort, config: AppConfig) -> None:
        p = config.providers
        self.manifest: TtlCache[list[ProviderInfo]] = TtlCache(
            backend, namespace="manifest", ttl_seconds=p.manifest_ttl_seconds
        )
        self.code: TtlCache[str] = TtlCache(
            backend, namespace="plugin_code", ttl_seconds=p.code_ttl_seconds
        )
        self.identifier: TtlCache[str] = TtlCache(
            backend, namespace="identifier", ttl_seconds=p.identifier_ttl_seconds
        )
        self.title: TtlCache[TitleInfo] = TtlCache(
            backend, namespace="tmdb_title", ttl_seconds=p.identifier_ttl_seconds
        )
        self.site: TtlCache[Any] = TtlCache(
            backend, namespace="site", ttl_seconds=p.site_cache_ttl_seconds
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Cache backend (required by every TTL cache)
        2. HTTP client (shared by providers, sandbox, TMDB, manifest)
        3. Sandbox runtime (worker pool)
        4. TMDB client + identifier resolver
        5. Native providers, manifest source, registry, loader
        6. Aggregator + Stremio use case
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Cache backend (must be first - other components depend on it)
    cache = create_cache(
        backend=config.cache.backend,
        directory=str(config.cache.directory),
        redis_url=config.cache.redis_url,
        retention_seconds=config.cache.stale_retention_seconds,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    state.cache = cache
    log.info("cache_initialized", backend=config.cache.backend)

    if config.environment == "dev":
        await cache.clear()
        log.debug("cache_cleared", environment="dev")

    caches = _Caches(cache, config)

    # 2) HTTP client
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=config.http_follow_redirects,
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 3) Sandbox runtime
    state.sandbox = SandboxRuntime(
        http_client=state.http_client,
        timeout_seconds=config.sandbox.timeout_seconds,
        fetch_timeout_seconds=config.sandbox.fetch_timeout_seconds,
        max_workers=config.sandbox.max_workers,
        max_response_bytes=config.sandbox.max_response_bytes,
    )
    log.info("sandbox_initialized", max_workers=config.sandbox.max_workers)

    # 4) TMDB client (optional) + identifier resolver
    if config.tmdb_api_key:
        state.tmdb_client = HttpxTmdbClient(
            api_key=config.tmdb_api_key,
            http_client=state.http_client,
            title_cache=caches.title,
        )
        log.info("tmdb_client_initialized")
    else:
        state.tmdb_client = None
        log.warning("tmdb_client_disabled", reason="no API key configured")

    state.resolver = TmdbIdentifierResolver(
        tmdb=state.tmdb_client, cache=caches.identifier
    )

    # 5) Providers: native list + remote manifest, merged by the registry
    natives = build_native_providers(
        http_client=state.http_client,
        tmdb=state.tmdb_client,
        site_cache=caches.site,
    )
    manifest = RemoteManifestSource(
        http_client=state.http_client,
        cache=caches.manifest,
        base_url=config.providers.manifest_base_url,
        fetch_timeout=config.providers.manifest_fetch_timeout_seconds,
    )
    state.registry = ProviderRegistry(
        static_providers=[p.info for p in natives],
        manifest=manifest,
        disabled=config.providers.disabled,
    )
    state.loader = PluginLoader(
        native_providers={p.info.id: p for p in natives},
        sandbox=state.sandbox,
        http_client=state.http_client,
        code_cache=caches.code,
        base_url=config.providers.manifest_base_url,
        fetch_timeout=config.providers.code_fetch_timeout_seconds,
    )
    log.info(
        "providers_initialized",
        native=[p.info.id for p in natives],
        manifest_url=manifest.manifest_url,
        disabled=config.providers.disabled,
    )

    # 6) Use cases
    state.aggregator = AggregateStreamsUseCase(
        registry=state.registry,
        loader=state.loader,
        sorter=StreamSorter(),
        convert_fn=normalize_streams,
        provider_timeout=config.providers.provider_timeout_seconds,
        max_concurrent_providers=config.providers.max_concurrent_providers,
    )
    state.stremio_stream_uc = StremioStreamUseCase(
        resolver=state.resolver,
        aggregator=state.aggregator,
    )

    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.sandbox.aclose()
        log.info("sandbox_closed")

        await state.http_client.aclose()
        log.info("http_client_closed")

        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
