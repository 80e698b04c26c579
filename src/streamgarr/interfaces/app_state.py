"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from streamgarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from streamgarr.application.use_cases import (
        AggregateStreamsUseCase,
        StremioStreamUseCase,
    )
    from streamgarr.domain.ports import (
        CachePort,
        IdentifierResolverPort,
        PluginLoaderPort,
        ProviderRegistryPort,
        TmdbClientPort,
    )
    from streamgarr.infrastructure.sandbox import SandboxRuntime


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort
    http_client: httpx.AsyncClient
    sandbox: SandboxRuntime

    # Domain Ports
    registry: ProviderRegistryPort
    loader: PluginLoaderPort
    resolver: IdentifierResolverPort

    # TMDB (None without an API key)
    tmdb_client: TmdbClientPort | None

    # Application Services
    aggregator: AggregateStreamsUseCase
    stremio_stream_uc: StremioStreamUseCase
