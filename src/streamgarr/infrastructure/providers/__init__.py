"""Natively implemented (static) stream providers."""

from __future__ import annotations

from typing import Any

import httpx

from streamgarr.domain.ports.provider import NativeProviderPort
from streamgarr.domain.ports.tmdb import TmdbClientPort
from streamgarr.infrastructure.cache.ttl_cache import TtlCache

from .base import HttpxProviderBase
from .mp4hydra import Mp4HydraProvider
from .soapertv import SoaperTvProvider
from .vidzee import VidZeeProvider


def build_native_providers(
    *,
    http_client: httpx.AsyncClient,
    tmdb: TmdbClientPort | None,
    site_cache: TtlCache[Any],
) -> list[NativeProviderPort]:
    """All native providers, in catalog order."""
    return [
        VidZeeProvider(http_client=http_client, tmdb=tmdb),
        Mp4HydraProvider(http_client=http_client, tmdb=tmdb),
        SoaperTvProvider(http_client=http_client, tmdb=tmdb, site_cache=site_cache),
    ]


__all__ = [
    "HttpxProviderBase",
    "Mp4HydraProvider",
    "SoaperTvProvider",
    "VidZeeProvider",
    "build_native_providers",
]
