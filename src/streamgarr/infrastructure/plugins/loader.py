"""Plugin loader: catalog record -> executable provider."""

from __future__ import annotations

import hashlib
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from urllib.parse import urljoin

import httpx
import structlog

from streamgarr.domain.entities import ProviderInfo
from streamgarr.domain.ports.provider import NativeProviderPort, StreamProviderPort
from streamgarr.domain.providers import FetchFailure, ProviderNotFound
from streamgarr.infrastructure.cache.ttl_cache import TtlCache
from streamgarr.infrastructure.sandbox.runtime import SandboxedProvider, SandboxRuntime

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _LoadedHandle:
    handle: SandboxedProvider
    digest: str
    created_at: float


class PluginLoader:
    """Resolves providers to executable handles.

    Native providers are a table lookup. Remote providers have their source
    fetched through the code cache (stale-if-error) and compiled by the
    sandbox; compiled handles are reused until the code TTL elapses or the
    source text changes.
    """

    def __init__(
        self,
        *,
        native_providers: Mapping[str, NativeProviderPort],
        sandbox: SandboxRuntime,
        http_client: httpx.AsyncClient,
        code_cache: TtlCache[str],
        base_url: str,
        fetch_timeout: float = 15.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._native = dict(native_providers)
        self._sandbox = sandbox
        self._client = http_client
        self._code_cache = code_cache
        self._base_url = base_url.rstrip("/") + "/"
        self._fetch_timeout = fetch_timeout
        self._clock = clock
        self._handles: dict[str, _LoadedHandle] = {}

    def source_url(self, provider: ProviderInfo) -> str:
        return urljoin(self._base_url, provider.location or "")

    async def resolve(self, provider: ProviderInfo) -> StreamProviderPort:
        if provider.source == "static":
            try:
                return self._native[provider.id]
            except KeyError:
                raise ProviderNotFound(
                    f"no native implementation for {provider.id!r}"
                ) from None
        return await self._resolve_remote(provider)

    async def _resolve_remote(self, provider: ProviderInfo) -> SandboxedProvider:
        url = self.source_url(provider)

        async def _fetch_source() -> str:
            return await self._fetch_source(provider.id, url)

        source = await self._code_cache.get_or_refresh(provider.id, _fetch_source)
        digest = hashlib.sha256(source.encode("utf-8")).hexdigest()
        now = self._clock()

        cached = self._handles.get(provider.id)
        if (
            cached is not None
            and cached.digest == digest
            and now - cached.created_at < self._code_cache.ttl_seconds
        ):
            return cached.handle

        handle = await self._sandbox.load(source, provider.id)
        self._handles[provider.id] = _LoadedHandle(
            handle=handle, digest=digest, created_at=now
        )
        return handle

    async def _fetch_source(self, provider_id: str, url: str) -> str:
        log.info("plugin_source_fetch", provider=provider_id, url=url)
        try:
            resp = await self._client.get(url, timeout=self._fetch_timeout)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchFailure(
                f"{provider_id}: source returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailure(f"{provider_id}: source request failed: {e}") from e
        return resp.text
