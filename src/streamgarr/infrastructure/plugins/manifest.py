"""Remote provider manifest fetched over HTTP and held in a TTL cache."""

from __future__ import annotations

import httpx
import structlog
from pydantic import ValidationError

from streamgarr.domain.entities import ProviderInfo
from streamgarr.domain.providers import FetchFailure
from streamgarr.infrastructure.cache.ttl_cache import TtlCache
from streamgarr.infrastructure.plugins.validation_schema import (
    ManifestScraper,
    RemoteManifest,
)

log = structlog.get_logger(__name__)

_CACHE_KEY = "manifest"


class RemoteManifestSource:
    """Fetches ``<base>/manifest.json`` and turns it into catalog records.

    The parsed catalog (not the raw JSON) is cached, so a manifest that
    fails validation never replaces a good stale one.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: TtlCache[list[ProviderInfo]],
        base_url: str,
        fetch_timeout: float = 10.0,
    ) -> None:
        self._client = http_client
        self._cache = cache
        self.base_url = base_url.rstrip("/")
        self._fetch_timeout = fetch_timeout

    @property
    def manifest_url(self) -> str:
        return f"{self.base_url}/manifest.json"

    async def providers(self) -> list[ProviderInfo]:
        """Current remote catalog. Empty when nothing was ever fetched."""
        try:
            return await self._cache.get_or_refresh(_CACHE_KEY, self._fetch)
        except FetchFailure as e:
            log.warning("manifest_unavailable", url=self.manifest_url, error=str(e))
            return []
        except Exception as e:
            log.error(
                "manifest_cache_failed",
                url=self.manifest_url,
                error_type=type(e).__name__,
                error=str(e),
            )
            return []

    async def _fetch(self) -> list[ProviderInfo]:
        try:
            resp = await self._client.get(self.manifest_url, timeout=self._fetch_timeout)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise FetchFailure(
                f"manifest returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailure(f"manifest request failed: {e}") from e
        except ValueError as e:
            raise FetchFailure(f"manifest is not valid JSON: {e}") from e

        try:
            manifest = RemoteManifest.model_validate(data)
        except ValidationError as e:
            raise FetchFailure(f"manifest has invalid shape: {e}") from e

        providers: list[ProviderInfo] = []
        for raw in manifest.scrapers:
            try:
                providers.append(ManifestScraper.model_validate(raw).to_domain())
            except (ValidationError, ValueError) as e:
                log.warning(
                    "manifest_entry_skipped",
                    entry_id=raw.get("id") if isinstance(raw, dict) else None,
                    error=str(e),
                )

        log.info(
            "manifest_fetched",
            name=manifest.name,
            version=manifest.version,
            providers=len(providers),
        )
        return providers
