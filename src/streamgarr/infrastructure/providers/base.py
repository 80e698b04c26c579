"""Shared base class for httpx-based native providers.

Native providers run in-process (no sandbox) and satisfy
``NativeProviderPort``: a static ``info`` record plus ``get_streams``.
They share the application's ``httpx.AsyncClient`` instead of owning one.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from streamgarr.domain.entities import MediaKind, ProviderInfo, TitleInfo
from streamgarr.domain.ports.tmdb import TmdbClientPort

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)
DEFAULT_CLIENT_TIMEOUT = 10.0


class HttpxProviderBase:
    """Shared base for native providers.

    Subclasses **must** set:
    - ``info`` (``ProviderInfo`` with ``source="static"``)

    Subclasses **must** override:
    - ``get_streams()``

    Subclasses **may** override:
    - ``_timeout``, ``_user_agent``
    """

    info: ProviderInfo
    _timeout: float = DEFAULT_CLIENT_TIMEOUT
    _user_agent: str = DEFAULT_USER_AGENT

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        tmdb: TmdbClientPort | None = None,
    ) -> None:
        self._client = http_client
        self._tmdb = tmdb
        self._log = structlog.get_logger(self.info.id)

    @property
    def name(self) -> str:
        return self.info.id

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------

    async def _safe_fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        context: str = "",
        **kwargs: Any,
    ) -> httpx.Response | None:
        """Fetch *url* with structured error logging.

        Returns ``None`` on failure instead of raising.
        """
        kwargs.setdefault("timeout", self._timeout)
        headers = {"User-Agent": self._user_agent, **(kwargs.pop("headers", None) or {})}
        try:
            resp = await self._client.request(method, url, headers=headers, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.TimeoutException:
            self._log.warning(f"{self.name}_timeout", url=url, context=context)
        except httpx.HTTPStatusError as exc:
            self._log.warning(
                f"{self.name}_http_error",
                url=url,
                status=exc.response.status_code,
                context=context,
            )
        except httpx.HTTPError as exc:
            self._log.warning(
                f"{self.name}_fetch_error",
                url=url,
                error=str(exc),
                context=context,
            )
        return None

    def _safe_parse_json(
        self,
        response: httpx.Response,
        context: str = "",
    ) -> dict | list | None:
        """Parse JSON response with structured error logging."""
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            self._log.warning(
                f"{self.name}_invalid_json",
                url=str(response.url),
                context=context,
            )
            return None

    async def _title_info(self, tmdb_id: str, media_kind: MediaKind) -> TitleInfo | None:
        """Title/year for providers that search sites by name."""
        if self._tmdb is None:
            self._log.warning(f"{self.name}_tmdb_not_configured")
            return None
        return await self._tmdb.get_title_info(tmdb_id, media_kind)

    # ------------------------------------------------------------------
    # Provider contract (subclass must implement)
    # ------------------------------------------------------------------

    async def get_streams(
        self,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return raw stream dicts for one title.

        Subclasses **must** override this method.
        """
        raise NotImplementedError(f"{type(self).__name__}.get_streams() not implemented")
