"""Capability facades injected into sandboxed plugins.

Each facade is a plain object whose public methods are the only way plugin
code reaches the host. Nothing here hands out module objects, file handles
or the shared HTTP client itself.
"""

from __future__ import annotations

import asyncio
import base64
import concurrent.futures
import hashlib
import hmac as _hmac
import json as _json
import re as _re
import time
from typing import Any
from urllib.parse import quote, unquote, urlencode, urljoin, urlparse

import httpx
import structlog
from bs4 import BeautifulSoup
from bs4.element import Tag

from streamgarr.infrastructure.sandbox.guards import (
    SandboxCancelled,
    checkpoint,
    current_scope,
)

log = structlog.get_logger(__name__)

MAX_LOG_MESSAGE = 500
_ALLOWED_SCHEMES = ("http", "https")
_HTTP_METHODS = ("GET", "POST", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS")


class FetchError(Exception):
    """Raised inside plugin code when an HTTP request cannot be completed."""


def _sanitize(text: str) -> str:
    """Single-line, printable, length-capped rendition of plugin output."""
    cleaned = "".join(
        ch if ch.isprintable() else repr(ch)[1:-1] for ch in text[: MAX_LOG_MESSAGE * 2]
    )
    if len(cleaned) > MAX_LOG_MESSAGE:
        cleaned = cleaned[:MAX_LOG_MESSAGE] + "..."
    return cleaned


def emit_plugin_log(provider_id: str, level: str, parts: tuple[Any, ...]) -> None:
    message = _sanitize(" ".join(str(p) for p in parts))
    getattr(log, level)("sandbox_log", provider=provider_id, message=message)


class LogCapability:
    def __init__(self, provider_id: str) -> None:
        self._provider_id = provider_id

    def debug(self, *parts: Any) -> None:
        emit_plugin_log(self._provider_id, "debug", parts)

    def info(self, *parts: Any) -> None:
        emit_plugin_log(self._provider_id, "info", parts)

    def warning(self, *parts: Any) -> None:
        emit_plugin_log(self._provider_id, "warning", parts)

    def error(self, *parts: Any) -> None:
        emit_plugin_log(self._provider_id, "error", parts)


class HttpResponse:
    """Read-only response handed to plugin code."""

    def __init__(
        self, *, status: int, url: str, headers: dict[str, str], content: bytes, encoding: str
    ) -> None:
        self.status = status
        self.ok = 200 <= status < 300
        self.url = url
        self.headers = headers
        self._content = content
        self._encoding = encoding

    @property
    def text(self) -> str:
        return self._content.decode(self._encoding, errors="replace")

    def json(self) -> Any:
        try:
            return _json.loads(self.text)
        except ValueError as e:
            raise FetchError(f"response from {self.url} is not JSON: {e}") from None


class HttpCapability:
    """HTTP fetch through the host's shared ``httpx.AsyncClient``.

    Requests are scheduled on the host event loop; the calling worker
    thread blocks until the response arrives or the invocation is cancelled.
    """

    Error = FetchError

    def __init__(
        self,
        *,
        provider_id: str,
        client: httpx.AsyncClient,
        fetch_timeout: float,
        max_response_bytes: int,
    ) -> None:
        self._provider_id = provider_id
        self._client = client
        self._fetch_timeout = fetch_timeout
        self._max_bytes = max_response_bytes

    def get(self, url: str, headers: dict[str, str] | None = None, params: Any = None) -> HttpResponse:
        return self.request("GET", url, headers=headers, params=params)

    def post(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        data: Any = None,
        json: Any = None,
        params: Any = None,
    ) -> HttpResponse:
        return self.request("POST", url, headers=headers, data=data, json=json, params=params)

    def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        data: Any = None,
        json: Any = None,
        params: Any = None,
    ) -> HttpResponse:
        method = str(method).upper()
        if method not in _HTTP_METHODS:
            raise FetchError(f"HTTP method not allowed: {method}")
        url = str(url)
        if urlparse(url).scheme not in _ALLOWED_SCHEMES:
            raise FetchError(f"only http(s) URLs may be fetched: {url!r}")

        scope = current_scope()
        scope.check()
        coro = self._send(
            method,
            url,
            headers=dict(headers) if headers else None,
            data=data,
            json=json,
            params=params,
        )
        future = asyncio.run_coroutine_threadsafe(coro, scope.loop)
        scope.track(future)
        try:
            return future.result(timeout=self._fetch_timeout + 1.0)
        except concurrent.futures.CancelledError:
            raise SandboxCancelled() from None
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise FetchError(f"request to {url} timed out") from None
        finally:
            scope.untrack(future)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None,
        data: Any,
        json: Any,
        params: Any,
    ) -> HttpResponse:
        try:
            async with self._client.stream(
                method,
                url,
                headers=headers,
                data=data,
                json=json,
                params=params,
                timeout=self._fetch_timeout,
            ) as resp:
                chunks: list[bytes] = []
                size = 0
                async for chunk in resp.aiter_bytes():
                    size += len(chunk)
                    if size > self._max_bytes:
                        raise FetchError(
                            f"response from {url} exceeds {self._max_bytes} bytes"
                        )
                    chunks.append(chunk)
                log.debug(
                    "sandbox_http",
                    provider=self._provider_id,
                    method=method,
                    url=url,
                    status=resp.status_code,
                    size=size,
                )
                return HttpResponse(
                    status=resp.status_code,
                    url=str(resp.url),
                    headers=dict(resp.headers),
                    content=b"".join(chunks),
                    encoding=resp.encoding or "utf-8",
                )
        except httpx.HTTPError as e:
            log.debug(
                "sandbox_http_failed",
                provider=self._provider_id,
                url=url,
                error=str(e),
            )
            raise FetchError(f"{type(e).__name__}: {e}") from None


class HtmlNode:
    """Selector-based view over a parsed HTML element."""

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag.name or ""

    @property
    def text(self) -> str:
        checkpoint()
        return self._tag.get_text(" ", strip=True)

    @property
    def html(self) -> str:
        checkpoint()
        return str(self._tag)

    def attr(self, name: str, default: str | None = None) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return default
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def select(self, selector: str) -> list[HtmlNode]:
        checkpoint()
        return [HtmlNode(t) for t in self._tag.select(selector)]

    def select_one(self, selector: str) -> HtmlNode | None:
        checkpoint()
        found = self._tag.select_one(selector)
        return HtmlNode(found) if found is not None else None


class HtmlCapability:
    def parse(self, markup: str) -> HtmlNode:
        checkpoint()
        return HtmlNode(BeautifulSoup(str(markup), "lxml"))


def _to_bytes(data: Any) -> bytes:
    if isinstance(data, bytes):
        return data
    return str(data).encode("utf-8")


class CryptoCapability:
    def md5(self, data: Any) -> str:
        return hashlib.md5(_to_bytes(data)).hexdigest()

    def sha1(self, data: Any) -> str:
        return hashlib.sha1(_to_bytes(data)).hexdigest()

    def sha256(self, data: Any) -> str:
        return hashlib.sha256(_to_bytes(data)).hexdigest()

    def sha512(self, data: Any) -> str:
        return hashlib.sha512(_to_bytes(data)).hexdigest()

    def hmac(self, key: Any, message: Any, algorithm: str = "sha256") -> str:
        if algorithm not in ("md5", "sha1", "sha256", "sha512"):
            raise ValueError(f"unsupported HMAC algorithm: {algorithm}")
        return _hmac.new(_to_bytes(key), _to_bytes(message), algorithm).hexdigest()

    def b64encode(self, data: Any) -> str:
        return base64.b64encode(_to_bytes(data)).decode("ascii")

    def b64decode(self, data: Any) -> str:
        text = str(data)
        padded = text + "=" * (-len(text) % 4)
        return base64.b64decode(padded).decode("utf-8", errors="replace")


class JsonCapability:
    def loads(self, text: Any) -> Any:
        checkpoint()
        return _json.loads(text)

    def dumps(self, obj: Any, indent: int | None = None) -> str:
        checkpoint()
        return _json.dumps(obj, indent=indent)


class RegexCapability:
    I = IGNORECASE = _re.IGNORECASE
    M = MULTILINE = _re.MULTILINE
    S = DOTALL = _re.DOTALL

    def search(self, pattern: str, string: str, flags: int = 0) -> Any:
        checkpoint()
        return _re.search(pattern, string, flags)

    def match(self, pattern: str, string: str, flags: int = 0) -> Any:
        checkpoint()
        return _re.match(pattern, string, flags)

    def findall(self, pattern: str, string: str, flags: int = 0) -> list[Any]:
        checkpoint()
        return _re.findall(pattern, string, flags)

    def sub(self, pattern: str, repl: Any, string: str, count: int = 0, flags: int = 0) -> str:
        checkpoint()
        return _re.sub(pattern, repl, string, count=count, flags=flags)

    def split(self, pattern: str, string: str, maxsplit: int = 0, flags: int = 0) -> list[str]:
        checkpoint()
        return _re.split(pattern, string, maxsplit=maxsplit, flags=flags)

    def compile(self, pattern: str, flags: int = 0) -> Any:
        return _re.compile(pattern, flags)

    def escape(self, text: str) -> str:
        return _re.escape(text)


class UrlCapability:
    def quote(self, text: str, safe: str = "/") -> str:
        return quote(text, safe=safe)

    def unquote(self, text: str) -> str:
        return unquote(text)

    def urlencode(self, query: Any) -> str:
        return urlencode(query)

    def urljoin(self, base: str, url: str) -> str:
        return urljoin(base, url)

    def urlparse(self, url: str) -> Any:
        return urlparse(url)


class TimersCapability:
    def __init__(self, max_sleep: float) -> None:
        self._max_sleep = max_sleep

    def sleep(self, seconds: float) -> None:
        current_scope().wait(min(max(float(seconds), 0.0), self._max_sleep))

    def now(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()


def build_capabilities(
    *,
    provider_id: str,
    client: httpx.AsyncClient,
    fetch_timeout: float,
    max_response_bytes: int,
    max_sleep: float,
) -> dict[str, Any]:
    """The complete capability table for one plugin."""
    return {
        "http": HttpCapability(
            provider_id=provider_id,
            client=client,
            fetch_timeout=fetch_timeout,
            max_response_bytes=max_response_bytes,
        ),
        "html": HtmlCapability(),
        "crypto": CryptoCapability(),
        "json": JsonCapability(),
        "re": RegexCapability(),
        "url": UrlCapability(),
        "timers": TimersCapability(max_sleep),
        "log": LogCapability(provider_id),
    }
