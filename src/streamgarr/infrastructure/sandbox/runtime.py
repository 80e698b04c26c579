"""Restricted execution of remotely sourced provider plugins.

Plugin source is plain (synchronous) Python that defines::

    def get_streams(internal_id, media_kind, season=None, episode=None):
        resp = http.get("https://example.org/api/" + internal_id)
        return [{"name": "Example", "url": resp.json()["url"], "quality": "1080p"}]

It is compiled with RestrictedPython and executed on a dedicated worker
pool. The capability facades (``http``, ``html``, ``crypto``, ``json``,
``re``, ``url``, ``timers``, ``log``) are available as globals and can also
be imported by name; every other import fails.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import httpx
import structlog
from RestrictedPython import compile_restricted
from RestrictedPython.PrintCollector import PrintCollector

from streamgarr.domain.entities import MediaKind
from streamgarr.domain.providers import (
    InvalidPlugin,
    MalformedResult,
    PluginRuntimeError,
    ProviderTimeout,
)
from streamgarr.infrastructure.sandbox.capabilities import (
    build_capabilities,
    emit_plugin_log,
)
from streamgarr.infrastructure.sandbox.guards import (
    CancelScope,
    CheckpointingTransformer,
    SandboxCancelled,
    build_builtins,
    guard_globals,
    run_in_scope,
)

log = structlog.get_logger(__name__)

ENTRYPOINT = "get_streams"


def _print_collector_for(provider_id: str) -> type[PrintCollector]:
    """``print()`` inside a plugin becomes an info-level sandbox log line."""

    class _LoggingPrintCollector(PrintCollector):
        def _call_print(self, *objects: Any, **kwargs: Any) -> None:
            emit_plugin_log(provider_id, "info", objects)

    return _LoggingPrintCollector


class SandboxedProvider:
    """Executable handle bound to one plugin's isolated globals."""

    def __init__(
        self,
        *,
        provider_id: str,
        entrypoint: Callable[..., Any],
        runtime: SandboxRuntime,
    ) -> None:
        self.provider_id = provider_id
        self._entrypoint = entrypoint
        self._runtime = runtime

    async def get_streams(
        self,
        internal_id: str,
        media_kind: MediaKind,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[Any]:
        try:
            result = await self._runtime.run_bounded(
                self._entrypoint,
                internal_id,
                media_kind,
                season,
                episode,
                provider_id=self.provider_id,
            )
        except ProviderTimeout:
            raise
        except Exception as e:
            log.warning(
                "sandbox_call_failed",
                provider=self.provider_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise PluginRuntimeError(
                f"{self.provider_id}: {type(e).__name__}: {e}"
            ) from e

        if not isinstance(result, list):
            raise MalformedResult(
                f"{self.provider_id}: get_streams returned {type(result).__name__}, expected list"
            )
        return result


class SandboxRuntime:
    """Worker pool plus shared resources for all sandboxed plugins.

    Args:
        http_client: Shared client used for plugin HTTP calls.
        timeout_seconds: Wall-clock bound per load and per call.
        fetch_timeout_seconds: Bound for one plugin HTTP request.
        max_workers: Threads available to plugin code.
        max_response_bytes: Response size cap for plugin HTTP requests.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 30.0,
        fetch_timeout_seconds: float = 15.0,
        max_workers: int = 8,
        max_response_bytes: int = 5_000_000,
    ) -> None:
        self._client = http_client
        self.timeout_seconds = timeout_seconds
        self._fetch_timeout = fetch_timeout_seconds
        self._max_response_bytes = max_response_bytes
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="sandbox"
        )

    async def aclose(self) -> None:
        # Runaway workers are already cancelled; do not wait for them.
        self._executor.shutdown(wait=False, cancel_futures=True)
        log.info("sandbox_runtime_closed")

    async def run_bounded(
        self, fn: Callable[..., Any], *args: Any, provider_id: str
    ) -> Any:
        """Run ``fn(*args)`` on a worker under the wall-clock bound.

        On timeout or outer cancellation the invocation's cancel scope is
        tripped so the worker stops at its next guarded operation.
        """
        loop = asyncio.get_running_loop()
        scope = CancelScope(loop)
        future = asyncio.wrap_future(
            self._executor.submit(run_in_scope, scope, fn, *args)
        )
        try:
            return await asyncio.wait_for(future, timeout=self.timeout_seconds)
        except TimeoutError:
            scope.cancel()
            log.warning(
                "sandbox_timeout",
                provider=provider_id,
                timeout_seconds=self.timeout_seconds,
            )
            raise ProviderTimeout(
                f"{provider_id}: exceeded {self.timeout_seconds}s"
            ) from None
        except asyncio.CancelledError:
            scope.cancel()
            raise
        except SandboxCancelled:
            raise ProviderTimeout(f"{provider_id}: invocation cancelled") from None

    def _importer(self, provider_id: str, capabilities: dict[str, Any]) -> Callable[..., Any]:
        def _import(name: str, globals: Any = None, locals: Any = None, fromlist: Any = (), level: int = 0) -> Any:
            if level == 0 and name in capabilities:
                return capabilities[name]
            log.warning("sandbox_import_denied", provider=provider_id, module=name)
            raise ImportError(f"import of {name!r} is not allowed in provider plugins")

        return _import

    def _build_globals(self, provider_id: str) -> dict[str, Any]:
        capabilities = build_capabilities(
            provider_id=provider_id,
            client=self._client,
            fetch_timeout=self._fetch_timeout,
            max_response_bytes=self._max_response_bytes,
            max_sleep=self.timeout_seconds,
        )
        glb: dict[str, Any] = {
            "__builtins__": build_builtins(self._importer(provider_id, capabilities)),
            "__name__": f"plugin_{provider_id}",
            "_print_": _print_collector_for(provider_id),
        }
        glb.update(guard_globals())
        glb.update(capabilities)
        return glb

    async def load(self, source: str, provider_id: str) -> SandboxedProvider:
        """Compile and execute plugin source, returning a callable handle.

        Raises:
            InvalidPlugin: Restricted compile failed, the module body raised,
                or ``get_streams`` is missing or has the wrong shape.
            ProviderTimeout: The module body exceeded the wall-clock bound.
        """
        try:
            code = compile_restricted(
                source,
                filename=f"<plugin:{provider_id}>",
                mode="exec",
                policy=CheckpointingTransformer,
            )
        except SyntaxError as e:
            log.error("plugin_compile_failed", provider=provider_id, error=str(e))
            raise InvalidPlugin(f"{provider_id}: {e}") from e

        glb = self._build_globals(provider_id)
        try:
            await self.run_bounded(exec, code, glb, provider_id=provider_id)
        except ProviderTimeout:
            raise
        except Exception as e:
            log.error(
                "plugin_exec_failed",
                provider=provider_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise InvalidPlugin(f"{provider_id}: module body raised {e!r}") from e

        entrypoint = glb.get(ENTRYPOINT)
        if not callable(entrypoint):
            raise InvalidPlugin(f"{provider_id}: no callable {ENTRYPOINT}()")
        try:
            inspect.signature(entrypoint).bind("0", "movie", None, None)
        except (TypeError, ValueError) as e:
            raise InvalidPlugin(
                f"{provider_id}: {ENTRYPOINT}() must accept "
                "(internal_id, media_kind, season, episode)"
            ) from e

        log.info("plugin_loaded", provider=provider_id)
        return SandboxedProvider(
            provider_id=provider_id, entrypoint=entrypoint, runtime=self
        )
