"""Stremio addon API endpoints (manifest, stream) and addon info routes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from streamgarr.domain.entities import (
    MEDIA_KINDS,
    MediaKind,
    ProviderInfo,
    StreamRequest,
    StremioStream,
)
from streamgarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["stremio"])

_ADDON_ID = "com.nuvio.stremio"
_ADDON_VERSION = "1.0.0"

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _json(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=_CORS_HEADERS)


def _base_url(request: Request) -> str:
    """Public base URL, honouring reverse-proxy ``X-Forwarded-*`` headers."""
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme or "http"
    host = (
        request.headers.get("x-forwarded-host")
        or request.headers.get("host")
        or "localhost:7979"
    )
    return f"{proto}://{host}"


def build_manifest(base_url: str) -> dict[str, Any]:
    """Build the Stremio addon manifest."""
    return {
        "id": _ADDON_ID,
        "version": _ADDON_VERSION,
        "name": "Nuvio",
        "description": "Stream movies and TV shows from multiple providers",
        "logo": f"{base_url}/logo.png",
        "resources": ["stream"],
        "types": ["movie", "series"],
        "catalogs": [],
        "idPrefixes": ["tt"],
        "behaviorHints": {
            "configurable": False,
            "configurationRequired": False,
        },
    }


def parse_stream_id(content_type: str, raw_id: str) -> StreamRequest | None:
    """Parse a Stremio stream ID into a StreamRequest.

    Movies: "tt1234567" or "tmdb:12345"
    Series: "tt1234567:1:5" or "tmdb:12345:1:5" (season 1, episode 5)
    """
    if content_type not in MEDIA_KINDS:
        return None
    kind = cast(MediaKind, content_type)

    parts = raw_id.split(":")
    if raw_id.startswith("tmdb:"):
        if len(parts) < 2 or not parts[1].isdigit():
            return None
        external_id = f"tmdb:{parts[1]}"
        episode_parts = parts[2:]
    elif raw_id.startswith("tt"):
        external_id = parts[0]
        episode_parts = parts[1:]
    else:
        return None

    if kind == "series" and len(episode_parts) == 2:
        try:
            season = int(episode_parts[0])
            episode = int(episode_parts[1])
        except ValueError:
            return None
        return StreamRequest(
            external_id=external_id,
            media_kind=kind,
            season=season,
            episode=episode,
        )
    return StreamRequest(external_id=external_id, media_kind=kind)


def _format_stremio_stream(stream: StremioStream) -> dict[str, Any]:
    """Convert a StremioStream dataclass to Stremio JSON format."""
    out: dict[str, Any] = {"name": stream.name, "title": stream.title, "url": stream.url}
    if stream.behavior_hints:
        out["behaviorHints"] = stream.behavior_hints
    return out


def _format_provider(provider: ProviderInfo) -> dict[str, Any]:
    """Catalog record in the manifest's wire shape (``tv`` for series)."""
    return {
        "id": provider.id,
        "name": provider.name,
        "description": provider.description,
        "version": provider.version,
        "author": provider.author,
        "supportedTypes": [
            "tv" if kind == "series" else kind for kind in provider.supported_kinds
        ],
        "filename": provider.location or "",
        "enabled": provider.enabled,
        "limited": provider.limited,
        "logo": provider.logo,
        "contentLanguage": list(provider.content_language),
        "formats": list(provider.formats),
        "source": provider.source,
        "shadowed": provider.shadowed,
    }


async def _enabled_providers(state: AppState) -> list[dict[str, Any]]:
    providers = await state.registry.list_all()
    return [_format_provider(p) for p in providers if p.enabled]


@router.options("/{path:path}")
async def cors_preflight(path: str) -> Response:
    return Response(status_code=200, headers=_CORS_HEADERS)


@router.get("/manifest.json")
async def stremio_manifest(request: Request) -> JSONResponse:
    """Serve the Stremio addon manifest."""
    return _json(build_manifest(_base_url(request)))


@router.get("/stream/{content_type}/{stream_id}.json")
async def stremio_stream(
    request: Request,
    content_type: str,
    stream_id: str,
) -> JSONResponse:
    """Resolve streams for a movie or episode.

    Unknown content types, unparseable ids and internal failures all
    answer ``{"streams": []}``.
    """
    state = cast(AppState, request.app.state)

    parsed = parse_stream_id(content_type, stream_id)
    if parsed is None:
        log.info("stremio_stream_id_rejected", content_type=content_type, id=stream_id)
        return _json({"streams": []})

    log.info(
        "stremio_stream_request",
        external_id=parsed.external_id,
        media_kind=parsed.media_kind,
        season=parsed.season,
        episode=parsed.episode,
    )

    try:
        streams = await state.stremio_stream_uc.execute(parsed)
    except Exception:
        log.error(
            "stremio_stream_failed",
            external_id=parsed.external_id,
            exc_info=True,
        )
        return _json({"streams": []})

    log.info(
        "stremio_stream_response",
        external_id=parsed.external_id,
        streams_returned=len(streams),
    )
    return _json({"streams": [_format_stremio_stream(s) for s in streams]})


@router.get("/api/providers")
async def list_providers(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    try:
        providers = await _enabled_providers(state)
    except Exception:
        log.error("providers_list_failed", exc_info=True)
        return _json({"error": "Failed to get providers"}, status_code=500)
    return _json(providers)


@router.get("/api/addon-info")
async def addon_info(request: Request) -> JSONResponse:
    """Manifest, enabled providers and the ``stremio://`` install link."""
    state = cast(AppState, request.app.state)
    base_url = _base_url(request)
    try:
        providers = await _enabled_providers(state)
    except Exception:
        log.error("addon_info_failed", exc_info=True)
        return _json({"error": "Failed to get addon info"}, status_code=500)

    host_path = base_url.split("://", 1)[-1]
    return _json(
        {
            "manifest": build_manifest(base_url),
            "providers": providers,
            "installUrl": f"stremio://{host_path}/manifest.json",
        }
    )


@router.get("/api/health")
async def health() -> JSONResponse:
    return _json(
        {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )
