"""Shared fixtures for integration tests.

These tests run the real composition root (lifespan), real caches, the real
sandbox and the real router, with upstream HTTP mocked via respx.
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest
import respx
from fastapi import FastAPI

from streamgarr.infrastructure.config import AppConfig
from streamgarr.interfaces.app import create_app
from streamgarr.interfaces.composition import lifespan

REGISTRY = "https://registry.example.org/providers"
TMDB = "https://api.themoviedb.org/3"
NATIVE_IDS = ["vidzee", "mp4hydra", "soapertv"]


def _config(**providers: Any) -> AppConfig:
    """Test config: native providers off, short timeouts, memory cache."""
    return AppConfig.model_validate(
        {
            "environment": "test",
            "tmdb_api_key": "test-key",
            "cache": {"backend": "memory"},
            "providers": {
                "manifest_base_url": REGISTRY,
                "disabled": NATIVE_IDS,
                "provider_timeout_seconds": 1.0,
                **providers,
            },
            "sandbox": {"timeout_seconds": 5.0, "max_workers": 4},
        }
    )


@pytest.fixture()
def make_config():
    """Factory for test configs; keyword args override the providers section."""
    return _config


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def app_factory():
    """Build an app from a config; the lifespan is not started."""

    def _make(config: AppConfig | None = None) -> FastAPI:
        return create_app(config or _config())

    return _make


@pytest.fixture()
async def running_app(app_factory) -> FastAPI:
    app = app_factory()
    async with lifespan(app):
        yield app


@pytest.fixture()
async def client(running_app: FastAPI) -> httpx.AsyncClient:
    """ASGI client talking to the running app (not intercepted by respx)."""
    transport = httpx.ASGITransport(app=running_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://addon.test") as c:
        yield c
