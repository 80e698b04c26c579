"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

from .schema import DEFAULT_MANIFEST_BASE_URL

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "streamgarr",
    "environment": "dev",
    "http": {
        "timeout_seconds": 20.0,
        "follow_redirects": True,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "memory",
        "dir": "./.cache/streamgarr",
        "stale_retention_seconds": 604_800,
    },
    "providers": {
        "manifest_base_url": DEFAULT_MANIFEST_BASE_URL,
        "manifest_ttl_seconds": 300,
        "manifest_fetch_timeout_seconds": 10.0,
        "code_ttl_seconds": 600,
        "code_fetch_timeout_seconds": 15.0,
        "identifier_ttl_seconds": 86_400,
        "site_cache_ttl_seconds": 1800,
        "provider_timeout_seconds": 30.0,
        "max_concurrent_providers": 0,
        "disabled": [],
    },
    "sandbox": {
        "timeout_seconds": 30.0,
        "fetch_timeout_seconds": 15.0,
        "max_workers": 8,
        "max_response_bytes": 5_000_000,
    },
}
