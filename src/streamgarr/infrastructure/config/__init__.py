from __future__ import annotations

from .load import load_config
from .schema import (
    AppConfig,
    CacheConfig,
    EnvOverrides,
    ProvidersConfig,
    SandboxConfig,
)

__all__ = [
    "AppConfig",
    "CacheConfig",
    "EnvOverrides",
    "ProvidersConfig",
    "SandboxConfig",
    "load_config",
]
