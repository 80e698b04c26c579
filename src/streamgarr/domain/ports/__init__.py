from .cache import CachePort
from .provider import (
    NativeProviderPort,
    PluginLoaderPort,
    ProviderRegistryPort,
    StreamProviderPort,
)
from .tmdb import IdentifierResolverPort, TmdbClientPort

__all__ = [
    "CachePort",
    "IdentifierResolverPort",
    "NativeProviderPort",
    "PluginLoaderPort",
    "ProviderRegistryPort",
    "StreamProviderPort",
    "TmdbClientPort",
]
