from .loader import PluginLoader
from .manifest import RemoteManifestSource
from .registry import ProviderRegistry
from .validation_schema import ManifestScraper, RemoteManifest

__all__ = [
    "ManifestScraper",
    "PluginLoader",
    "ProviderRegistry",
    "RemoteManifest",
    "RemoteManifestSource",
]
