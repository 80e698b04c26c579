from .exceptions import (
    FetchFailure,
    InvalidPlugin,
    MalformedResult,
    PluginRuntimeError,
    ProviderError,
    ProviderNotFound,
    ProviderTimeout,
    ResolutionMiss,
)

__all__ = [
    "FetchFailure",
    "InvalidPlugin",
    "MalformedResult",
    "PluginRuntimeError",
    "ProviderError",
    "ProviderNotFound",
    "ProviderTimeout",
    "ResolutionMiss",
]
