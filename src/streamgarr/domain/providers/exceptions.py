"""Provider system exceptions."""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for all provider-related errors."""


class FetchFailure(ProviderError):
    """Raised when an upstream request fails (network error or non-2xx)."""


class ProviderTimeout(ProviderError):
    """Raised when a provider call or plugin load exceeds its time bound."""


class InvalidPlugin(ProviderError):
    """Raised when plugin source fails to compile or lacks ``get_streams``."""


class MalformedResult(ProviderError):
    """Raised when a provider returns something other than a list."""


class PluginRuntimeError(ProviderError):
    """Raised when sandboxed provider code raises an exception."""


class ProviderNotFound(ProviderError):
    """Raised when a provider id has no executable implementation."""


class ResolutionMiss(ProviderError):
    """Raised when an identifier has no upstream mapping.

    Not a failure: callers convert it into an empty outcome.
    """
