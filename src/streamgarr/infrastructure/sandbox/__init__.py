"""Capability sandbox for remotely sourced provider plugins."""

from .capabilities import FetchError, HttpResponse, build_capabilities
from .guards import CancelScope, SandboxCancelled
from .runtime import SandboxedProvider, SandboxRuntime

__all__ = [
    "CancelScope",
    "FetchError",
    "HttpResponse",
    "SandboxCancelled",
    "SandboxRuntime",
    "SandboxedProvider",
    "build_capabilities",
]
