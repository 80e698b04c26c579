from .streams import (
    MEDIA_KINDS,
    CacheEntry,
    MediaKind,
    ProviderInfo,
    ProviderSource,
    Stream,
    StreamRequest,
    StremioStream,
    TitleInfo,
)

__all__ = [
    "MEDIA_KINDS",
    "CacheEntry",
    "MediaKind",
    "ProviderInfo",
    "ProviderSource",
    "Stream",
    "StreamRequest",
    "StremioStream",
    "TitleInfo",
]
