"""Cache Infrastructure - Backend-Implementations and TTL cache."""

from .cache_factory import CacheBackend, create_cache
from .diskcache_adapter import DiskcacheAdapter
from .memory_adapter import MemoryCacheAdapter
from .redis_adapter import RedisAdapter
from .ttl_cache import TtlCache

__all__ = [
    "CacheBackend",
    "DiskcacheAdapter",
    "MemoryCacheAdapter",
    "RedisAdapter",
    "TtlCache",
    "create_cache",
]
