"""
D1 Cache Domain

Deterministic, tenant-isolated cache keys for enrichment responses and the
cache service that stores responses behind a pluggable cache port.
"""

from .adapters import CachePort, InMemoryCacheAdapter, RedisCacheAdapter, create_cache_adapter
from .canonicalizer import EMPTY_PARAMETERS_TOKEN, KeyCanonicalizer
from .keys import CACHE_PREFIX, DEFAULT_TENANT, CacheKeyFailureMode, CacheKeyGenerator, sanitize

__all__ = [
    "CachePort",
    "InMemoryCacheAdapter",
    "RedisCacheAdapter",
    "create_cache_adapter",
    "EMPTY_PARAMETERS_TOKEN",
    "KeyCanonicalizer",
    "CACHE_PREFIX",
    "DEFAULT_TENANT",
    "CacheKeyFailureMode",
    "CacheKeyGenerator",
    "sanitize",
]
