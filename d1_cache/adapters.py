"""
Cache port and storage adapters

The engine only produces keys; storage lives behind CachePort. Two adapters
ship with the engine: an in-process dict store and a Redis-backed store.
"""
import asyncio
import fnmatch
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import redis.asyncio as aioredis

from core.config import get_settings
from core.logging import get_logger

from .keys import CacheKeyGenerator


class CachePort(ABC):
    """Key/value cache used by the enrichment cache service"""

    cache_type = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Value stored under key, or None"""

    @abstractmethod
    async def put(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a JSON-compatible value; ttl in seconds, None or 0 means no expiry"""

    @abstractmethod
    async def evict(self, key: str) -> bool:
        """Remove one key, returning True when it existed"""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every enrichment entry"""

    @abstractmethod
    async def evict_pattern(self, pattern: str) -> int:
        """Remove every key matching a glob pattern, returning the count"""

    async def close(self) -> None:
        """Release resources held by the adapter"""


class InMemoryCacheAdapter(CachePort):
    """Process-local cache with per-entry expiry"""

    cache_type = "memory"

    def __init__(self, clock=time.monotonic):
        self._store: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._expired(expires_at):
                del self._store[key]
                return None
            return value

    async def put(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl and ttl > 0 else None
        async with self._lock:
            self._store[key] = (value, expires_at)

    async def evict(self, key: str) -> bool:
        async with self._lock:
            return self._store.pop(key, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()

    async def evict_pattern(self, pattern: str) -> int:
        async with self._lock:
            matches = [key for key in self._store if fnmatch.fnmatchcase(key, pattern)]
            for key in matches:
                del self._store[key]
            return len(matches)

    def __len__(self) -> int:
        return len(self._store)


class RedisCacheAdapter(CachePort):
    """Redis-backed cache storing JSON values"""

    cache_type = "redis"

    def __init__(self, redis_url: Optional[str] = None, scan_count: int = 500):
        self.settings = get_settings()
        self.redis_url = redis_url or self.settings.redis_url
        self.scan_count = scan_count
        self.logger = get_logger("cache.redis", domain="d1")

        self._redis: Optional[aioredis.Redis] = None

    async def _get_redis(self) -> aioredis.Redis:
        """Get Redis connection"""
        if self._redis is None:
            self._redis = aioredis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    async def get(self, key: str) -> Optional[Any]:
        redis = await self._get_redis()
        cached = await redis.get(key)
        if cached is None:
            return None
        return json.loads(cached)

    async def put(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        redis = await self._get_redis()
        payload = json.dumps(value, separators=(",", ":"))
        if ttl and ttl > 0:
            await redis.setex(key, ttl, payload)
        else:
            await redis.set(key, payload)

    async def evict(self, key: str) -> bool:
        redis = await self._get_redis()
        return bool(await redis.delete(key))

    async def clear(self) -> None:
        deleted = await self.evict_pattern(CacheKeyGenerator.all_pattern())
        self.logger.info(f"Cleared {deleted} enrichment cache entries")

    async def evict_pattern(self, pattern: str) -> int:
        redis = await self._get_redis()
        deleted = 0
        batch = []
        async for key in redis.scan_iter(match=pattern, count=self.scan_count):
            batch.append(key)
            if len(batch) >= self.scan_count:
                deleted += await redis.delete(*batch)
                batch = []
        if batch:
            deleted += await redis.delete(*batch)
        return deleted

    async def close(self) -> None:
        """Close Redis connection"""
        if self._redis:
            await self._redis.aclose()
            self._redis = None


def create_cache_adapter(backend: Optional[str] = None) -> CachePort:
    """Adapter for the configured cache backend"""
    backend = (backend or get_settings().cache_backend).lower()
    if backend == "redis":
        return RedisCacheAdapter()
    if backend == "memory":
        return InMemoryCacheAdapter()
    raise ValueError(f"Unknown cache backend '{backend}'. Available: memory, redis")
