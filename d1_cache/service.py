"""
Enrichment response caching

Wraps a CachePort with tenant-scoped keys. Caching is best-effort: storage
errors are logged and treated as misses so they never fail an enrichment.
"""
from typing import Any, Dict, Optional, Union
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from core.config import get_settings
from core.exceptions import CacheKeyError
from core.logging import get_logger
from d2_enrichment.models import EnrichmentRequest, EnrichmentResponse

from .adapters import CachePort, create_cache_adapter
from .keys import CacheKeyGenerator


class EnrichmentCacheService:
    """Tenant-isolated cache for successful enrichment responses"""

    def __init__(
        self,
        adapter: Optional[CachePort] = None,
        key_generator: Optional[CacheKeyGenerator] = None,
        enabled: Optional[bool] = None,
        default_ttl: Optional[int] = None,
    ):
        self.settings = get_settings()
        self.logger = get_logger("cache.enrichment", domain="d1")

        self.adapter = adapter if adapter is not None else create_cache_adapter()
        self.key_generator = key_generator or CacheKeyGenerator(failure_mode=self.settings.cache_key_failure_mode)
        self.enabled = self.settings.cache_enabled if enabled is None else enabled
        self.default_ttl = self.settings.cache_ttl_seconds if default_ttl is None else default_ttl

        # Hit/miss tracking
        self._hits = 0
        self._misses = 0
        self._skipped = 0
        self._errors = 0

        self.logger.info(
            f"Enrichment cache service initialized (enabled={self.enabled}, "
            f"ttl={self.default_ttl}s, backend={self.adapter.cache_type})"
        )

    def _key(self, request: EnrichmentRequest, provider_name: str) -> Optional[str]:
        try:
            return self.key_generator.generate_key(request, provider_name)
        except CacheKeyError:
            self._skipped += 1
            return None

    async def get(self, request: EnrichmentRequest, provider_name: str) -> Optional[EnrichmentResponse]:
        """
        Cached response for a request, if any

        Returns:
            The cached response, or None on a miss, a storage error or when
            the request cannot be keyed
        """
        if not self.enabled:
            return None

        cache_key = self._key(request, provider_name)
        if cache_key is None:
            return None

        try:
            cached = await self.adapter.get(cache_key)
        except Exception as e:
            self.logger.warning(f"Error retrieving from cache for key {cache_key}: {e}")
            self._errors += 1
            self._misses += 1
            return None

        if cached is None:
            self._misses += 1
            self.logger.debug(f"Cache miss for key: {cache_key}")
            return None

        try:
            response = (
                cached if isinstance(cached, EnrichmentResponse) else EnrichmentResponse.model_validate(cached)
            )
        except PydanticValidationError as e:
            # Corrupted entry, treat as a miss
            self.logger.warning(f"Discarding unreadable cache entry {cache_key}: {e}")
            self._errors += 1
            self._misses += 1
            return None

        self._hits += 1
        self.logger.debug(f"Cache hit for key: {cache_key}")
        return response

    async def put(
        self,
        request: EnrichmentRequest,
        provider_name: str,
        response: EnrichmentResponse,
        ttl: Optional[int] = None,
    ) -> bool:
        """
        Cache a response; failed responses are never cached

        Returns:
            True when the response was stored
        """
        if not self.enabled:
            return False

        if not response.success:
            self.logger.for_provider(provider_name).debug("Not caching failed response")
            return False

        cache_key = self._key(request, provider_name)
        if cache_key is None:
            return False

        cache_ttl = self.default_ttl if ttl is None else ttl
        try:
            await self.adapter.put(cache_key, response.model_dump(mode="json"), cache_ttl)
        except Exception as e:
            self.logger.warning(f"Error caching response for key {cache_key}: {e}")
            self._errors += 1
            return False

        self.logger.debug(f"Cached response for key: {cache_key} (TTL: {cache_ttl}s)")
        return True

    async def evict(self, request: EnrichmentRequest, provider_name: str) -> bool:
        if not self.enabled:
            return False

        cache_key = self._key(request, provider_name)
        if cache_key is None:
            return False

        try:
            evicted = await self.adapter.evict(cache_key)
        except Exception as e:
            self.logger.warning(f"Error evicting cache entry for key {cache_key}: {e}")
            self._errors += 1
            return False

        if evicted:
            self.logger.debug(f"Evicted cache entry for key: {cache_key}")
        return evicted

    async def _evict_pattern(self, pattern: str, description: str) -> int:
        if not self.enabled:
            return 0

        self.logger.info(f"Evicting cache entries for {description} (pattern: {pattern})")
        try:
            deleted = await self.adapter.evict_pattern(pattern)
        except Exception as e:
            self.logger.warning(f"Error evicting cache entries for {description}: {e}")
            self._errors += 1
            return 0

        self.logger.info(f"Evicted {deleted} cache entries for {description}")
        return deleted

    async def evict_tenant(self, tenant_id: Union[UUID, str, None]) -> int:
        return await self._evict_pattern(self.key_generator.tenant_pattern(tenant_id), f"tenant {tenant_id}")

    async def evict_provider(self, tenant_id: Union[UUID, str, None], provider_name: str) -> int:
        return await self._evict_pattern(
            self.key_generator.provider_pattern(tenant_id, provider_name),
            f"provider {provider_name} in tenant {tenant_id}",
        )

    async def evict_type(self, tenant_id: Union[UUID, str, None], provider_name: str, enrichment_type: str) -> int:
        return await self._evict_pattern(
            self.key_generator.type_pattern(tenant_id, provider_name, enrichment_type),
            f"type {enrichment_type} of provider {provider_name} in tenant {tenant_id}",
        )

    async def clear_all(self) -> None:
        if not self.enabled:
            return

        self.logger.info("Clearing all enrichment cache entries")
        try:
            await self.adapter.clear()
        except Exception as e:
            self.logger.warning(f"Error clearing all cache entries: {e}")
            self._errors += 1

    def get_stats(self) -> Dict[str, Any]:
        """Hit/miss statistics for this service"""
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests) if total_requests > 0 else 0

        return {
            "enabled": self.enabled,
            "backend": self.adapter.cache_type,
            "ttl_seconds": self.default_ttl,
            "hits": self._hits,
            "misses": self._misses,
            "skipped": self._skipped,
            "errors": self._errors,
            "hit_rate": round(hit_rate, 3),
            "total_requests": total_requests,
        }

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0
        self._skipped = 0
        self._errors = 0

    async def close(self) -> None:
        await self.adapter.close()
