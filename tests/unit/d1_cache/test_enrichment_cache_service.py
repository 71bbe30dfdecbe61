"""
Test enrichment response cache service
"""
import uuid
from unittest.mock import AsyncMock, Mock

import pytest

from d1_cache.adapters import CachePort, InMemoryCacheAdapter
from d1_cache.keys import CacheKeyGenerator
from d1_cache.service import EnrichmentCacheService
from d2_enrichment.models import EnrichmentRequest, EnrichmentResponse, EnrichmentStrategy

TENANT = uuid.UUID("550e8400-e29b-41d4-a716-446655440001")
OTHER_TENANT = uuid.UUID("550e8400-e29b-41d4-a716-446655440002")


def make_request(parameters=None, tenant_id=TENANT, type_="company-profile"):
    return EnrichmentRequest(
        type=type_,
        strategy=EnrichmentStrategy.MERGE,
        parameters={"companyId": "12345"} if parameters is None else parameters,
        tenant_id=tenant_id,
    )


def make_response(**overrides):
    values = {
        "success": True,
        "enriched_data": {"name": "Acme Corporation"},
        "provider_name": "Acme",
        "type": "company-profile",
        "strategy_used": EnrichmentStrategy.MERGE,
        "fields_enriched": 1,
    }
    values.update(overrides)
    return EnrichmentResponse(**values)


def failing_adapter():
    adapter = Mock(spec=CachePort)
    adapter.cache_type = "broken"
    adapter.get = AsyncMock(side_effect=ConnectionError("down"))
    adapter.put = AsyncMock(side_effect=ConnectionError("down"))
    adapter.evict = AsyncMock(side_effect=ConnectionError("down"))
    adapter.evict_pattern = AsyncMock(side_effect=ConnectionError("down"))
    adapter.clear = AsyncMock(side_effect=ConnectionError("down"))
    return adapter


class TestGetAndPut:
    @pytest.mark.asyncio
    async def test_round_trip_and_hit_tracking(self, cache_service):
        request = make_request()

        assert await cache_service.get(request, "Acme") is None
        assert await cache_service.put(request, "Acme", make_response()) is True

        cached = await cache_service.get(request, "Acme")

        assert isinstance(cached, EnrichmentResponse)
        assert cached.enriched_data == {"name": "Acme Corporation"}
        assert cached.strategy_used is EnrichmentStrategy.MERGE
        stats = cache_service.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["total_requests"] == 2

    @pytest.mark.asyncio
    async def test_stored_value_is_json_compatible(self, cache_service, memory_adapter):
        request = make_request()
        await cache_service.put(request, "Acme", make_response())

        key = CacheKeyGenerator().generate_key(request, "Acme")
        stored = await memory_adapter.get(key)

        assert stored["strategy_used"] == "MERGE"
        assert isinstance(stored["timestamp"], str)

    @pytest.mark.asyncio
    async def test_failed_responses_are_not_cached(self, cache_service, memory_adapter):
        request = make_request()

        stored = await cache_service.put(request, "Acme", EnrichmentResponse.failed("company-profile", "Acme", "boom"))

        assert stored is False
        assert len(memory_adapter) == 0

    @pytest.mark.asyncio
    async def test_tenants_are_isolated(self, cache_service):
        await cache_service.put(make_request(tenant_id=TENANT), "Acme", make_response())

        assert await cache_service.get(make_request(tenant_id=OTHER_TENANT), "Acme") is None
        assert await cache_service.get(make_request(tenant_id=TENANT), "Acme") is not None

    @pytest.mark.asyncio
    async def test_parameter_order_hits_same_entry(self, cache_service):
        await cache_service.put(make_request({"a": 1, "b": 2}), "Acme", make_response())

        assert await cache_service.get(make_request({"b": 2, "a": 1}), "Acme") is not None

    @pytest.mark.asyncio
    async def test_custom_ttl_is_passed_to_adapter(self):
        adapter = Mock(spec=CachePort)
        adapter.cache_type = "mock"
        adapter.put = AsyncMock()
        service = EnrichmentCacheService(adapter=adapter, enabled=True, default_ttl=60)

        await service.put(make_request(), "Acme", make_response(), ttl=5)
        await service.put(make_request(), "Acme", make_response())

        assert adapter.put.call_args_list[0].args[2] == 5
        assert adapter.put.call_args_list[1].args[2] == 60

    @pytest.mark.asyncio
    async def test_corrupted_entry_is_a_miss(self, cache_service, memory_adapter):
        request = make_request()
        key = CacheKeyGenerator().generate_key(request, "Acme")
        await memory_adapter.put(key, {"confidence_score": 7})

        assert await cache_service.get(request, "Acme") is None
        assert cache_service.get_stats()["errors"] == 1


class TestDisabledCache:
    @pytest.mark.asyncio
    async def test_disabled_service_is_a_no_op(self, memory_adapter):
        service = EnrichmentCacheService(adapter=memory_adapter, enabled=False)
        request = make_request()

        assert await service.put(request, "Acme", make_response()) is False
        assert await service.get(request, "Acme") is None
        assert await service.evict(request, "Acme") is False
        assert await service.evict_tenant(TENANT) == 0
        assert len(memory_adapter) == 0
        assert service.get_stats()["total_requests"] == 0

    def test_defaults_from_settings(self, memory_adapter):
        service = EnrichmentCacheService(adapter=memory_adapter)

        assert service.enabled is False
        assert service.default_ttl == 3600


class TestUnhashableParameters:
    @pytest.mark.asyncio
    async def test_skip_mode_bypasses_cache(self, cache_service, memory_adapter):
        request = make_request({"bad": object()})

        assert await cache_service.put(request, "Acme", make_response()) is False
        assert await cache_service.get(request, "Acme") is None
        assert len(memory_adapter) == 0
        stats = cache_service.get_stats()
        assert stats["skipped"] == 2
        assert stats["misses"] == 0


class TestStorageErrors:
    @pytest.mark.asyncio
    async def test_errors_are_swallowed_and_counted(self):
        service = EnrichmentCacheService(adapter=failing_adapter(), enabled=True, default_ttl=60)
        request = make_request()

        assert await service.get(request, "Acme") is None
        assert await service.put(request, "Acme", make_response()) is False
        assert await service.evict(request, "Acme") is False
        assert await service.evict_tenant(TENANT) == 0
        await service.clear_all()

        stats = service.get_stats()
        assert stats["errors"] == 5
        assert stats["misses"] == 1
        assert stats["backend"] == "broken"


class TestEviction:
    @pytest.mark.asyncio
    async def test_evict_single_entry(self, cache_service):
        request = make_request()
        await cache_service.put(request, "Acme", make_response())

        assert await cache_service.evict(request, "Acme") is True
        assert await cache_service.get(request, "Acme") is None

    @pytest.mark.asyncio
    async def test_evict_tenant(self, cache_service, memory_adapter):
        await self._populate(cache_service)

        assert await cache_service.evict_tenant(TENANT) == 3
        assert len(memory_adapter) == 1

    @pytest.mark.asyncio
    async def test_evict_provider(self, cache_service, memory_adapter):
        await self._populate(cache_service)

        assert await cache_service.evict_provider(TENANT, "Acme") == 2
        assert len(memory_adapter) == 2

    @pytest.mark.asyncio
    async def test_evict_type(self, cache_service, memory_adapter):
        await self._populate(cache_service)

        assert await cache_service.evict_type(TENANT, "Acme", "credit-report") == 1
        assert len(memory_adapter) == 3

    @pytest.mark.asyncio
    async def test_clear_all(self, cache_service, memory_adapter):
        await self._populate(cache_service)

        await cache_service.clear_all()

        assert len(memory_adapter) == 0

    @staticmethod
    async def _populate(cache_service):
        entries = [
            (make_request(tenant_id=TENANT, type_="company-profile"), "Acme"),
            (make_request(tenant_id=TENANT, type_="credit-report"), "Acme"),
            (make_request(tenant_id=TENANT, type_="company-profile"), "Other"),
            (make_request(tenant_id=OTHER_TENANT, type_="company-profile"), "Acme"),
        ]
        for request, provider in entries:
            await cache_service.put(request, provider, make_response())


class TestStats:
    @pytest.mark.asyncio
    async def test_reset_stats(self, cache_service):
        await cache_service.get(make_request(), "Acme")

        cache_service.reset_stats()

        stats = cache_service.get_stats()
        assert stats["misses"] == 0
        assert stats["hit_rate"] == 0
        assert stats["enabled"] is True
        assert stats["backend"] == "memory"
        assert stats["ttl_seconds"] == 60

    @pytest.mark.asyncio
    async def test_close_closes_adapter(self):
        adapter = InMemoryCacheAdapter()
        adapter.close = AsyncMock()
        service = EnrichmentCacheService(adapter=adapter, enabled=True)

        await service.close()

        adapter.close.assert_called_once()
