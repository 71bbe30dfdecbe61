"""
Root conftest.py for all tests
Provides common fixtures and configuration
"""
import asyncio
import os
import uuid

# Settings are read at import time, so the test environment must be set first
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from core.config import get_settings
from d0_providers import GLOBAL_TENANT_ID, ProviderDescriptor, ProviderFetchPort, ProviderRegistry
from d1_cache.adapters import InMemoryCacheAdapter
from d1_cache.keys import CacheKeyGenerator
from d1_cache.service import EnrichmentCacheService

get_settings.cache_clear()

TENANT_A = uuid.UUID("550e8400-e29b-41d4-a716-446655440001")
TENANT_B = uuid.UUID("550e8400-e29b-41d4-a716-446655440002")


class StaticProvider(ProviderFetchPort):
    """Provider returning a fixed payload and recording its calls"""

    def __init__(self, payload=None, error=None, delay=0.0):
        self.payload = payload if payload is not None else {}
        self.error = error
        self.delay = delay
        self.calls = []

    async def fetch(self, type, parameters):
        self.calls.append((type, parameters))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Make every test start from freshly parsed settings"""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def tenant_a():
    return TENANT_A


@pytest.fixture
def tenant_b():
    return TENANT_B


@pytest.fixture
def global_tenant():
    return GLOBAL_TENANT_ID


@pytest.fixture
def make_provider():
    """Factory for StaticProvider instances"""
    return StaticProvider


@pytest.fixture
def company_provider():
    return StaticProvider({"name": "Acme Corporation", "address": "1 Main St", "employees": 250})


@pytest.fixture
def sample_registry(company_provider):
    """Registry mixing global and tenant-specific providers"""
    return ProviderRegistry(
        [
            (ProviderDescriptor("Global Profiles", "company-profile", priority=50), company_provider),
            (
                ProviderDescriptor("Tenant A Profiles", "company-profile", tenant_id=TENANT_A, priority=100),
                company_provider,
            ),
            (ProviderDescriptor("Credit Bureau", "credit-report", priority=10), StaticProvider({"score": 700})),
        ]
    )


@pytest.fixture
def memory_adapter():
    return InMemoryCacheAdapter()


@pytest.fixture
def cache_service(memory_adapter):
    """Enabled cache service backed by the in-memory adapter"""
    return EnrichmentCacheService(
        adapter=memory_adapter,
        key_generator=CacheKeyGenerator(),
        enabled=True,
        default_ttl=60,
    )
