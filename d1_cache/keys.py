"""
Tenant-scoped cache keys for enrichment responses

Key format:
    enrichment:{tenant}:{provider}:{type}:{parameters_hash}

Examples:
    enrichment:550e8400-e29b-41d4-a716-446655440001:Financial_Data_Provider:company-profile:q1x...
    enrichment:default:Address_Validator:address-verification:empty

Pattern keys end in ``*`` and are meant for bulk eviction by adapters that
support glob matching.
"""
import re
import time
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Union
from uuid import UUID

from core.exceptions import CacheKeyError
from core.logging import get_logger

from .canonicalizer import KeyCanonicalizer

if TYPE_CHECKING:
    from d2_enrichment.models import EnrichmentRequest

CACHE_PREFIX = "enrichment"
DEFAULT_TENANT = "default"
UNKNOWN_SEGMENT = "unknown"
SEPARATOR = ":"
WILDCARD = "*"

_UNSAFE = re.compile(r"[:\s]+")


class CacheKeyFailureMode(str, Enum):
    """What to do when parameters cannot be hashed"""

    SKIP = "skip"  # raise CacheKeyError, caller bypasses the cache
    FALLBACK = "fallback"  # timestamp token, every call misses


def sanitize(value: Optional[str]) -> str:
    """Make a value safe to embed in a colon-delimited key"""
    if value is None or not str(value).strip():
        return UNKNOWN_SEGMENT
    return _UNSAFE.sub("_", str(value))


def tenant_segment(tenant_id: Union[UUID, str, None]) -> str:
    if tenant_id is None:
        return DEFAULT_TENANT
    return str(tenant_id)


class CacheKeyGenerator:
    """Builds cache keys and eviction patterns"""

    def __init__(
        self,
        canonicalizer: Optional[KeyCanonicalizer] = None,
        failure_mode: Union[CacheKeyFailureMode, str] = CacheKeyFailureMode.SKIP,
    ):
        self.canonicalizer = canonicalizer or KeyCanonicalizer()
        self.failure_mode = CacheKeyFailureMode(failure_mode)
        self.logger = get_logger("cache.keys", domain="d1")

    def generate_key(self, request: "EnrichmentRequest", provider_name: Optional[str]) -> str:
        """
        Cache key for an enrichment request served by a provider

        Raises:
            CacheKeyError: If parameters cannot be hashed and the failure
                mode is SKIP
        """
        return self.generate_key_for(request.tenant_id, provider_name, request.type, request.parameters)

    def generate_key_for(
        self,
        tenant_id: Union[UUID, str, None],
        provider_name: Optional[str],
        enrichment_type: Optional[str],
        parameters: Optional[Dict[str, Any]],
    ) -> str:
        return SEPARATOR.join(
            [
                CACHE_PREFIX,
                sanitize(tenant_segment(tenant_id)),
                sanitize(provider_name),
                sanitize(enrichment_type),
                self.hash_parameters(parameters),
            ]
        )

    def hash_parameters(self, parameters: Optional[Dict[str, Any]]) -> str:
        try:
            return self.canonicalizer.canonicalize(parameters)
        except CacheKeyError as e:
            if self.failure_mode is CacheKeyFailureMode.FALLBACK:
                self.logger.warning(f"Failed to hash parameters, using fallback token: {e}")
                return f"hash-error-{int(time.time() * 1000)}"
            self.logger.warning(f"Failed to hash parameters, cache will be bypassed: {e}")
            raise

    def tenant_pattern(self, tenant_id: Union[UUID, str, None]) -> str:
        """Pattern matching every key of a tenant"""
        return SEPARATOR.join([CACHE_PREFIX, sanitize(tenant_segment(tenant_id)), WILDCARD])

    def provider_pattern(self, tenant_id: Union[UUID, str, None], provider_name: Optional[str]) -> str:
        """Pattern matching every key of a provider within a tenant"""
        return SEPARATOR.join([CACHE_PREFIX, sanitize(tenant_segment(tenant_id)), sanitize(provider_name), WILDCARD])

    def type_pattern(
        self,
        tenant_id: Union[UUID, str, None],
        provider_name: Optional[str],
        enrichment_type: Optional[str],
    ) -> str:
        """Pattern matching every key of one enrichment type of a provider within a tenant"""
        return SEPARATOR.join(
            [
                CACHE_PREFIX,
                sanitize(tenant_segment(tenant_id)),
                sanitize(provider_name),
                sanitize(enrichment_type),
                WILDCARD,
            ]
        )

    @staticmethod
    def all_pattern() -> str:
        return f"{CACHE_PREFIX}{SEPARATOR}{WILDCARD}"
