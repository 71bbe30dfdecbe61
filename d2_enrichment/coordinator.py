"""
Enrichment Coordinator

Sequences a single enrichment: validate the request, resolve a provider,
consult the cache, fetch provider data, apply the strategy and store the
result. Every failure along the way is turned into a failed
EnrichmentResponse; nothing escapes ``enrich`` as an exception.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from core.config import get_settings
from core.exceptions import ProviderFetchError, StrategyError, ValidationError
from core.logging import get_logger
from d0_providers.registry import ProviderRegistry
from d0_providers.types import RegisteredProvider
from d1_cache.service import EnrichmentCacheService

from .models import EnrichmentRequest, EnrichmentResponse
from .response_builder import EnrichmentResponseBuilder
from .strategy import StrategyApplier, Target
from .validator import RequestValidator

RequestCheck = Callable[[RequestValidator], Any]


@dataclass
class BatchEnrichmentResult:
    """Result of batch enrichment operation"""

    batch_id: str
    responses: List[Optional[EnrichmentResponse]]
    successful: int
    failed: int
    skipped: int
    execution_time_seconds: float
    errors: List[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        processed = self.successful + self.failed
        if processed == 0:
            return 0.0
        return (self.successful / processed) * 100


class EnrichmentCoordinator:
    """Composition root wiring validation, resolution, fetch, strategy and cache"""

    def __init__(
        self,
        registry: ProviderRegistry,
        cache_service: Optional[EnrichmentCacheService] = None,
        applier: Optional[StrategyApplier] = None,
        default_timeout_seconds: Optional[float] = None,
        capture_raw_responses: Optional[bool] = None,
    ):
        self.settings = get_settings()
        self.logger = get_logger("enrichment.coordinator", domain="d2")

        self.registry = registry
        self.cache_service = cache_service
        self.applier = applier or StrategyApplier()
        self.default_timeout_seconds = (
            default_timeout_seconds if default_timeout_seconds is not None else self.settings.default_timeout_seconds
        )
        self.capture_raw_responses = (
            capture_raw_responses if capture_raw_responses is not None else self.settings.capture_raw_responses
        )

        self.stats = {
            "total_requests": 0,
            "successful": 0,
            "failed": 0,
            "cache_hits": 0,
            "validation_failures": 0,
            "resolution_misses": 0,
            "provider_failures": 0,
            "strategy_failures": 0,
        }

    # ------------------------------------------------------------------
    # Single enrichment
    # ------------------------------------------------------------------

    async def enrich(
        self,
        request: EnrichmentRequest,
        provider_name: Optional[str] = None,
        checks: Optional[RequestCheck] = None,
        target: Target = None,
    ) -> EnrichmentResponse:
        """
        Run one enrichment end to end

        Args:
            request: The enrichment request
            provider_name: Force a specific provider instead of resolving by type
            checks: Extra validation, called with the request's RequestValidator
            target: Target shape for the enriched data (None for dict)

        Returns:
            A successful or failed EnrichmentResponse
        """
        self.stats["total_requests"] += 1

        if not self.settings.enrichment_enabled:
            return self._fail(request, None, "Enrichment is disabled")

        try:
            validator = RequestValidator.of(request).require_type().require_strategy()
            if checks is not None:
                checks(validator)
            validator.validate()
        except ValidationError as e:
            self.stats["validation_failures"] += 1
            return self._fail(request, provider_name, e.message)
        except Exception as e:
            # Caller-supplied checks are arbitrary code
            self.stats["validation_failures"] += 1
            self.logger.for_request(request).error(f"Request checks raised: {e}")
            return self._fail(request, provider_name, f"Request checks failed: {e}")

        registration = self._resolve(request, provider_name)
        if registration is None:
            self.stats["resolution_misses"] += 1
            if provider_name:
                error = f"No provider found with name '{provider_name}'"
            else:
                error = f"No provider found for type '{request.type}'"
            return self._fail(request, provider_name, error)

        resolved_name = registration.descriptor.provider_name

        if self.cache_service is not None:
            cached = await self.cache_service.get(request, resolved_name)
            if cached is not None:
                self.stats["cache_hits"] += 1
                self.stats["successful"] += 1
                return cached

        try:
            provider_data = await self._fetch(registration, request)
        except asyncio.TimeoutError:
            self.stats["provider_failures"] += 1
            return self._fail(
                request, resolved_name, f"Provider '{resolved_name}' timed out after {self._timeout_for(request)}s"
            )
        except ProviderFetchError as e:
            self.stats["provider_failures"] += 1
            return self._fail(request, resolved_name, e.message)
        except Exception as e:
            # Provider implementations are external; any failure becomes a failed response
            self.stats["provider_failures"] += 1
            self.logger.for_request(request).for_provider(resolved_name).error(f"Provider fetch failed: {e}")
            return self._fail(request, resolved_name, f"Provider '{resolved_name}' failed: {e}")

        try:
            enriched = self.applier.apply(request.strategy, request.source_record, provider_data, target)
        except StrategyError as e:
            self.stats["strategy_failures"] += 1
            return self._fail(request, resolved_name, e.message)

        builder = (
            EnrichmentResponseBuilder.success(enriched)
            .for_request(request)
            .with_provider(resolved_name)
            .with_message(f"Enriched '{request.type}' using {resolved_name}")
            .counting_enriched_fields(request.source_record)
        )
        if self.capture_raw_responses:
            builder.with_raw_response(provider_data)
        response = builder.build()

        if self.cache_service is not None:
            await self.cache_service.put(request, resolved_name, response)

        self.stats["successful"] += 1
        self.logger.for_request(request).for_provider(resolved_name).info(
            f"Enrichment succeeded for type '{request.type}' via '{resolved_name}' "
            f"({response.fields_enriched or 0} fields enriched)"
        )
        return response

    def _resolve(self, request: EnrichmentRequest, provider_name: Optional[str]) -> Optional[RegisteredProvider]:
        if provider_name:
            return self.registry.resolve_by_provider(provider_name)
        if request.tenant_id is not None:
            return self.registry.resolve_by_type_and_tenant(request.type, request.tenant_id)
        return self.registry.resolve_by_type(request.type)

    def _timeout_for(self, request: EnrichmentRequest) -> float:
        if request.timeout_millis:
            return request.timeout_millis / 1000
        return self.default_timeout_seconds

    async def _fetch(self, registration: RegisteredProvider, request: EnrichmentRequest) -> Any:
        handler = registration.handler
        if not callable(getattr(handler, "fetch", None)):
            raise ProviderFetchError(registration.descriptor.provider_name, "handler does not implement fetch")
        return await asyncio.wait_for(
            handler.fetch(request.type, dict(request.parameters)),
            timeout=self._timeout_for(request),
        )

    def _fail(self, request: EnrichmentRequest, provider_name: Optional[str], error: str) -> EnrichmentResponse:
        self.stats["failed"] += 1
        self.logger.for_request(request).for_provider(provider_name).warning(
            f"Enrichment failed for type '{request.type}': {error}"
        )
        return EnrichmentResponseBuilder.failure(error).for_request(request).with_provider(provider_name).build()

    # ------------------------------------------------------------------
    # Batch enrichment
    # ------------------------------------------------------------------

    async def enrich_batch(
        self,
        requests: Sequence[EnrichmentRequest],
        fail_fast: Optional[bool] = None,
        parallelism: Optional[int] = None,
    ) -> BatchEnrichmentResult:
        """
        Enrich several requests concurrently

        Responses keep the order of ``requests``; entries skipped after a
        fail-fast stop are None.

        Raises:
            ValidationError: If the batch exceeds the configured maximum size
        """
        if len(requests) > self.settings.max_batch_size:
            raise ValidationError(
                f"Batch size {len(requests)} exceeds maximum of {self.settings.max_batch_size}",
                field="requests",
            )

        fail_fast = self.settings.batch_fail_fast if fail_fast is None else fail_fast
        semaphore = asyncio.Semaphore(parallelism or self.settings.batch_parallelism)
        stop = asyncio.Event()
        responses: List[Optional[EnrichmentResponse]] = [None] * len(requests)
        batch_id = "batch_" + str(uuid.uuid4())[:8]
        start_time = time.monotonic()

        async def run(index: int, request: EnrichmentRequest) -> None:
            async with semaphore:
                if stop.is_set():
                    return
                response = await self.enrich(request)
                responses[index] = response
                if fail_fast and not response.success:
                    stop.set()

        await asyncio.gather(*(run(i, r) for i, r in enumerate(requests)))

        successful = sum(1 for r in responses if r is not None and r.success)
        failed = sum(1 for r in responses if r is not None and not r.success)
        skipped = sum(1 for r in responses if r is None)
        errors = [r.error for r in responses if r is not None and r.error]

        self.logger.info(
            f"Batch {batch_id} finished: {successful} succeeded, {failed} failed, {skipped} skipped"
        )
        return BatchEnrichmentResult(
            batch_id=batch_id,
            responses=responses,
            successful=successful,
            failed=failed,
            skipped=skipped,
            execution_time_seconds=time.monotonic() - start_time,
            errors=errors,
        )

    def get_stats(self) -> Dict[str, Any]:
        stats = dict(self.stats)
        if self.cache_service is not None:
            stats["cache"] = self.cache_service.get_stats()
        return stats
