"""
Fluent builder for EnrichmentResponse
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .models import EnrichmentRequest, EnrichmentResponse, EnrichmentStrategy
from .strategy import count_enriched_fields


class EnrichmentResponseBuilder:
    """Assembles a response step by step

    Example:
        response = EnrichmentResponseBuilder.success(enriched) \\
            .for_request(request) \\
            .with_provider("Acme Data") \\
            .counting_enriched_fields(request.source_record) \\
            .build()
    """

    def __init__(self, success: bool):
        self._fields: Dict[str, Any] = {
            "success": success,
            "timestamp": datetime.now(timezone.utc),
        }

    @classmethod
    def success(cls, enriched_data: Any) -> "EnrichmentResponseBuilder":
        builder = cls(True)
        builder._fields["enriched_data"] = enriched_data
        return builder

    @classmethod
    def failure(cls, error: str) -> "EnrichmentResponseBuilder":
        builder = cls(False)
        builder._fields["error"] = error
        builder._fields["message"] = "Enrichment failed"
        return builder

    def for_request(self, request: Optional[EnrichmentRequest]) -> "EnrichmentResponseBuilder":
        if request is not None:
            self._fields["type"] = request.type
            self._fields["strategy_used"] = request.strategy
            self._fields["request_id"] = request.request_id
        return self

    def with_provider(self, provider_name: str) -> "EnrichmentResponseBuilder":
        self._fields["provider_name"] = provider_name
        return self

    def with_type(self, enrichment_type: str) -> "EnrichmentResponseBuilder":
        self._fields["type"] = enrichment_type
        return self

    def with_strategy(self, strategy: EnrichmentStrategy) -> "EnrichmentResponseBuilder":
        self._fields["strategy_used"] = strategy
        return self

    def with_message(self, message: str) -> "EnrichmentResponseBuilder":
        self._fields["message"] = message
        return self

    def with_raw_response(self, raw: Any) -> "EnrichmentResponseBuilder":
        self._fields["raw_provider_response"] = raw
        return self

    def with_confidence(self, confidence_score: float) -> "EnrichmentResponseBuilder":
        self._fields["confidence_score"] = confidence_score
        return self

    def with_fields_enriched(self, fields_enriched: int) -> "EnrichmentResponseBuilder":
        self._fields["fields_enriched"] = fields_enriched
        return self

    def counting_enriched_fields(self, source: Any) -> "EnrichmentResponseBuilder":
        """Derive ``fields_enriched`` by diffing the source against the enriched data"""
        enriched = self._fields.get("enriched_data")
        if enriched is not None:
            self._fields["fields_enriched"] = count_enriched_fields(source, enriched)
        return self

    def with_cost(self, cost: float, currency: str) -> "EnrichmentResponseBuilder":
        self._fields["cost"] = cost
        self._fields["cost_currency"] = currency
        return self

    def with_request_id(self, request_id: str) -> "EnrichmentResponseBuilder":
        self._fields["request_id"] = request_id
        return self

    def with_metadata(self, key_or_mapping, value: Optional[str] = None) -> "EnrichmentResponseBuilder":
        """Add one metadata entry, or replace metadata with a mapping"""
        if isinstance(key_or_mapping, dict):
            self._fields["metadata"] = dict(key_or_mapping)
        else:
            self._fields.setdefault("metadata", {})
            self._fields["metadata"][key_or_mapping] = value
        return self

    def build(self) -> EnrichmentResponse:
        return EnrichmentResponse(**self._fields)
