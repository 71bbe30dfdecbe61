"""
D2 Enrichment Domain

Request/response models, the strategy engine that reconciles source and
provider data, request validation and response building. The coordinator
lives in ``d2_enrichment.coordinator`` and is imported from there.
"""

from .models import EnrichmentRequest, EnrichmentResponse, EnrichmentStrategy
from .response_builder import EnrichmentResponseBuilder
from .strategy import StrategyApplier, apply_strategy, count_enriched_fields
from .validator import RequestValidator

__all__ = [
    "EnrichmentRequest",
    "EnrichmentResponse",
    "EnrichmentStrategy",
    "EnrichmentResponseBuilder",
    "StrategyApplier",
    "apply_strategy",
    "count_enriched_fields",
    "RequestValidator",
]
