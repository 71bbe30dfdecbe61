"""Core utilities and configuration for the enrichment engine"""
from core.config import settings
from core.exceptions import (
    CacheKeyError,
    ConfigurationError,
    EnrichmentEngineError,
    ProviderFetchError,
    StrategyError,
    ValidationError,
)
from core.logging import get_logger

__all__ = [
    "settings",
    "get_logger",
    "EnrichmentEngineError",
    "ValidationError",
    "StrategyError",
    "ConfigurationError",
    "CacheKeyError",
    "ProviderFetchError",
]
