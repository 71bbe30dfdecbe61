"""
Custom exceptions for the enrichment engine
Provides structured error handling across all domains
"""
from typing import Any, Dict, List, Optional


class EnrichmentEngineError(Exception):
    """Base exception for all enrichment engine errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(EnrichmentEngineError):
    """Raised when input validation fails

    Carries every collected message in ``errors`` so callers can report
    all problems with a request at once.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[str]] = None,
        **details,
    ):
        self.field = field
        self.errors = list(errors) if errors else [message]
        payload = {"field": field, **details} if field else dict(details)
        payload["errors"] = list(self.errors)
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=payload,
            status_code=400,
        )


class StrategyError(EnrichmentEngineError):
    """Raised when an enrichment strategy cannot be applied"""

    def __init__(self, message: str, strategy: Optional[str] = None, **details):
        self.strategy = strategy
        super().__init__(
            message=message,
            error_code="STRATEGY_ERROR",
            details={"strategy": strategy, **details} if strategy else details,
            status_code=422,
        )


class ConfigurationError(EnrichmentEngineError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, setting: Optional[str] = None):
        self.setting = setting
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting} if setting else {},
            status_code=500,
        )


class CacheKeyError(EnrichmentEngineError):
    """Raised when request parameters cannot be canonicalized into a cache key"""

    def __init__(self, message: str, **details):
        super().__init__(
            message=message,
            error_code="CACHE_KEY_ERROR",
            details=details,
            status_code=500,
        )


class ProviderFetchError(EnrichmentEngineError):
    """Raised when a provider fails to return data"""

    def __init__(self, provider: str, message: str, **details):
        self.provider = provider
        super().__init__(
            message=f"{provider}: {message}",
            error_code="PROVIDER_FETCH_ERROR",
            details={"provider": provider, **details},
            status_code=502,
        )
