"""
Enrichment Models

Request and response values exchanged with the enrichment engine, plus the
strategy enumeration that governs how source and provider data combine.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.exceptions import ValidationError

T = TypeVar("T")


class EnrichmentStrategy(str, Enum):
    """How provider data is combined with the caller's source record"""

    ENHANCE = "ENHANCE"  # fill only missing/null source fields
    MERGE = "MERGE"  # provider wins on conflict, nulls never erase
    REPLACE = "REPLACE"  # provider data only
    RAW = "RAW"  # provider data untouched

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            upper = value.strip().upper()
            for member in cls:
                if member.value == upper:
                    return member
        return None


class EnrichmentRequest(BaseModel):
    """Immutable request for a single enrichment"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: str = Field(..., description="Type of enrichment to perform", examples=["company-profile"])
    strategy: EnrichmentStrategy = Field(..., description="Strategy for applying enrichment data")
    source_record: Optional[Any] = Field(None, description="Record to enrich (optional for REPLACE/RAW)")
    parameters: Dict[str, Any] = Field(..., description="Provider-specific parameters")
    tenant_id: Optional[UUID] = Field(None, description="Tenant identifier for multi-tenant routing")
    request_id: Optional[str] = Field(None, description="Request ID for tracing")
    initiator: Optional[str] = Field(None, description="User or system that initiated the request")
    metadata: Optional[Dict[str, str]] = None
    timeout_millis: Optional[int] = Field(None, gt=0, description="Fetch timeout in milliseconds")

    @field_validator("parameters", mode="before")
    @classmethod
    def parameters_required(cls, v):
        if v is None:
            raise ValueError("Parameters are required")
        return v

    # Parameter helpers

    def param(self, name: str, default: Any = None) -> Any:
        """Parameter value, or ``default`` when missing or null"""
        value = self.parameters.get(name)
        return default if value is None else value

    def has_param(self, name: str) -> bool:
        return name in self.parameters

    def require_param(self, name: str) -> Any:
        if name not in self.parameters:
            raise ValidationError(f"Required parameter '{name}' is missing", field=name)
        value = self.parameters[name]
        if value is None:
            raise ValidationError(f"Required parameter '{name}' is null", field=name)
        return value

    def param_as_str(self, name: str) -> Optional[str]:
        value = self.parameters.get(name)
        return None if value is None else str(value)

    def param_as_int(self, name: str) -> Optional[int]:
        value = self.parameters.get(name)
        if value is None:
            return None
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return int(str(value).strip())
        except ValueError as e:
            raise ValidationError(f"Parameter '{name}' is not an integer: {value!r}", field=name) from e

    def param_as_bool(self, name: str) -> Optional[bool]:
        value = self.parameters.get(name)
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() == "true"

    def source_record_as(self, cls: Type[T]) -> Optional[T]:
        """Source record typed as ``cls``; raises TypeError on a mismatch"""
        if self.source_record is None:
            return None
        if isinstance(self.source_record, cls):
            return self.source_record
        raise TypeError(f"Source record is not of type {cls.__name__}")


class EnrichmentResponse(BaseModel):
    """Outcome of a single enrichment"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    enriched_data: Optional[Any] = None
    raw_provider_response: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None
    provider_name: Optional[str] = None
    type: Optional[str] = None
    strategy_used: Optional[EnrichmentStrategy] = None
    confidence_score: Optional[float] = Field(None, ge=0.0, le=1.0)
    fields_enriched: Optional[int] = Field(None, ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[Dict[str, str]] = None
    request_id: Optional[str] = None
    cost: Optional[float] = None
    cost_currency: Optional[str] = None

    @classmethod
    def succeeded(
        cls,
        enriched_data: Any,
        provider_name: Optional[str],
        type: Optional[str],
        message: Optional[str] = None,
    ) -> "EnrichmentResponse":
        return cls(
            success=True,
            enriched_data=enriched_data,
            provider_name=provider_name,
            type=type,
            message=message,
        )

    @classmethod
    def failed(
        cls,
        type: Optional[str],
        provider_name: Optional[str],
        error: str,
    ) -> "EnrichmentResponse":
        return cls(
            success=False,
            type=type,
            provider_name=provider_name,
            error=error,
            message="Enrichment failed",
        )
