"""
Type definitions for the provider domain
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, NamedTuple, Optional, Union

from core.exceptions import ConfigurationError

# Reserved tenant meaning "visible to every tenant"
GLOBAL_TENANT_ID = uuid.UUID(int=0)

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class TieBreak(str, Enum):
    """How equal-priority providers are ordered during type+tenant resolution"""

    GREATEST_NAME = "greatest_name"  # lexicographically greatest provider name wins
    REGISTRATION_ORDER = "registration_order"  # first registered wins


def parse_tenant_id(value: Union[uuid.UUID, str, None]) -> Optional[uuid.UUID]:
    """Parse a tenant identifier, returning None when it is missing or malformed"""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (ValueError, AttributeError, TypeError):
        return None


@dataclass(frozen=True)
class ProviderDescriptor:
    """
    Static metadata for one registered provider and one enrichment type

    A provider supporting several types is registered once per type.
    """

    provider_name: str
    type: str
    tenant_id: uuid.UUID = GLOBAL_TENANT_ID
    priority: int = 0
    tags: FrozenSet[str] = field(default_factory=frozenset)
    enabled: bool = True
    description: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.provider_name, str) or not self.provider_name.strip():
            raise ConfigurationError("Provider name must be a non-empty string", setting="provider_name")
        if not isinstance(self.type, str) or not self.type.strip():
            raise ConfigurationError(
                f"Enrichment type must be a non-empty string for provider '{self.provider_name}'",
                setting="type",
            )

        tenant = parse_tenant_id(self.tenant_id)
        if tenant is None:
            raise ConfigurationError(
                f"Tenant id '{self.tenant_id}' for provider '{self.provider_name}' is not a valid UUID",
                setting="tenant_id",
            )

        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise ConfigurationError(
                f"Priority for provider '{self.provider_name}' must be an integer", setting="priority"
            )
        if not INT32_MIN <= self.priority <= INT32_MAX:
            raise ConfigurationError(
                f"Priority {self.priority} for provider '{self.provider_name}' is outside the 32-bit range",
                setting="priority",
            )

        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "tenant_id", tenant)
        object.__setattr__(self, "tags", frozenset(self.tags or ()))
        object.__setattr__(self, "enabled", bool(self.enabled))

    @property
    def identity(self) -> str:
        """Case-insensitive identity of the provider"""
        return self.provider_name.lower()

    @property
    def is_global(self) -> bool:
        return self.tenant_id == GLOBAL_TENANT_ID

    def visible_to(self, tenant_id: uuid.UUID) -> bool:
        """True when the descriptor serves the given tenant directly or globally"""
        return self.tenant_id == tenant_id or self.is_global


class RegisteredProvider(NamedTuple):
    """A descriptor paired with the handler that fetches its data"""

    descriptor: ProviderDescriptor
    handler: Any

    @property
    def provider_name(self) -> str:
        return self.descriptor.provider_name

    @property
    def type(self) -> str:
        return self.descriptor.type

    @property
    def priority(self) -> int:
        return self.descriptor.priority
