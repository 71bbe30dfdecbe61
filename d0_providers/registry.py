"""
Provider registry

Indexes a fixed collection of (descriptor, handler) registrations and answers
lookup queries. The registry is built once at startup and never changes, so
every lookup is a plain read over immutable structures and needs no locking.
"""
import uuid
from types import MappingProxyType
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from core.logging import get_logger

from .types import GLOBAL_TENANT_ID, ProviderDescriptor, RegisteredProvider, TieBreak, parse_tenant_id

TenantLike = Union[uuid.UUID, str, None]


class ProviderRegistry:
    """Read-only registry of enrichment providers"""

    def __init__(
        self,
        registrations: Iterable[Union[RegisteredProvider, Tuple[ProviderDescriptor, Any]]] = (),
        tie_break: Union[TieBreak, str] = TieBreak.GREATEST_NAME,
    ):
        self.logger = get_logger("providers.registry", domain="d0")
        self.tie_break = TieBreak(tie_break)

        entries: List[RegisteredProvider] = []
        for registration in registrations:
            descriptor, handler = registration
            if not isinstance(descriptor, ProviderDescriptor):
                raise TypeError(f"Expected ProviderDescriptor, got {type(descriptor).__name__}")
            entries.append(RegisteredProvider(descriptor, handler))

        self._entries: Tuple[RegisteredProvider, ...] = tuple(entries)

        # Secondary indexes keep construction order inside every bucket
        by_name: dict = {}
        by_type: dict = {}
        for entry in self._entries:
            by_name.setdefault(entry.descriptor.identity, []).append(entry)
            by_type.setdefault(entry.descriptor.type, []).append(entry)

        self._by_name = MappingProxyType({k: tuple(v) for k, v in by_name.items()})
        self._by_type = MappingProxyType({k: tuple(v) for k, v in by_type.items()})
        self._order = MappingProxyType({id(entry): index for index, entry in enumerate(self._entries)})

        self.logger.info(
            f"Provider registry initialized with {len(self._entries)} registrations "
            f"({len(self._by_name)} providers, {len(self._by_type)} types, tie-break={self.tie_break.value})"
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_by_provider(self, provider_name: Optional[str]) -> Optional[RegisteredProvider]:
        """
        Find a registration by provider name (case-insensitive)

        Args:
            provider_name: Provider name to look up

        Returns:
            The first registration with that name, or None
        """
        if not isinstance(provider_name, str) or not provider_name:
            return None
        matches = self._by_name.get(provider_name.lower())
        return matches[0] if matches else None

    def resolve_by_type(self, enrichment_type: Optional[str]) -> Optional[RegisteredProvider]:
        """
        Find the first registration (construction order) for a type, ignoring tenant

        Only meant for requests that carry no tenant context.
        """
        if not isinstance(enrichment_type, str) or not enrichment_type:
            return None
        matches = self._by_type.get(enrichment_type)
        return matches[0] if matches else None

    def resolve_by_type_and_tenant(
        self, enrichment_type: Optional[str], tenant_id: TenantLike
    ) -> Optional[RegisteredProvider]:
        """
        Select the best enabled provider for a type visible to a tenant

        Candidates are registered for the tenant itself or for the global
        tenant. The highest priority wins; equal priorities are ordered by
        the configured tie-break (greatest provider name by default).

        Returns:
            The winning registration, or None when nothing matches
        """
        candidates = self.candidates_for(enrichment_type, tenant_id)
        if not candidates:
            self.logger.debug(f"No provider for type '{enrichment_type}' and tenant '{tenant_id}'")
            return None

        winner = max(candidates, key=self._ranking_key)
        self.logger.debug(
            f"Resolved provider '{winner.descriptor.provider_name}' "
            f"for type '{enrichment_type}' and tenant '{tenant_id}' "
            f"from {len(candidates)} candidates"
        )
        return winner

    def candidates_for(self, enrichment_type: Optional[str], tenant_id: TenantLike) -> List[RegisteredProvider]:
        """Enabled registrations for a type that are visible to a tenant"""
        if not isinstance(enrichment_type, str) or not enrichment_type:
            return []
        tenant = parse_tenant_id(tenant_id)
        if tenant is None:
            return []

        return [
            entry
            for entry in self._by_type.get(enrichment_type, ())
            if entry.descriptor.enabled and entry.descriptor.visible_to(tenant)
        ]

    def _ranking_key(self, entry: RegisteredProvider) -> tuple:
        descriptor = entry.descriptor
        if self.tie_break is TieBreak.REGISTRATION_ORDER:
            return (descriptor.priority, -self._order[id(entry)])
        return (descriptor.priority, descriptor.provider_name)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def list_all(self) -> List[ProviderDescriptor]:
        """All registered descriptors in construction order"""
        return [entry.descriptor for entry in self._entries]

    def list_registrations(self) -> Sequence[RegisteredProvider]:
        return self._entries

    def list_provider_names(self) -> List[str]:
        """Distinct provider names (first spelling seen wins)"""
        return [matches[0].descriptor.provider_name for matches in self._by_name.values()]

    def list_types(self) -> List[str]:
        """Distinct enrichment types"""
        return list(self._by_type.keys())

    def list_by_tenant(self, tenant_id: TenantLike) -> List[ProviderDescriptor]:
        """Descriptors registered for exactly this tenant"""
        tenant = parse_tenant_id(tenant_id)
        if tenant is None:
            return []
        return [entry.descriptor for entry in self._entries if entry.descriptor.tenant_id == tenant]

    def list_for_type(self, enrichment_type: Optional[str]) -> List[ProviderDescriptor]:
        """Every descriptor registered for a type, regardless of tenant or enabled flag"""
        if not isinstance(enrichment_type, str) or not enrichment_type:
            return []
        return [entry.descriptor for entry in self._by_type.get(enrichment_type, ())]

    def has_provider(self, provider_name: Optional[str]) -> bool:
        return self.resolve_by_provider(provider_name) is not None

    def has_type(self, enrichment_type: Optional[str]) -> bool:
        return self.resolve_by_type(enrichment_type) is not None

    def count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegisteredProvider]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"ProviderRegistry(registrations={len(self._entries)}, tie_break={self.tie_break.value!r})"


__all__ = ["ProviderRegistry", "GLOBAL_TENANT_ID"]
