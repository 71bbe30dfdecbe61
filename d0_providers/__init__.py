"""
D0 Providers Domain

Provider descriptors, the read-only provider registry and the fetch port
through which provider implementations are reached.
"""

from .port import CallableProvider, ProviderFetchPort
from .registry import ProviderRegistry
from .types import GLOBAL_TENANT_ID, ProviderDescriptor, RegisteredProvider, TieBreak, parse_tenant_id

__all__ = [
    "CallableProvider",
    "ProviderFetchPort",
    "ProviderRegistry",
    "GLOBAL_TENANT_ID",
    "ProviderDescriptor",
    "RegisteredProvider",
    "TieBreak",
    "parse_tenant_id",
]
