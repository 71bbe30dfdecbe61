"""
Provider configuration loader

Builds provider registrations from a YAML document at startup. Each provider
entry may list several enrichment types and expands to one descriptor per type.

Example:
    providers:
      - name: Financial Data Provider
        types: [company-profile, credit-report]
        tenant_id: 00000000-0000-0000-0000-000000000000
        priority: 100
        tags: [financial]
        handler: financial
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from core.exceptions import ConfigurationError

from .registry import ProviderRegistry
from .types import GLOBAL_TENANT_ID, ProviderDescriptor, RegisteredProvider, TieBreak

logger = logging.getLogger(__name__)


def _entry_types(entry: Dict[str, Any], name: str) -> List[str]:
    types = entry.get("types")
    if types is None and "type" in entry:
        types = [entry["type"]]
    if isinstance(types, str):
        types = [types]
    if not types:
        raise ConfigurationError(f"Provider '{name}' declares no enrichment types", setting="types")
    return [str(t) for t in types]


def _entry_tags(entry: Dict[str, Any]) -> frozenset:
    tags = entry.get("tags") or ()
    if isinstance(tags, str):
        tags = [tags]
    return frozenset(str(t) for t in tags)


def parse_provider_config(data: Any, handlers: Mapping[str, Any]) -> List[RegisteredProvider]:
    """
    Turn a parsed configuration document into registrations

    Args:
        data: Parsed YAML (a mapping with a ``providers`` list)
        handlers: Handler objects keyed by the ``handler`` name used in the config

    Returns:
        Registrations in document order, one per (provider, type)

    Raises:
        ConfigurationError: If the document is malformed
    """
    if not isinstance(data, dict) or not isinstance(data.get("providers"), list):
        raise ConfigurationError("Provider configuration must contain a 'providers' list", setting="providers")

    registrations: List[RegisteredProvider] = []
    for index, entry in enumerate(data["providers"]):
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Provider entry #{index} must be a mapping", setting="providers")

        name = entry.get("name")
        if not name:
            raise ConfigurationError(f"Provider entry #{index} is missing a name", setting="name")

        handler_name = entry.get("handler", name)
        if handler_name not in handlers:
            raise ConfigurationError(
                f"Unknown handler '{handler_name}' for provider '{name}'", setting="handler"
            )
        handler = handlers[handler_name]

        for enrichment_type in _entry_types(entry, name):
            descriptor = ProviderDescriptor(
                provider_name=str(name),
                type=enrichment_type,
                tenant_id=entry.get("tenant_id") or GLOBAL_TENANT_ID,
                priority=entry.get("priority", 0),
                tags=_entry_tags(entry),
                enabled=entry.get("enabled", True),
                description=entry.get("description"),
            )
            registrations.append(RegisteredProvider(descriptor, handler))

    logger.info(f"Parsed {len(registrations)} provider registrations from configuration")
    return registrations


def load_provider_config(path: Union[str, Path], handlers: Mapping[str, Any]) -> List[RegisteredProvider]:
    """Load registrations from a YAML file"""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Provider configuration not found: {config_path}", setting="provider_config_path")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in provider configuration {config_path}: {e}", setting="provider_config_path"
        ) from e

    return parse_provider_config(data, handlers)


def build_registry(
    path: Union[str, Path],
    handlers: Mapping[str, Any],
    tie_break: Optional[Union[TieBreak, str]] = None,
) -> ProviderRegistry:
    """Load a provider configuration file and build the registry from it"""
    if tie_break is None:
        from core.config import get_settings

        tie_break = get_settings().provider_tie_break

    return ProviderRegistry(load_provider_config(path, handlers), tie_break=tie_break)
