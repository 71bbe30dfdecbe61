"""
Enrichment strategy application

Reconciles a caller-supplied source record with provider data according to an
EnrichmentStrategy. Structured values (mappings, pydantic models, dataclass
instances) are flattened to plain dicts before merging so that fields unknown
to the target shape survive the merge, then mapped to the target shape.

Strategies:
- ENHANCE: fill only missing/null source fields from the provider
- MERGE: provider values win on conflict, null provider values never erase
- REPLACE: provider data only, source ignored
- RAW: provider data returned untouched
"""

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import StrategyError

from .models import EnrichmentStrategy

logger = logging.getLogger(__name__)

Target = Optional[Type[Any]]


def to_map(value: Any) -> Dict[str, Any]:
    """
    Convert a structured value to a plain key/value dict

    Raises:
        TypeError: If the value has no key/value representation
    """
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to a key/value record")


def to_target(data: Dict[str, Any], target: Target) -> Any:
    """Map a plain dict onto the target shape (None means plain dict)"""
    if target is None or target is dict:
        return data
    if isinstance(target, type) and issubclass(target, BaseModel):
        return target.model_validate(data)
    if dataclasses.is_dataclass(target):
        names = {f.name for f in dataclasses.fields(target) if f.init}
        return target(**{k: v for k, v in data.items() if k in names})
    if isinstance(target, type) and issubclass(target, Mapping):
        return target(data)
    raise TypeError(f"Unsupported target shape: {target!r}")


def _is_instance_of_target(value: Any, target: Target) -> bool:
    # No target shape means the provider value is already the result
    if target is None:
        return True
    return isinstance(target, type) and isinstance(value, target)


class StrategyApplier:
    """
    Stateless implementation of the four enrichment strategies

    Every method is safe to call concurrently.
    """

    def apply(
        self,
        strategy: Union[EnrichmentStrategy, str],
        source: Any,
        provider_data: Any,
        target: Target = None,
    ) -> Any:
        """
        Apply a strategy to combine source and provider data

        Args:
            strategy: Strategy to apply
            source: Caller's source record (may be None)
            provider_data: Data fetched from the provider
            target: Target shape (pydantic model class, dataclass, or None for dict)

        Returns:
            The enriched value

        Raises:
            StrategyError: If the strategy is unknown or cannot be applied
        """
        try:
            strategy = EnrichmentStrategy(strategy)
        except ValueError as e:
            raise StrategyError(f"Unsupported enrichment strategy: {strategy}", strategy=str(strategy)) from e

        logger.debug(f"Applying enrichment strategy {strategy.value} for target {getattr(target, '__name__', 'dict')}")

        if strategy is EnrichmentStrategy.ENHANCE:
            return self.enhance(source, provider_data, target)
        if strategy is EnrichmentStrategy.MERGE:
            return self.merge(source, provider_data, target)
        if strategy is EnrichmentStrategy.REPLACE:
            return self.replace(provider_data, target)
        return self.raw(provider_data)

    def enhance(self, source: Any, provider_data: Any, target: Target = None) -> Any:
        """Fill only fields that are missing or null in the source"""
        if source is None:
            return self.replace(provider_data, target)

        try:
            result = to_map(source)
            for key, value in to_map(provider_data).items():
                if result.get(key) is None:
                    result[key] = value
            return to_target(result, target)
        except (TypeError, ValueError, PydanticValidationError) as e:
            logger.error(f"Error applying ENHANCE strategy: {e}")
            raise StrategyError("Failed to apply ENHANCE strategy", strategy="ENHANCE", cause=str(e)) from e

    def merge(self, source: Any, provider_data: Any, target: Target = None) -> Any:
        """Overlay non-null provider values onto the source"""
        if source is None:
            return self.replace(provider_data, target)

        try:
            result = to_map(source)
            for key, value in to_map(provider_data).items():
                if value is not None:
                    result[key] = value
            return to_target(result, target)
        except (TypeError, ValueError, PydanticValidationError) as e:
            logger.error(f"Error applying MERGE strategy: {e}")
            raise StrategyError("Failed to apply MERGE strategy", strategy="MERGE", cause=str(e)) from e

    def replace(self, provider_data: Any, target: Target = None) -> Any:
        """Use provider data only, converted when a concrete target shape is given"""
        if provider_data is None:
            raise StrategyError("Provider data cannot be null for REPLACE strategy", strategy="REPLACE")

        if _is_instance_of_target(provider_data, target):
            return provider_data

        try:
            return to_target(to_map(provider_data), target)
        except (TypeError, ValueError, PydanticValidationError) as e:
            logger.error(f"Error applying REPLACE strategy: {e}")
            raise StrategyError("Failed to apply REPLACE strategy", strategy="REPLACE", cause=str(e)) from e

    def raw(self, provider_data: Any) -> Any:
        """Return provider data exactly as received"""
        return provider_data

    def count_enriched_fields(self, source: Any, enriched: Any) -> int:
        """
        Count fields that were added or changed by enrichment

        Diagnostic only: conversion problems yield 0 instead of an error.
        """
        try:
            enriched_map = to_map(enriched)
            if source is None:
                return sum(1 for value in enriched_map.values() if value is not None)

            source_map = to_map(source)
        except (TypeError, ValueError) as e:
            logger.warning(f"Error counting enriched fields: {e}")
            return 0

        count = 0
        for key, enriched_value in enriched_map.items():
            source_value = source_map.get(key)
            if source_value is None:
                if enriched_value is not None:
                    count += 1
            elif source_value != enriched_value:
                count += 1
        return count


# Module-level applier for call sites that do not need their own instance
default_applier = StrategyApplier()


def apply_strategy(
    strategy: Union[EnrichmentStrategy, str],
    source: Any,
    provider_data: Any,
    target: Target = None,
) -> Any:
    return default_applier.apply(strategy, source, provider_data, target)


def count_enriched_fields(source: Any, enriched: Any) -> int:
    return default_applier.count_enriched_fields(source, enriched)
