"""
Canonical hashing of request parameters

Parameters are serialized to compact JSON with sorted keys and hashed with
SHA-256, so two parameter maps that differ only in insertion order always
hash identically.
"""
import base64
import dataclasses
import hashlib
import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel

from core.exceptions import CacheKeyError

EMPTY_PARAMETERS_TOKEN = "empty"


def _json_default(value: Any) -> Any:
    """Deterministic JSON rendering for values json cannot encode natively"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=lambda item: json.dumps(item, sort_keys=True, default=_json_default))
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


class KeyCanonicalizer:
    """Turns a parameter map into a stable, URL-safe digest"""

    def serialize(self, parameters: Dict[str, Any]) -> str:
        """
        Canonical text form of the parameters

        Raises:
            CacheKeyError: If a value cannot be serialized
        """
        try:
            return json.dumps(
                parameters,
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
                default=_json_default,
            )
        except (TypeError, ValueError, RecursionError) as e:
            raise CacheKeyError(f"Failed to serialize parameters for hashing: {e}") from e

    def canonicalize(self, parameters: Optional[Dict[str, Any]]) -> str:
        """
        Hash parameters into a cache key segment

        Args:
            parameters: Request parameters (may be None or empty)

        Returns:
            ``"empty"`` for no parameters, otherwise the URL-safe base64
            (unpadded) SHA-256 digest of the canonical serialization
        """
        if not parameters:
            return EMPTY_PARAMETERS_TOKEN

        serialized = self.serialize(parameters)

        # hashlib objects are not shared between calls
        digest = hashlib.sha256(serialized.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
