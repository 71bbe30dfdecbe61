"""
Fluent precondition checks for enrichment requests

Example:
    RequestValidator.of(request) \\
        .require_type() \\
        .require_param("company_id") \\
        .require_param_matching("tax_id", r"[A-Z]{2}\\d{8}") \\
        .require_strategy(EnrichmentStrategy.ENHANCE, EnrichmentStrategy.MERGE) \\
        .validate()

All failures are collected and reported together in one ValidationError.
"""

import logging
import re
from typing import Any, List, Pattern, Union

from core.exceptions import ValidationError

from .models import EnrichmentRequest, EnrichmentStrategy

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Enrichment request validation failed: "


class RequestValidator:
    """Collects validation failures for one request"""

    def __init__(self, request: EnrichmentRequest):
        self.request = request
        self._errors: List[str] = []

    @classmethod
    def of(cls, request: EnrichmentRequest) -> "RequestValidator":
        return cls(request)

    @property
    def _parameters(self) -> dict:
        return getattr(self.request, "parameters", None) or {}

    def _check_present(self, name: str) -> bool:
        params = self._parameters
        if name not in params:
            self._errors.append(f"Required parameter '{name}' is missing")
            return False
        if params[name] is None:
            self._errors.append(f"Required parameter '{name}' is null")
            return False
        return True

    def require_param(self, name: str) -> "RequestValidator":
        self._check_present(name)
        return self

    def require_param_matching(self, name: str, pattern: Union[str, Pattern]) -> "RequestValidator":
        """Parameter must be present and its string form must fully match ``pattern``"""
        if not self._check_present(name):
            return self

        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        value = self._parameters[name]
        if not compiled.fullmatch(str(value)):
            self._errors.append(f"Parameter '{name}' does not match required pattern: {compiled.pattern}")
        return self

    def require_param_of_type(self, name: str, *expected: type) -> "RequestValidator":
        """Parameter must be present and an instance of one of ``expected``"""
        if not self._check_present(name):
            return self

        value = self._parameters[name]
        if not _matches_type(value, expected):
            expected_names = " or ".join(t.__name__ for t in expected)
            self._errors.append(
                f"Parameter '{name}' must be of type {expected_names} but was {type(value).__name__}"
            )
        return self

    def require_source_record(self) -> "RequestValidator":
        if self.request.source_record is None:
            self._errors.append("Source record is required but was null")
        return self

    def require_type(self) -> "RequestValidator":
        enrichment_type = self.request.type
        if not isinstance(enrichment_type, str) or not enrichment_type.strip():
            self._errors.append("Enrichment type is required")
        return self

    def require_strategy(self, *allowed: Union[EnrichmentStrategy, str]) -> "RequestValidator":
        """Strategy must be set and, when ``allowed`` is given, one of those strategies (names accepted)"""
        strategy = self.request.strategy
        if strategy is None:
            self._errors.append("Enrichment strategy is required")
            return self
        if not allowed:
            return self

        allowed_strategies = []
        for value in allowed:
            try:
                allowed_strategies.append(EnrichmentStrategy(value))
            except ValueError:
                self._errors.append(f"Unknown enrichment strategy in allow-list: {value}")
                return self

        if strategy not in allowed_strategies:
            allowed_names = ", ".join(s.value for s in allowed_strategies)
            self._errors.append(f"Enrichment strategy must be one of [{allowed_names}] but was {strategy.value}")
        return self

    def require_tenant_id(self) -> "RequestValidator":
        if self.request.tenant_id is None:
            self._errors.append("Tenant ID is required")
        return self

    def require(self, condition: bool, message: str) -> "RequestValidator":
        if not condition:
            self._errors.append(message)
        return self

    def is_valid(self) -> bool:
        return not self._errors

    @property
    def errors(self) -> List[str]:
        return list(self._errors)

    def validate(self) -> None:
        """
        Raise if any check failed

        Raises:
            ValidationError: Carrying every collected message in ``errors``
        """
        if self._errors:
            message = ERROR_PREFIX + "; ".join(self._errors)
            logger.warning(message)
            raise ValidationError(message, errors=self._errors)


def _matches_type(value: Any, expected: tuple) -> bool:
    # bool is an int subclass but never satisfies an int constraint on its own
    if isinstance(value, bool) and int in expected:
        return any(t is not int and isinstance(value, t) for t in expected)
    return isinstance(value, expected)
