"""
Tests for the exception hierarchy and structured logging helpers
"""
import json
import logging
import uuid

import pytest

from core.config import settings
from core.exceptions import (
    CacheKeyError,
    ConfigurationError,
    EnrichmentEngineError,
    ProviderFetchError,
    StrategyError,
    ValidationError,
)
from core.logging import DEPENDENCY_LOGGERS, ContextTextFormatter, CustomJsonFormatter, LoggerAdapter, get_logger
from d2_enrichment.models import EnrichmentRequest, EnrichmentStrategy


class TestExceptions:
    def test_base_error_defaults(self):
        error = EnrichmentEngineError("Something broke")

        assert str(error) == "Something broke"
        assert error.error_code == "EnrichmentEngineError"
        assert error.status_code == 500
        assert error.to_dict() == {"error": "EnrichmentEngineError", "message": "Something broke", "details": {}}

    def test_validation_error_collects_messages(self):
        error = ValidationError("Invalid request", errors=["a is missing", "b is null"])

        assert error.errors == ["a is missing", "b is null"]
        assert error.status_code == 400
        assert error.to_dict()["details"] == {"errors": ["a is missing", "b is null"]}

    def test_validation_error_with_field(self):
        error = ValidationError("Parameter 'n' is not an integer", field="n")

        assert error.field == "n"
        assert error.errors == ["Parameter 'n' is not an integer"]
        assert error.details["field"] == "n"

    def test_strategy_error(self):
        error = StrategyError("Failed to apply MERGE strategy", strategy="MERGE", cause="bad shape")

        assert error.strategy == "MERGE"
        assert error.status_code == 422
        assert error.details == {"strategy": "MERGE", "cause": "bad shape"}

    def test_configuration_error(self):
        error = ConfigurationError("Priority out of range", setting="priority")

        assert error.error_code == "CONFIGURATION_ERROR"
        assert error.details == {"setting": "priority"}

    def test_provider_fetch_error(self):
        error = ProviderFetchError("Acme", "timeout", attempt=2)

        assert error.message == "Acme: timeout"
        assert error.provider == "Acme"
        assert error.details == {"provider": "Acme", "attempt": 2}
        assert error.status_code == 502

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("x"),
            StrategyError("x"),
            ConfigurationError("x"),
            CacheKeyError("x"),
            ProviderFetchError("p", "x"),
        ],
    )
    def test_hierarchy(self, error):
        assert isinstance(error, EnrichmentEngineError)


class TestLogging:
    def test_get_logger_carries_context(self):
        logger = get_logger("enrichment.test", domain="d2")

        assert isinstance(logger, LoggerAdapter)
        assert logger.extra == {"domain": "d2"}

    def test_with_context_does_not_modify_parent(self):
        logger = get_logger("enrichment.test", domain="d2")

        child = logger.with_context(provider="Acme")

        assert child.extra == {"domain": "d2", "provider": "Acme"}
        assert logger.extra == {"domain": "d2"}

    def test_process_merges_extra(self):
        logger = get_logger("enrichment.test", domain="d2")

        msg, kwargs = logger.process("hello", {"extra": {"request_id": "r1"}})

        assert msg == "hello"
        assert kwargs["extra"] == {"request_id": "r1", "domain": "d2"}

    def test_json_formatter_adds_fields(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord("enrichment.test", logging.INFO, __file__, 1, "resolved provider", None, None)

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "resolved provider"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "enrichment.test"
        assert payload["app"] == "EnrichmentEngine"
        assert "timestamp" in payload

    def test_json_formatter_emits_engine_context(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord("enrichment.test", logging.INFO, __file__, 1, "fetched", None, None)
        record.domain = "d2"
        record.provider = "Acme"
        record.tenant = uuid.UUID("550e8400-e29b-41d4-a716-446655440001")
        record.request_id = None

        payload = json.loads(formatter.format(record))

        assert payload["domain"] == "d2"
        assert payload["provider"] == "Acme"
        assert payload["tenant"] == "550e8400-e29b-41d4-a716-446655440001"
        assert "request_id" not in payload

    def test_text_formatter_appends_context(self):
        formatter = ContextTextFormatter("%(levelname)s - %(message)s")
        record = logging.LogRecord("enrichment.test", logging.WARNING, __file__, 1, "slow provider", None, None)
        record.provider = "Acme"
        record.enrichment_type = "company-profile"

        assert formatter.format(record) == "WARNING - slow provider [provider=Acme enrichment_type=company-profile]"

    def test_text_formatter_without_context(self):
        formatter = ContextTextFormatter("%(message)s")
        record = logging.LogRecord("enrichment.test", logging.INFO, __file__, 1, "ready", None, None)

        assert formatter.format(record) == "ready"

    def test_for_request_and_provider(self):
        request = EnrichmentRequest(
            type="company-profile",
            strategy=EnrichmentStrategy.MERGE,
            parameters={},
            tenant_id="550e8400-e29b-41d4-a716-446655440001",
            request_id="req-7",
        )

        logger = get_logger("enrichment.test", domain="d2").for_request(request).for_provider("Acme")

        assert logger.extra == {
            "domain": "d2",
            "tenant": uuid.UUID("550e8400-e29b-41d4-a716-446655440001"),
            "enrichment_type": "company-profile",
            "request_id": "req-7",
            "provider": "Acme",
        }

    def test_call_extra_overrides_bound_context(self):
        logger = get_logger("enrichment.test", provider="Acme")

        _, kwargs = logger.process("hello", {"extra": {"provider": "Other"}})

        assert kwargs["extra"] == {"provider": "Other"}

    def test_dependency_loggers_follow_settings(self):
        for name in DEPENDENCY_LOGGERS:
            assert logging.getLogger(name).level == getattr(logging, settings.dependency_log_level)
