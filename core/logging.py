"""
Structured logging for the enrichment engine

JSON output in deployed environments, text output locally. Every record can
carry the engine context set through ``get_logger``/``LoggerAdapter``:
domain, provider, tenant, enrichment_type and request_id.
"""
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from core.config import settings

CONTEXT_FIELDS = ("domain", "provider", "tenant", "enrichment_type", "request_id")

# Libraries whose chatter follows settings.dependency_log_level
DEPENDENCY_LOGGERS = ("redis", "asyncio", "yaml")


def _context_value(value: Any) -> Any:
    # UUID tenants and enum values are logged in their string form
    if isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding app fields and normalised engine context"""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["app"] = settings.app_name
        log_record["environment"] = settings.environment
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is None:
                log_record.pop(field, None)
            else:
                log_record[field] = _context_value(value)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class ContextTextFormatter(logging.Formatter):
    """Text formatter appending engine context as key=value pairs"""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{field}={_context_value(getattr(record, field))}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        )
        return f"{line} [{context}]" if context else line


def setup_logging() -> None:
    """Configure the root logger from settings"""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)

    if settings.log_format == "json":
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s", timestamp=True)
    else:
        formatter = ContextTextFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    dependency_level = getattr(logging, settings.dependency_log_level)
    for name in DEPENDENCY_LOGGERS:
        logging.getLogger(name).setLevel(dependency_level)


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter attaching engine context to every record"""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        # Per-call extra wins over the adapter's bound context
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def with_context(self, **context) -> "LoggerAdapter":
        """Create a new logger with additional context"""
        new_extra = self.extra.copy()
        new_extra.update(context)
        return LoggerAdapter(self.logger, new_extra)

    def for_request(self, request: Any) -> "LoggerAdapter":
        """Bind tenant, enrichment type and request id of an enrichment request"""
        return self.with_context(
            tenant=getattr(request, "tenant_id", None),
            enrichment_type=getattr(request, "type", None),
            request_id=getattr(request, "request_id", None),
        )

    def for_provider(self, provider_name: str) -> "LoggerAdapter":
        return self.with_context(provider=provider_name)


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger carrying engine context

    Args:
        name: Logger name
        **context: Context fields included in every record (see CONTEXT_FIELDS)

    Example:
        logger = get_logger("providers.registry", domain="d0")
        logger.for_provider("Acme Data").info("Registered provider")
    """
    return LoggerAdapter(logging.getLogger(name), context)


setup_logging()
