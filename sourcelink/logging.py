import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from opentelemetry import trace

from sourcelink.config import settings

# Correlates every log line emitted while serving one caller operation
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str:
    """Get or create a correlation ID for the current operation context."""
    correlation_id = correlation_id_var.get()
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
        correlation_id_var.set(correlation_id)
    return correlation_id


def add_correlation_id(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add correlation ID to log entries."""
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def add_service_info(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add service information to log entries."""
    event_dict["service"] = settings.OTEL_SERVICE_NAME
    event_dict["version"] = settings.OTEL_SERVICE_VERSION
    event_dict["environment"] = settings.ENVIRONMENT.value
    return event_dict


def get_trace_id() -> Optional[str]:
    """Get the current trace ID from OpenTelemetry context."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.trace_id == trace.INVALID_TRACE_ID:
        return None
    return f"{span_context.trace_id:032x}"


def get_span_id() -> Optional[str]:
    """Get the current span ID from OpenTelemetry context."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.span_id == trace.INVALID_SPAN_ID:
        return None
    return f"{span_context.span_id:016x}"


def add_trace_context(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add trace and span IDs to log entries."""
    trace_id = get_trace_id()
    span_id = get_span_id()

    if trace_id:
        event_dict["trace_id"] = trace_id
    if span_id:
        event_dict["span_id"] = span_id

    return event_dict


def configure_logging() -> None:
    """Configure structured logging with structlog."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.value),
    )

    common_processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_correlation_id,
        add_trace_context,
        add_service_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.LOG_FORMAT == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT.value == "development")

    structlog.configure(
        processors=common_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    # Vendor clients are chatty at INFO
    if settings.ENVIRONMENT.value == "production":
        for noisy in ("sqlalchemy.engine", "snowflake.connector", "botocore", "httpx"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


class CentralizedLogger:
    """Structured logger that mirrors log events onto the active OpenTelemetry span."""

    def __init__(self, name: str = __name__):
        self.name = name
        self.logger = structlog.get_logger(name)

    def _log_with_trace(self, level: str, event: str, **kwargs):
        span = trace.get_current_span()

        if span.is_recording():
            attributes = {
                key: self._convert_to_safe_attribute(value) for key, value in kwargs.items() if key != "exc_info"
            }
            span.add_event(f"[{level.upper()}] {event}", attributes=attributes)
            if level == "error":
                span.set_status(trace.Status(trace.StatusCode.ERROR, event))

        getattr(self.logger, level)(event, **kwargs)

    @staticmethod
    def _convert_to_safe_attribute(value):
        """Convert value to a type accepted as a span attribute."""
        if value is None:
            return "null"
        if isinstance(value, (bool, float)):
            return value
        if isinstance(value, int):
            # protobuf int64 bounds
            return str(value) if (value > 2**63 - 1 or value < -(2**63)) else value
        return str(value)[:500]

    def debug(self, event: str, **kwargs):
        self._log_with_trace("debug", event, **kwargs)

    def info(self, event: str, **kwargs):
        self._log_with_trace("info", event, **kwargs)

    def warning(self, event: str, **kwargs):
        self._log_with_trace("warning", event, **kwargs)

    def error(self, event: str, **kwargs):
        self._log_with_trace("error", event, **kwargs)

    def exception(self, event: str, **kwargs):
        """Log an error with the active exception's traceback."""
        kwargs["exc_info"] = True
        self._log_with_trace("error", event, **kwargs)

        span = trace.get_current_span()
        _, exc_value, _ = sys.exc_info()
        if exc_value is not None and span.is_recording():
            span.record_exception(exc_value)

    def bind(self, **kwargs) -> "CentralizedLogger":
        """Return a new logger instance with added context."""
        bound = CentralizedLogger(self.name)
        bound.logger = self.logger.bind(**kwargs)
        return bound


def get_logger(name: str) -> CentralizedLogger:
    """Get a configured centralized logger instance."""
    return CentralizedLogger(name)
