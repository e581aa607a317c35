"""
Structured JSON logging with optional OpenTelemetry log export.

This module configures:
- stdout JSON logs, one object per line
- trace/span correlation in every log line
- an OTLP log pipeline (LoggerProvider + LogExporter) when export is on
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor

from libs.observability.otlp_exporter import (
    DEFAULT_SERVICE_NAME,
    build_log_exporter,
    build_resource,
)

# LogRecord attributes that are never copied into the JSON payload.
_RESERVED = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JsonTraceFormatter(logging.Formatter):
    """
    JSON formatter including trace_id and span_id.

    Each line carries level, logger, message, time, service, the active
    trace/span ids (or null) and every field passed via `extra=`. Extra
    values that are not JSON-serializable are rendered with str().
    """

    def __init__(self, service_name: Optional[str] = None) -> None:
        super().__init__()
        self._service = service_name or DEFAULT_SERVICE_NAME

    def format(self, record: logging.LogRecord) -> str:
        span_ctx = trace.get_current_span().get_span_context()
        traced = span_ctx.is_valid

        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "trace_id": f"{span_ctx.trace_id:032x}" if traced else None,
            "span_id": f"{span_ctx.span_id:016x}" if traced else None,
            "service": self._service,
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key.startswith("_") or key in payload or key in _RESERVED:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            payload[key] = value

        return json.dumps(payload, separators=(",", ":"))


def init_logging(
    level: int = logging.INFO,
    export: bool = False,
    endpoint: Optional[str] = None,
    service_name: Optional[str] = None,
    resource_attributes: Optional[str] = None,
) -> None:
    """
    Configure the root logger for the current process.

    Args:
        level: Minimum log level for the root logger.
        export: Whether to attach the OTLP log handler.
        endpoint: Optional collector endpoint override.
        service_name: Service name stamped on every line and on the resource.
        resource_attributes: Extra OTel resource attributes as `k=v,...`.
    """
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(JsonTraceFormatter(service_name))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(stdout_handler)
    root.setLevel(level)

    if not export:
        return

    logger_provider = LoggerProvider(resource=build_resource(service_name, resource_attributes))
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(build_log_exporter(endpoint))
    )
    root.addHandler(LoggingHandler(level=level, logger_provider=logger_provider))


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a module- or component-level logger.

    Args:
        name: Optional logger name. If None, the root logger is returned.
    """
    return logging.getLogger(name)
