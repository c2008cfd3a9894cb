"""
Structured JSON logging with an optional OpenTelemetry log pipeline.

This module configures:
- stdout JSON logs
- OpenTelemetry log pipeline (LoggerProvider + LogExporter) when export is enabled
- Trace/span correlation in every log line
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor

from libs.config import OTELConfig
from libs.observability.otlp_exporter import build_log_exporter, build_resource

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


class JsonTraceFormatter(logging.Formatter):
    """
    JSON formatter including trace_id and span_id.

    The formatter emits a single-line JSON object with level, logger, message,
    time, service, trace/span ids when a span is active, the formatted
    exception if any, and every JSON-serializable `extra` field.
    """

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        span_ctx = trace.get_current_span().get_span_context()

        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "service": self._service_name,
        }
        if span_ctx.is_valid:
            payload["trace_id"] = f"{span_ctx.trace_id:032x}"
            payload["span_id"] = f"{span_ctx.span_id:016x}"

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_") or key in payload:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = repr(value)
            payload[key] = value

        return json.dumps(payload, separators=(",", ":"))


def init_logging(level: int = logging.INFO, cfg: Optional[OTELConfig] = None) -> None:
    """
    Configure the root logger for the current process.

    Args:
        level: Minimum log level for the root logger.
        cfg: OpenTelemetry settings; defaults to environment-derived settings.
    """
    cfg = cfg or OTELConfig()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(JsonTraceFormatter(cfg.service_name))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(stdout_handler)
    root.setLevel(level)

    if not cfg.export_enabled:
        return

    logger_provider = LoggerProvider(resource=build_resource(cfg))
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(build_log_exporter(cfg)))
    root.addHandler(LoggingHandler(level=level, logger_provider=logger_provider))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a module- or service-level logger.

    This helper is the canonical way for application code to obtain a logger.

    Args:
        name: Optional logger name. If None, the root logger is returned.
    """
    return logging.getLogger(name)
