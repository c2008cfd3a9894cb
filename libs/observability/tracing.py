"""
OpenTelemetry tracing initialization and tracer helper.
"""

from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Tracer

from libs.config import OTELConfig
from libs.observability.otlp_exporter import build_resource, build_trace_exporter

TRACER_SCOPE: str = "avro-converter"


def init_tracing(cfg: OTELConfig) -> None:
    """
    Initialize the global TracerProvider.

    Spans are exported over OTLP only when `cfg.export_enabled` is set;
    otherwise the provider still records spans so trace ids reach the logs.
    """
    provider = TracerProvider(resource=build_resource(cfg))
    if cfg.export_enabled:
        provider.add_span_processor(BatchSpanProcessor(build_trace_exporter(cfg)))
    trace.set_tracer_provider(provider)


def get_tracer(name: Optional[str] = None) -> Tracer:
    """
    Get a Tracer instance for the given instrumentation scope.

    Args:
        name: Logical scope name for the tracer. Defaults to the converter scope.
    """
    return trace.get_tracer(name or TRACER_SCOPE)
