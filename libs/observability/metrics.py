"""
Metrics initialization and meter helper for OpenTelemetry.
"""

from typing import List

from opentelemetry import metrics
from opentelemetry.metrics import Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader

from libs.config import OTELConfig
from libs.observability.otlp_exporter import build_metric_exporter, build_resource

METER_SCOPE: str = "avro-converter"

_initialized: bool = False


def init_metrics(cfg: OTELConfig) -> None:
    """
    Initialize the global MeterProvider, with an OTLP reader when export is enabled.

    Idempotent: the global MeterProvider can only be set once per process.
    """
    global _initialized

    if _initialized:
        return

    readers: List[MetricReader] = []
    if cfg.export_enabled:
        readers.append(PeriodicExportingMetricReader(build_metric_exporter(cfg)))

    metrics.set_meter_provider(MeterProvider(resource=build_resource(cfg), metric_readers=readers))
    _initialized = True


def get_meter() -> Meter:
    """
    Retrieve the converter Meter.

    The converter is usually embedded in a host pipeline, so this never starts
    an exporter on its own: until `init_metrics` runs, the returned Meter is the
    OpenTelemetry proxy and instruments created from it are no-ops.
    """
    return metrics.get_meter(METER_SCOPE)
