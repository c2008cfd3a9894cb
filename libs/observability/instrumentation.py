"""
Observability bootstrap utilities for logging, tracing, and metrics.

This module provides:
- a unified initialization entrypoint (`init_observability`)
- stable metric instruments for the record converter
"""

import logging
from typing import Optional, Tuple

from opentelemetry.metrics import Counter, Histogram

from libs.config import AppConfig, OTELConfig
from libs.observability.logging import init_logging
from libs.observability.metrics import get_meter, init_metrics
from libs.observability.tracing import init_tracing


def init_observability(level: int = logging.INFO, cfg: Optional[OTELConfig] = None) -> None:
    """
    Initialize logging, tracing, and metrics for the current service.

    This should typically be called once during service startup
    (e.g., in a bootstrap module or `if __name__ == "__main__"`).

    Args:
        level: Logging verbosity level for the root logger.
        cfg: OpenTelemetry settings; defaults to the global AppConfig.
    """
    cfg = cfg or AppConfig.load().otel
    init_logging(level=level, cfg=cfg)
    init_tracing(cfg)
    init_metrics(cfg)


def get_converter_instruments() -> Tuple[Counter, Counter, Counter, Histogram]:
    """
    Create OpenTelemetry instruments for record conversion.

    Returns:
        A tuple containing:
            converted_counter: Counter for successfully converted payloads.
            tombstone_counter: Counter for null payloads passed through.
            failure_counter: Counter for failed conversions, by error type.
            latency_histogram: Histogram for conversion latency (ms).
    """
    meter = get_meter()

    converted: Counter = meter.create_counter(
        name="records_converted",
        description="Count of payloads decoded and translated into records",
        unit="1",
    )

    tombstones: Counter = meter.create_counter(
        name="records_tombstoned",
        description="Count of null payloads emitted as tombstones",
        unit="1",
    )

    failures: Counter = meter.create_counter(
        name="records_convert_failed",
        description="Count of failed conversions",
        unit="1",
    )

    latency: Histogram = meter.create_histogram(
        name="record_convert_latency_ms",
        description="Conversion latency in milliseconds",
        unit="ms",
    )

    return converted, tombstones, failures, latency
