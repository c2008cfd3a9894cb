"""
OpenTelemetry metric instruments for schema registry lookups.

We track:
- Registry fetches (one per network round trip)
- Registry fetch latency
"""

from typing import Tuple

from opentelemetry.metrics import Counter, Histogram

from libs.observability.metrics import get_meter


def get_registry_instruments() -> Tuple[Counter, Histogram]:
    """
    Create OpenTelemetry instruments for the schema registry client.

    Returns:
        A tuple containing:
            fetch_counter: Counter for registry lookups issued.
            fetch_latency_hist: Histogram for registry lookup latency (ms).
    """
    meter = get_meter()

    fetch_counter: Counter = meter.create_counter(
        name="schema_registry_fetches",
        description="Count of schema registry latest-version lookups",
        unit="1",
    )

    fetch_latency_hist: Histogram = meter.create_histogram(
        name="schema_registry_fetch_latency_ms",
        description="Latency of schema registry lookups in milliseconds",
        unit="ms",
    )

    return fetch_counter, fetch_latency_hist
