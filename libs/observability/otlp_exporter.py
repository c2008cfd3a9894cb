"""
Factory functions for the OTel resource and OTLP exporters (gRPC logging, metrics, trace).
"""

from typing import Dict

from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.attributes.service_attributes import SERVICE_NAME

from libs.config import OTELConfig


def build_resource(cfg: OTELConfig) -> Resource:
    """
    Build the OTel resource describing this process.

    Args:
        cfg: OpenTelemetry settings.
    """
    return Resource.create({SERVICE_NAME: cfg.service_name, **cfg.resource_attrs()})


def _common_kwargs(cfg: OTELConfig) -> Dict[str, object]:
    return {
        "endpoint": cfg.otlp_endpoint,
        "headers": cfg.headers(),
        "insecure": True,
    }


def build_trace_exporter(cfg: OTELConfig) -> OTLPSpanExporter:
    return OTLPSpanExporter(**_common_kwargs(cfg))


def build_metric_exporter(cfg: OTELConfig) -> OTLPMetricExporter:
    return OTLPMetricExporter(**_common_kwargs(cfg))


def build_log_exporter(cfg: OTELConfig) -> OTLPLogExporter:
    return OTLPLogExporter(**_common_kwargs(cfg))
