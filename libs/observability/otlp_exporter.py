"""
OTLP/gRPC wiring shared by the log, trace and metric pipelines.

Collector endpoint and headers default to the standard OTEL_EXPORTER_OTLP_*
variables. Plain `http://` endpoints are dialled without TLS.
"""

import os
from typing import Dict, Optional

from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.attributes.service_attributes import SERVICE_NAME

DEFAULT_ENDPOINT: str = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
DEFAULT_SERVICE_NAME: str = os.getenv("OTEL_SERVICE_NAME", "pipestack-provisioner")


def parse_key_values(raw: Optional[str]) -> Dict[str, str]:
    """Parse `k1=v1,k2=v2`; pairs without `=` or with an empty key are dropped."""
    if not raw:
        return {}
    parsed: Dict[str, str] = {}
    for item in raw.split(","):
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        if key.strip():
            parsed[key.strip()] = value.strip()
    return parsed


def build_resource(
    service_name: Optional[str] = None,
    resource_attributes: Optional[str] = None,
) -> Resource:
    """
    Build the OTel resource shared by logs, traces and metrics.

    Args:
        service_name: `service.name`; falls back to OTEL_SERVICE_NAME.
        resource_attributes: Extra attributes as `k=v,...`; falls back to
            OTEL_RESOURCE_ATTRIBUTES.
    """
    raw = resource_attributes if resource_attributes is not None else os.getenv("OTEL_RESOURCE_ATTRIBUTES")
    attrs = parse_key_values(raw)
    return Resource.create({**attrs, SERVICE_NAME: service_name or DEFAULT_SERVICE_NAME})


def exporter_kwargs(endpoint: Optional[str] = None) -> Dict[str, object]:
    target = endpoint or DEFAULT_ENDPOINT
    return {
        "endpoint": target,
        "headers": parse_key_values(os.getenv("OTEL_EXPORTER_OTLP_HEADERS")) or None,
        "insecure": not target.startswith("https://"),
    }


def build_trace_exporter(endpoint: Optional[str] = None) -> OTLPSpanExporter:
    return OTLPSpanExporter(**exporter_kwargs(endpoint))


def build_metric_exporter(endpoint: Optional[str] = None) -> OTLPMetricExporter:
    return OTLPMetricExporter(**exporter_kwargs(endpoint))


def build_log_exporter(endpoint: Optional[str] = None) -> OTLPLogExporter:
    return OTLPLogExporter(**exporter_kwargs(endpoint))
