"""
OpenTelemetry tracing initialization and tracer helper.
"""

from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Tracer

from libs.observability.otlp_exporter import (
    DEFAULT_SERVICE_NAME,
    build_resource,
    build_trace_exporter,
)


def init_tracing(
    export: bool = False,
    endpoint: Optional[str] = None,
    service_name: Optional[str] = None,
    resource_attributes: Optional[str] = None,
) -> None:
    """
    Install the global TracerProvider.

    Spans are always recorded so log lines carry trace ids; they are only
    shipped over OTLP when `export` is True.
    """
    provider = TracerProvider(resource=build_resource(service_name, resource_attributes))
    if export:
        provider.add_span_processor(BatchSpanProcessor(build_trace_exporter(endpoint)))
    trace.set_tracer_provider(provider)


def get_tracer(name: str | None = None) -> Tracer:
    """Tracer for the given scope; a no-op proxy until init_tracing() runs."""
    return trace.get_tracer(name or DEFAULT_SERVICE_NAME)
