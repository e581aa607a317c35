"""
Process-wide MeterProvider for provisioning metrics.
"""

from typing import Optional

from opentelemetry import metrics
from opentelemetry.metrics import Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

from libs.observability.otlp_exporter import (
    DEFAULT_SERVICE_NAME,
    build_metric_exporter,
    build_resource,
)

METER_NAME = "pipestack.provisioner"

_initialized: bool = False


def init_metrics(
    export: bool = False,
    endpoint: Optional[str] = None,
    service_name: Optional[str] = None,
    resource_attributes: Optional[str] = None,
) -> None:
    """
    Install the global MeterProvider once per process.

    Without `export` the provider has no readers and instruments only
    aggregate in memory.
    """
    global _initialized

    if _initialized:
        return

    readers = [PeriodicExportingMetricReader(build_metric_exporter(endpoint))] if export else []
    metrics.set_meter_provider(
        MeterProvider(
            resource=build_resource(service_name or DEFAULT_SERVICE_NAME, resource_attributes),
            metric_readers=readers,
        )
    )
    _initialized = True


def get_meter() -> Meter:
    """
    Meter for provisioning instruments.

    Instruments created before init_metrics() are proxies and start
    recording once the provider is installed.
    """
    return metrics.get_meter(METER_NAME)
