"""
Observability bootstrap utilities for logging, tracing, and metrics.

This module provides:
- a unified initialization entrypoint (`init_observability`)
- stable metric instruments for provisioning runs
"""

import logging
from typing import Optional, Tuple

from opentelemetry.metrics import Counter

from libs.observability.logging import init_logging
from libs.observability.metrics import get_meter, init_metrics
from libs.observability.tracing import init_tracing


def init_observability(
    level: int = logging.INFO,
    export: bool = False,
    endpoint: Optional[str] = None,
    service_name: Optional[str] = None,
    resource_attributes: Optional[str] = None,
) -> None:
    """
    Initialize logging, tracing, and metrics for the current process.

    Call once during startup, before bootstrap wiring.

    Args:
        level: Logging verbosity level for the root logger.
        export: Ship telemetry to the OTLP collector.
        endpoint: Optional collector endpoint override.
        service_name: Optional service name override.
        resource_attributes: Extra OTel resource attributes as `k=v,...`.
    """
    common = {
        "export": export,
        "endpoint": endpoint,
        "service_name": service_name,
        "resource_attributes": resource_attributes,
    }
    init_logging(level=level, **common)
    init_tracing(**common)
    init_metrics(**common)


def get_provisioning_instruments() -> Tuple[Counter, Counter, Counter]:
    """
    Create OpenTelemetry instruments for provisioning runs.

    Returns:
        A tuple containing:
            statements_counter: statements processed, by `outcome` attribute.
            topic_attempts_counter: batched create-topics attempts.
            session_attempts_counter: gateway session creation attempts.
    """
    meter = get_meter()

    statements: Counter = meter.create_counter(
        name="pipestack_statements_deployed",
        description="Count of SQL statements processed, by deployment outcome",
        unit="1",
    )

    topic_attempts: Counter = meter.create_counter(
        name="pipestack_topic_create_attempts",
        description="Count of batched Kafka create-topics attempts",
        unit="1",
    )

    session_attempts: Counter = meter.create_counter(
        name="pipestack_gateway_session_attempts",
        description="Count of SQL gateway session creation attempts",
        unit="1",
    )

    return statements, topic_attempts, session_attempts
