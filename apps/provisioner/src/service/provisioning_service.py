"""
Stack provisioning service.

Responsibilities:
- Create the Kafka topics the pipeline's SQL references
- Register the pipeline's Avro schemas in Schema Registry
- Deploy the pipeline's SQL statements through the SQL gateway
- Tear down topics and subjects on request
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Iterable, List, Mapping, Optional, Set, Tuple

from apps.provisioner.src.domain.models import DeploymentReport, ProvisioningResult
from apps.provisioner.src.domain.topics import extract_topic_names
from apps.provisioner.src.infra.schema_registry import SchemaRegistrar
from apps.provisioner.src.infra.topics import KafkaTopicProvisioner
from apps.provisioner.src.service.deployer import StatementDeployer
from libs.config import AppConfig
from libs.models.artifacts import Schema, Statement
from libs.observability.tracing import get_tracer


class ProvisioningService:
    """
    Sequential provisioning flow for one pipeline project.

    Stages run to completion or hard failure before the next one starts:
    topics -> schemas -> statements. Only session creation inside the
    statement stage observes cancellation.
    """

    def __init__(
        self,
        app_config: AppConfig,
        topic_provisioner: KafkaTopicProvisioner,
        schema_registrar: Optional[SchemaRegistrar],
        deployer: StatementDeployer,
        logger: logging.Logger,
    ) -> None:
        """
        Create a new ProvisioningService.

        Args:
            app_config: Global configuration (Kafka, Schema Registry, ...).
            topic_provisioner: Kafka topic provisioner.
            schema_registrar: Schema registrar, or None when the registry is disabled.
            deployer: Statement deployer.
            logger: Logger instance.
        """
        self._app_cfg = app_config
        self._topics = topic_provisioner
        self._registrar = schema_registrar
        self._deployer = deployer
        self._log = logger

        self._tracer = get_tracer("pipestack.provisioner.service")
        self._cancel = threading.Event()

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel

    def install_signal_handlers(self) -> None:
        """Turn SIGINT/SIGTERM into a cancellation of the running deployment."""
        signal.signal(signal.SIGINT, self._stop)
        signal.signal(signal.SIGTERM, self._stop)

    def _stop(self, *_: object) -> None:
        self._log.info("Shutdown signal received. Cancelling provisioning.")
        self._cancel.set()

    def _default_topics(self) -> Tuple[str, str]:
        kafka = self._app_cfg.kafka
        return kafka.input_topic, kafka.output_topic

    def _registry_enabled(self) -> bool:
        return self._registrar is not None and self._app_cfg.schema_registry.enabled

    def setup_topics_and_schemas(
        self,
        statements: Iterable[Statement],
        schemas: Mapping[str, Schema],
    ) -> Tuple[Set[str], List[str]]:
        """
        Create topics, then register schemas.

        Returns:
            The provisioned topic set and the registered subjects.

        Raises:
            TopicProvisioningError: topic batch failed on every attempt.
            SchemaRegistrationError: a registration was rejected.
        """
        with self._tracer.start_as_current_span("ensure_topics"):
            topics = extract_topic_names(statements, defaults=self._default_topics())
            self._log.info("Provisioning Kafka topics.", extra={"topics": sorted(topics)})
            self._topics.ensure_topics(topics)

        subjects: List[str] = []
        if not self._registry_enabled():
            self._log.info("Schema Registry disabled; skipping schema registration.")
            return topics, subjects

        with self._tracer.start_as_current_span("register_schemas"):
            subjects = self._registrar.register_schemas(schemas.values())

        return topics, subjects

    def deploy_statements(
        self,
        statements: Iterable[Statement],
        cancel_event: Optional[threading.Event] = None,
    ) -> DeploymentReport:
        with self._tracer.start_as_current_span("deploy_statements"):
            return self._deployer.deploy(statements, cancel_event or self._cancel)

    def provision(
        self,
        statements: List[Statement],
        schemas: Mapping[str, Schema],
        cancel_event: Optional[threading.Event] = None,
    ) -> ProvisioningResult:
        """
        Run the whole flow for one project.

        Returns:
            Topics, subjects and per-statement deployment outcomes.
        """
        self._log.info(
            "Provisioning pipeline stack.",
            extra={"statements": len(statements), "schemas": sorted(schemas)},
        )

        topics, subjects = self.setup_topics_and_schemas(statements, schemas)
        report = self.deploy_statements(statements, cancel_event)

        result = ProvisioningResult(topics=topics, subjects=subjects, report=report)
        self._log.info(
            "Pipeline stack provisioned.",
            extra={
                "topics": sorted(topics),
                "subjects": subjects,
                "deployed": report.deployed_count,
                "fallback": report.fallback_count,
            },
        )
        return result

    def teardown(self, statements: Iterable[Statement], schemas: Mapping[str, Schema]) -> None:
        """Delete the topics and subjects a provisioning run would create."""
        with self._tracer.start_as_current_span("teardown"):
            topics = extract_topic_names(statements, defaults=self._default_topics())
            self._topics.delete_topics(topics)
            if self._registry_enabled():
                self._registrar.delete_subjects(schemas.keys())
        self._log.info("Pipeline stack torn down.", extra={"topics": sorted(topics)})
