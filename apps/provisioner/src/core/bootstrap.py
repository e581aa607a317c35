"""
Bootstrap for the stack provisioner.

Responsibilities:
- Load global AppConfig and ProvisionerSettings
- Construct the Kafka, Schema Registry and SQL gateway clients
- Build the ProvisioningService instance
"""

from typing import Optional

from apps.provisioner.src.core.config import ProvisionerSettings, get_provisioner_settings
from apps.provisioner.src.domain.schemas import SubjectMapping
from apps.provisioner.src.domain.statements import local_variables
from apps.provisioner.src.infra.schema_registry import SchemaRegistrar
from apps.provisioner.src.infra.sql_gateway import SqlGatewayClient
from apps.provisioner.src.infra.topics import KafkaTopicProvisioner
from apps.provisioner.src.service.deployer import StatementDeployer
from apps.provisioner.src.service.provisioning_service import ProvisioningService
from libs.config import AppConfig
from libs.observability import get_logger, get_provisioning_instruments
from libs.retry import RetryPolicy


def bootstrap(
    app_cfg: Optional[AppConfig] = None,
    settings: Optional[ProvisionerSettings] = None,
) -> ProvisioningService:
    """
    Build a fully wired ProvisioningService instance.

    Returns:
        ProvisioningService: Configured provisioning service.
    """
    log = get_logger("provisioner-bootstrap")
    log.info("Bootstrapping stack provisioner")

    app_cfg = app_cfg or AppConfig.load()
    cfg = settings or get_provisioner_settings()

    statements_counter, topic_attempts, session_attempts = get_provisioning_instruments()

    topic_provisioner = KafkaTopicProvisioner.from_bootstrap(
        app_cfg.kafka.bootstrap_servers,
        partitions=app_cfg.kafka.partitions,
        replication_factor=app_cfg.kafka.replication_factor,
        max_attempts=cfg.topic_max_attempts,
        backoff_step_sec=cfg.topic_backoff_step_sec,
        request_timeout_sec=cfg.admin_timeout_sec,
        attempts_counter=topic_attempts,
    )

    registrar = None
    if app_cfg.schema_registry.enabled:
        registrar = SchemaRegistrar.from_url(
            app_cfg.schema_registry.url,
            SubjectMapping.from_config(app_cfg, sink_role=cfg.sink_role),
            key_fields=cfg.sink_key_fields,
            timeout_sec=cfg.registry_timeout_sec,
        )

    gateway = SqlGatewayClient(
        base_url=cfg.gateway_url,
        logger=get_logger("SqlGatewayClient"),
        session_name=cfg.session_name,
        readiness_timeout_sec=cfg.readiness_timeout_sec,
        readiness_interval_sec=cfg.readiness_interval_sec,
        readiness_request_timeout_sec=cfg.readiness_request_timeout_sec,
        session_policy=RetryPolicy.exponential(
            max_attempts=cfg.session_max_attempts,
            initial_delay=cfg.session_initial_backoff_sec,
            cap=cfg.session_backoff_cap_sec,
        ),
        session_request_timeout_sec=cfg.session_request_timeout_sec,
        statement_timeout_sec=cfg.statement_timeout_sec,
        attempts_counter=session_attempts,
    )

    deployer = StatementDeployer(
        gateway=gateway,
        project_dir=cfg.project_dir,
        variables=local_variables(app_cfg),
        logger=get_logger("StatementDeployer"),
        fallback_dir=cfg.fallback_dir,
        statements_counter=statements_counter,
    )

    service = ProvisioningService(
        app_config=app_cfg,
        topic_provisioner=topic_provisioner,
        schema_registrar=registrar,
        deployer=deployer,
        logger=get_logger("ProvisioningService"),
    )

    log.info("Stack provisioner initialized", extra={"project_dir": cfg.project_dir})
    return service
