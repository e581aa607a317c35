"""
Entrypoint for the stack provisioner.

Loads the project's SQL and schemas, then provisions topics, subjects and
SQL jobs against the local stack. Set PROVISIONER__TEARDOWN=true to delete
the topics and subjects instead.
"""

import logging
import sys

from apps.provisioner.src.core.bootstrap import bootstrap
from apps.provisioner.src.core.config import get_provisioner_settings
from apps.provisioner.src.data.loaders import SchemaLoader, SqlLoader
from libs.config import AppConfig
from libs.errors import ProvisioningError
from libs.observability import get_logger
from libs.observability.instrumentation import init_observability


def main() -> int:
    """
    Initialize observability and run one provisioning pass.

    Returns:
        Process exit code.
    """
    app_cfg = AppConfig.load()
    init_observability(
        level=getattr(logging, app_cfg.service.log_level.upper(), logging.INFO),
        export=app_cfg.otel.export_enabled,
        endpoint=app_cfg.otel.otlp_endpoint,
        service_name=app_cfg.otel.service_name,
        resource_attributes=app_cfg.otel.resource_attributes,
    )
    log = get_logger("provisioner")

    settings = get_provisioner_settings()
    service = bootstrap(app_cfg, settings)
    service.install_signal_handlers()

    try:
        statements = SqlLoader(settings.project_dir).load_statements()
        schemas = SchemaLoader(settings.project_dir).load_schemas() if app_cfg.schema_registry.enabled else {}

        if settings.teardown:
            service.teardown(statements, schemas)
            return 0

        result = service.provision(statements, schemas)
    except ProvisioningError:
        log.exception("Provisioning failed")
        return 1

    for item in result.report.results:
        log.info(
            "Statement outcome",
            extra={"statement": item.name, "outcome": item.outcome.value, "file": item.fallback_path},
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
