"""
Statement deployment through the SQL gateway, with file fallback.

A gateway that cannot be reached is a designed degradation: the affected
statement is written to `deployed-sql/<name>.sql` for manual execution and
the batch continues. A gateway that answers and rejects a statement is a
defect in the SQL or the stack, and stops the batch.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable, Mapping, Optional

from opentelemetry.metrics import Counter

from apps.provisioner.src.domain.models import (
    DeploymentOutcome,
    DeploymentReport,
    Session,
    StatementResult,
)
from apps.provisioner.src.domain.statements import in_deployment_order, prepare_for_local
from apps.provisioner.src.infra.sql_gateway import SqlGatewayClient
from libs.errors import GatewayUnreachableError, SessionCreationError, StatementRejectedError
from libs.models.artifacts import Statement

MANUAL_EXECUTION_HINT = "Use the SQL client or web UI to execute this statement"


class StatementDeployer:
    """
    Deploys a batch of statements in `order`, one session per batch.
    """

    def __init__(
        self,
        gateway: SqlGatewayClient,
        project_dir: str | Path,
        variables: Mapping[str, str],
        logger: logging.Logger,
        fallback_dir: str = "deployed-sql",
        statements_counter: Optional[Counter] = None,
    ) -> None:
        """
        Create a new StatementDeployer.

        Args:
            gateway: SQL gateway client.
            project_dir: Pipeline project directory; fallback files go under it.
            variables: Placeholder -> local value table.
            logger: Logger instance.
            fallback_dir: Fallback directory name relative to project_dir.
            statements_counter: Optional counter of statements by outcome.
        """
        self._gateway = gateway
        self._fallback_root = Path(project_dir) / fallback_dir
        self._variables = dict(variables)
        self._log = logger
        self._statements_counter = statements_counter

    def deploy(
        self,
        statements: Iterable[Statement],
        cancel_event: Optional[threading.Event] = None,
    ) -> DeploymentReport:
        """
        Deploy every statement, ascending by `order`.

        Args:
            statements: Loaded statements, any order.
            cancel_event: Observed while the session is being opened.

        Returns:
            Per-statement outcomes.

        Raises:
            StatementRejectedError: the gateway rejected a statement; the
                error's `report` holds the outcomes up to and including it.
            DeploymentCancelled: cancelled while opening the session.
        """
        report = DeploymentReport()
        prepared = [prepare_for_local(s, self._variables) for s in in_deployment_order(statements)]
        if not prepared:
            return report

        session = self._open_session(cancel_event)

        for statement in prepared:
            self._log.info(
                "Deploying statement",
                extra={"statement": statement.name, "order": statement.order},
            )
            if session is None:
                report.add(self._fallback(statement, "no SQL gateway session available"))
                continue

            try:
                operation = self._gateway.submit_statement(session, statement.name, statement.content)
            except GatewayUnreachableError as exc:
                report.add(self._fallback(statement, str(exc)))
                continue
            except StatementRejectedError as exc:
                report.add(
                    StatementResult(
                        name=statement.name,
                        order=statement.order,
                        outcome=DeploymentOutcome.FAILED,
                        detail=str(exc),
                    )
                )
                self._count(DeploymentOutcome.FAILED)
                exc.report = report
                raise

            report.add(
                StatementResult(
                    name=statement.name,
                    order=statement.order,
                    outcome=DeploymentOutcome.DEPLOYED_VIA_SESSION,
                    detail=operation or "",
                )
            )
            self._count(DeploymentOutcome.DEPLOYED_VIA_SESSION)
            self._log.info(
                "Statement deployed",
                extra={"statement": statement.name, "operation_handle": operation},
            )

        self._log.info(
            "Statement deployment finished",
            extra={
                "deployed": report.deployed_count,
                "fallback": report.fallback_count,
            },
        )
        return report

    def _open_session(self, cancel_event: Optional[threading.Event]) -> Optional[Session]:
        try:
            return self._gateway.open_session(cancel_event)
        except SessionCreationError as exc:
            self._log.warning(
                "No SQL gateway session; statements will be written for manual execution",
                extra={"error": str(exc)},
            )
            return None

    def _fallback(self, statement: Statement, reason: str) -> StatementResult:
        path = self.write_fallback(statement)
        self._log.warning(
            "SQL gateway unavailable; statement saved for manual execution",
            extra={"statement": statement.name, "file": str(path), "reason": reason},
        )
        self._log.info(
            "Manual execution required",
            extra={"statement": statement.name, "file": str(path), "hint": MANUAL_EXECUTION_HINT},
        )
        self._count(DeploymentOutcome.DEPLOYED_VIA_FALLBACK)
        return StatementResult(
            name=statement.name,
            order=statement.order,
            outcome=DeploymentOutcome.DEPLOYED_VIA_FALLBACK,
            fallback_path=str(path),
            detail=reason,
        )

    def write_fallback(self, statement: Statement) -> Path:
        """Write the statement text verbatim to `<fallback_dir>/<name>.sql`."""
        self._fallback_root.mkdir(parents=True, exist_ok=True)
        path = self._fallback_root / f"{statement.name}.sql"
        path.write_text(statement.content, encoding="utf-8")
        return path

    def _count(self, outcome: DeploymentOutcome) -> None:
        if self._statements_counter is not None:
            self._statements_counter.add(1, {"outcome": outcome.value})
