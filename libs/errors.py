"""
Error hierarchy for provisioning runs.

Hard failures derive from ProvisioningError and abort the run. Fallback
deployment of a statement is not an error and never surfaces here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from apps.provisioner.src.domain.models import DeploymentReport


class ProvisioningError(Exception):
    """Base class for all provisioning failures."""


class ArtifactLoadError(ProvisioningError):
    """SQL or schema artifacts could not be loaded from the project directory."""


class RetryExhaustedError(ProvisioningError):
    """A bounded retry loop ran out of attempts."""

    def __init__(self, operation: str, attempts: int, last_error: Optional[BaseException]) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{operation} failed after {attempts} attempts: {last_error}")


class DeploymentCancelled(ProvisioningError):
    """The caller signalled cancellation while a cancellable retry was running."""


class TopicProvisioningError(ProvisioningError):
    """Kafka topics could not be created or deleted."""


class SchemaRegistrationError(ProvisioningError):
    """A schema subject could not be registered or deleted."""

    def __init__(self, subject: str, message: str, status_code: Optional[int] = None) -> None:
        self.subject = subject
        self.status_code = status_code
        super().__init__(f"schema registration for subject {subject!r} failed: {message}")


class SessionCreationError(ProvisioningError):
    """No SQL gateway session could be opened."""


class GatewayUnreachableError(ProvisioningError):
    """
    A gateway request failed at the transport level.

    The statement deployer turns this into a fallback file for the
    statement instead of letting it abort the run.
    """


class StatementRejectedError(ProvisioningError):
    """
    The SQL gateway accepted a statement submission and rejected it.

    Carries the partial deployment report so callers can see which
    statements were already submitted before the batch stopped.
    """

    def __init__(
        self,
        statement: str,
        status_code: int,
        body: str,
        report: Optional["DeploymentReport"] = None,
    ) -> None:
        self.statement = statement
        self.status_code = status_code
        self.body = body
        self.report = report
        super().__init__(
            f"statement {statement!r} rejected by SQL gateway with status {status_code}: {body}"
        )
