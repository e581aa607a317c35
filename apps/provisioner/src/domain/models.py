"""
Result types produced by a provisioning run.

No I/O happens here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set


class DeploymentOutcome(str, Enum):
    """How a single statement left the deployer."""

    DEPLOYED_VIA_SESSION = "deployed-via-session"
    DEPLOYED_VIA_FALLBACK = "deployed-via-fallback-file"
    FAILED = "failed"


@dataclass(frozen=True)
class Session:
    """SQL gateway session handle, valid for one deployment batch."""

    id: str


@dataclass(frozen=True)
class StatementResult:
    name: str
    order: int
    outcome: DeploymentOutcome
    fallback_path: Optional[str] = None
    detail: str = ""


@dataclass
class DeploymentReport:
    """Per-statement outcomes, in deployment order."""

    results: List[StatementResult] = field(default_factory=list)

    def add(self, result: StatementResult) -> None:
        self.results.append(result)

    def _count(self, outcome: DeploymentOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def deployed_count(self) -> int:
        return self._count(DeploymentOutcome.DEPLOYED_VIA_SESSION)

    @property
    def fallback_count(self) -> int:
        return self._count(DeploymentOutcome.DEPLOYED_VIA_FALLBACK)

    @property
    def failed_count(self) -> int:
        return self._count(DeploymentOutcome.FAILED)

    @property
    def succeeded(self) -> bool:
        return self.failed_count == 0

    @property
    def order(self) -> List[str]:
        return [r.name for r in self.results]


@dataclass
class ProvisioningResult:
    """Everything a full provisioning run touched."""

    topics: Set[str] = field(default_factory=set)
    subjects: List[str] = field(default_factory=list)
    report: DeploymentReport = field(default_factory=DeploymentReport)

    @property
    def succeeded(self) -> bool:
        return self.report.succeeded
