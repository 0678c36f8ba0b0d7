"""Audit results and the resources they belong to."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

from kubeaudit.k8s import Resource

ERROR_UNSUPPORTED_RESOURCE = "Unsupported resource"
"""Name of the result given to resources that cannot be audited."""

REDUNDANT_AUDITOR_OVERRIDE = "RedundantAuditorOverride"
"""Name of the result given when an override label disables an auditor that found nothing."""

Metadata = dict[str, str]


class SeverityLevel(IntEnum):
    """Severity of an audit result; also used as a log level."""

    INFO = 0
    WARN = 1
    ERROR = 2

    def __str__(self) -> str:
        return _SEVERITY_NAMES[self]


_SEVERITY_NAMES = {
    SeverityLevel.INFO: "info",
    SeverityLevel.WARN: "warning",
    SeverityLevel.ERROR: "error",
}


class PendingFix(ABC):
    """A fix that can be applied to a resource to resolve an audit result."""

    @abstractmethod
    def plan(self) -> str:
        """Describe what ``apply`` will do."""

    @abstractmethod
    def apply(self, resource: Resource) -> list[Resource]:
        """Modify ``resource`` in place and return any newly created resources."""


@dataclass
class AuditResult:
    """A potential security issue found in a resource."""

    name: str
    severity: SeverityLevel
    message: str = ""
    pending_fix: Optional[PendingFix] = None
    metadata: Metadata = field(default_factory=dict)

    def fix(self, resource: Resource) -> list[Resource]:
        """Apply the pending fix, returning any new resources it created."""
        if self.pending_fix is None:
            return []
        return list(self.pending_fix.apply(resource) or [])

    def fix_plan(self) -> Optional[str]:
        """Return the plan of the pending fix, or None if there is none."""
        if self.pending_fix is None:
            return None
        return self.pending_fix.plan()


@dataclass
class KubeResource:
    """A decoded resource (if it could be decoded) and its original bytes."""

    object: Optional[Resource] = None
    raw: bytes = b""


@dataclass
class WorkloadResult:
    """The audit results for a single resource."""

    resource: KubeResource
    audit_results: list[AuditResult] = field(default_factory=list)