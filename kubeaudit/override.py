"""Labels that disable auditors for specific containers, pods or namespaces."""

from __future__ import annotations

from typing import Any, Optional

from kubeaudit import k8s
from kubeaudit.result import REDUNDANT_AUDITOR_OVERRIDE, AuditResult, SeverityLevel

CONTAINER_OVERRIDE_LABEL_PREFIX = "container.audit.kubernetes.io/"
"""Prefix of labels that disable an auditor for one container."""

POD_OVERRIDE_LABEL_PREFIX = "audit.kubernetes.io/pod."
"""Prefix of labels that disable an auditor for a pod."""

NAMESPACE_OVERRIDE_LABEL_PREFIX = "audit.kubernetes.io/namespace."
"""Prefix of labels that disable an auditor for a namespace resource."""


def get_overridden_result_name(result_name: str) -> str:
    """Return the name of a result that was ignored through an override label."""
    return result_name + "Allowed"


def new_redundant_override_result(
    container_name: str, override_reason: str, override_label: str
) -> AuditResult:
    """A warning that an override label is set although the auditor found nothing."""
    return AuditResult(
        name=REDUNDANT_AUDITOR_OVERRIDE,
        severity=SeverityLevel.WARN,
        message=(
            "Auditor is disabled via label but there were no security issues found by the "
            "auditor. The label should be removed."
        ),
        metadata={"Container": container_name, "OverrideLabel": override_label},
    )


def apply_override(
    audit_result: Optional[AuditResult],
    container_name: str,
    resource: Any,
    override_label: str,
) -> Optional[AuditResult]:
    """Downgrade ``audit_result`` if the auditor is disabled by a label.

    Without an override the result is returned unchanged. With an override and
    no result, a redundant-override warning is returned.
    """
    reason = get_container_override_reason(container_name, resource, override_label)
    if reason is None:
        return audit_result
    if audit_result is None:
        return new_redundant_override_result(container_name, reason, override_label)

    audit_result.name = get_overridden_result_name(audit_result.name)
    audit_result.pending_fix = None
    audit_result.severity = SeverityLevel.INFO
    audit_result.message = "Audit result overridden: " + audit_result.message
    if reason and reason.lower() != "true":
        if audit_result.metadata is None:
            audit_result.metadata = {}
        audit_result.metadata["OverrideReason"] = reason
    return audit_result


def get_container_override_reason(
    container_name: str, resource: Any, override_label: str
) -> Optional[str]:
    """Return the reason given by a container, pod or namespace override label, or None."""
    labels = k8s.get_labels(resource) or {}
    if container_name:
        label = get_container_override_label(container_name, override_label)
        if label in labels:
            return labels[label]
    return get_resource_override_reason(resource, override_label)


def get_resource_override_reason(resource: Any, auditor_override_label: str) -> Optional[str]:
    """Return the reason given by a pod or namespace override label, or None."""
    labels = k8s.get_labels(resource) or {}
    for make_label in (get_pod_override_label, get_namespace_override_label):
        label = make_label(auditor_override_label)
        if label in labels:
            return labels[label]
    return None


def get_pod_override_label(override_label: str) -> str:
    return POD_OVERRIDE_LABEL_PREFIX + override_label


def get_namespace_override_label(override_label: str) -> str:
    return NAMESPACE_OVERRIDE_LABEL_PREFIX + override_label


def get_container_override_label(container_name: str, override_label: str) -> str:
    return f"{CONTAINER_OVERRIDE_LABEL_PREFIX}{container_name}.{override_label}"