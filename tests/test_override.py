from kubeaudit import k8s
from kubeaudit.annotations import BySettingPodAnnotation
from kubeaudit.override import (
    CONTAINER_OVERRIDE_LABEL_PREFIX,
    NAMESPACE_OVERRIDE_LABEL_PREFIX,
    POD_OVERRIDE_LABEL_PREFIX,
    apply_override,
    get_container_override_label,
    get_container_override_reason,
    get_namespace_override_label,
    get_overridden_result_name,
    get_pod_override_label,
    get_resource_override_reason,
    new_redundant_override_result,
)
from kubeaudit.result import REDUNDANT_AUDITOR_OVERRIDE, AuditResult, SeverityLevel

LABEL = "allow-privilege-escalation"


def _deployment_with_labels(labels):
    deployment = k8s.new_deployment()
    deployment["spec"]["template"]["metadata"]["labels"] = labels
    return deployment


def test_label_builders():
    assert get_pod_override_label(LABEL) == POD_OVERRIDE_LABEL_PREFIX + LABEL
    assert get_namespace_override_label(LABEL) == NAMESPACE_OVERRIDE_LABEL_PREFIX + LABEL
    assert (
        get_container_override_label("mycontainer", LABEL)
        == CONTAINER_OVERRIDE_LABEL_PREFIX + "mycontainer." + LABEL
    )
    assert get_pod_override_label(LABEL) == "audit.kubernetes.io/pod." + LABEL


def test_overridden_result_name():
    assert get_overridden_result_name("PrivilegeEscalation") == "PrivilegeEscalationAllowed"


def test_container_label_takes_precedence():
    deployment = _deployment_with_labels(
        {
            get_container_override_label("c1", LABEL): "container reason",
            get_pod_override_label(LABEL): "pod reason",
        }
    )
    assert get_container_override_reason("c1", deployment, LABEL) == "container reason"
    assert get_container_override_reason("c2", deployment, LABEL) == "pod reason"


def test_empty_container_name_skips_container_label():
    deployment = _deployment_with_labels({get_container_override_label("", LABEL): "reason"})
    assert get_container_override_reason("", deployment, LABEL) is None


def test_no_labels_means_no_override():
    assert get_container_override_reason("c1", k8s.new_deployment(), LABEL) is None
    assert get_resource_override_reason(k8s.new_pod(), LABEL) is None


def test_namespace_override():
    namespace = k8s.new_namespace()
    namespace["metadata"]["labels"] = {get_namespace_override_label(LABEL): "ns reason"}
    assert get_resource_override_reason(namespace, LABEL) == "ns reason"


def test_apply_override_without_label_returns_result_unchanged():
    fix = BySettingPodAnnotation(key="k", value="v")
    result = AuditResult(name="Issue", severity=SeverityLevel.ERROR, message="m", pending_fix=fix)
    returned = apply_override(result, "c1", k8s.new_deployment(), LABEL)
    assert returned is result
    assert (returned.name, returned.severity, returned.pending_fix) == (
        "Issue",
        SeverityLevel.ERROR,
        fix,
    )
    assert apply_override(None, "c1", k8s.new_deployment(), LABEL) is None


def test_apply_override_redundant_label():
    deployment = _deployment_with_labels({get_pod_override_label(LABEL): "true"})
    result = apply_override(None, "c1", deployment, LABEL)
    assert result.name == REDUNDANT_AUDITOR_OVERRIDE
    assert result.severity is SeverityLevel.WARN
    assert result.metadata == {"Container": "c1", "OverrideLabel": LABEL}
    assert result == new_redundant_override_result("c1", "true", LABEL)


def test_apply_override_downgrades_result():
    deployment = _deployment_with_labels(
        {get_container_override_label("c1", LABEL): "needed for debugging"}
    )
    result = AuditResult(
        name="Issue",
        severity=SeverityLevel.ERROR,
        message="bad thing",
        pending_fix=BySettingPodAnnotation(key="k", value="v"),
    )
    returned = apply_override(result, "c1", deployment, LABEL)
    assert returned.name == get_overridden_result_name("Issue")
    assert returned.severity is SeverityLevel.INFO
    assert returned.pending_fix is None
    assert returned.message == "Audit result overridden: bad thing"
    assert returned.metadata["OverrideReason"] == "needed for debugging"


def test_apply_override_true_reason_adds_no_metadata():
    deployment = _deployment_with_labels({get_pod_override_label(LABEL): "True"})
    result = AuditResult(name="Issue", severity=SeverityLevel.ERROR, message="m")
    returned = apply_override(result, "c1", deployment, LABEL)
    assert returned.severity is SeverityLevel.INFO
    assert "OverrideReason" not in returned.metadata