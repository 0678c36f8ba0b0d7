import io
import json

import pytest

from kubeaudit import k8s
from kubeaudit.auditor import Auditable, Kubeaudit, Report
from kubeaudit.client import ClientOptions, DefaultClient, KubeConfigError
from kubeaudit.printer import JsonFormatter
from kubeaudit.result import (
    AuditResult,
    KubeResource,
    PendingFix,
    SeverityLevel,
    WorkloadResult,
)
from kubeaudit.runtime import DecodeError

MANIFEST = """
apiVersion: apps/v1
kind: Deployment
metadata:
  name: myAuditor
spec:
  template:
    spec:
      containers:
      - name: myContainer
"""


class MyAuditorFix(PendingFix):
    def __init__(self, new_val):
        self.new_val = new_val

    def plan(self):
        return f"Set label 'hi' to '{self.new_val}'"

    def apply(self, resource):
        resource.setdefault("metadata", {}).setdefault("labels", {})["hi"] = self.new_val
        return []


class MyAuditor(Auditable):
    def audit(self, resource, resources):
        return [
            AuditResult(
                name="MyAudit",
                severity=SeverityLevel.ERROR,
                message="My custom error",
                pending_fix=MyAuditorFix("bye"),
            )
        ]


class FailingAuditor(Auditable):
    def audit(self, resource, resources):
        raise RuntimeError("audit failed")


def _test_result(severity):
    return AuditResult(name="MyAuditResult", severity=severity, metadata={"Foo": "bar"})


def test_new_requires_auditors():
    with pytest.raises(ValueError):
        Kubeaudit([])
    with pytest.raises(ValueError):
        Kubeaudit(None)


def test_new_applies_options():
    seen = []
    auditor = Kubeaudit([MyAuditor()], seen.append)
    assert seen == [auditor]


def test_option_error_propagates():
    def bad_option(_auditor):
        raise ValueError("bad option")

    with pytest.raises(ValueError, match="bad option"):
        Kubeaudit([MyAuditor()], bad_option)


def test_custom_auditor_on_manifest():
    report = Kubeaudit([MyAuditor()]).audit_manifest(io.StringIO(MANIFEST))
    results = report.results()
    assert len(results) == 1
    assert [r.name for r in results[0].audit_results] == ["MyAudit"]
    assert results[0].resource.object["kind"] == "Deployment"
    assert report.has_errors() is True


def test_manifest_accepts_bytes():
    report = Kubeaudit([MyAuditor()]).audit_manifest(MANIFEST.encode("utf-8"))
    assert len(report.results()) == 1


def test_print_plan():
    report = Kubeaudit([MyAuditor()]).audit_manifest(MANIFEST)
    out = io.StringIO()
    report.print_plan(out)
    assert out.getvalue() == "*  Set label 'hi' to 'bye'\n"


def test_pretty_print_results():
    report = Kubeaudit([MyAuditor()]).audit_manifest(MANIFEST)
    out = io.StringIO()
    report.print_results(writer=out, color=False)
    text = out.getvalue()
    assert "  kind: Deployment\n" in text
    assert "    name: myAuditor\n" in text
    assert "-- [error] MyAudit\n" in text
    assert "   Message: My custom error\n" in text


def test_pretty_print_no_results():
    report = Report([])
    out = io.StringIO()
    report.print_results(writer=out, color=False)
    assert out.getvalue() == "All checks completed. 0 high-risk vulnerabilities found\n"


def test_invalid_manifest_raises():
    with pytest.raises(DecodeError, match="failed to get resources from manifest"):
        Kubeaudit([MyAuditor()]).audit_manifest("a: b: c")


def test_auditor_errors_propagate():
    with pytest.raises(RuntimeError, match="audit failed"):
        Kubeaudit([FailingAuditor()]).audit_manifest(MANIFEST)


@pytest.mark.parametrize(
    "manifest",
    [
        "apiVersion: v1\nkind: Binding\nmetadata:\n  name: b\n",
        "apiVersion: apiextensions.k8s.io/v1beta1\nkind: CustomResourceDefinition\n"
        "metadata:\n  name: crd\n",
        "apiVersion: example.com/v1\nkind: Widget\nmetadata:\n  name: w\n",
    ],
)
def test_unknown_resource_gives_only_warnings(manifest):
    report = Kubeaudit([MyAuditor()]).audit_manifest(manifest)
    severities = [r.severity for res in report.results() for r in res.audit_results]
    assert all(s == SeverityLevel.WARN for s in severities)
    assert report.has_errors() is False


def test_unsupported_resource_result_name():
    report = Kubeaudit([MyAuditor()]).audit_manifest("apiVersion: v1\nkind: Binding\n")
    names = [r.name for res in report.results() for r in res.audit_results]
    assert names == ["Unsupported resource"]


def test_raw_results_include_empty():
    undecodable = "apiVersion: example.com/v1\nkind: Widget\n"
    report = Kubeaudit([MyAuditor()]).audit_manifest(MANIFEST + "---\n" + undecodable)
    assert len(report.raw_results()) == 2
    assert len(report.results()) == 1


def test_audit_cluster_outside_cluster():
    auditor = Kubeaudit([MyAuditor()], cluster_client=DefaultClient(environ={}))
    with pytest.raises(RuntimeError, match="not running in cluster"):
        auditor.audit_cluster(ClientOptions())


def test_audit_local_invalid_path():
    auditor = Kubeaudit([MyAuditor()])
    with pytest.raises(KubeConfigError, match="invalid_path"):
        auditor.audit_local("invalid_path", ClientOptions())


def _report_with_all_severities():
    return Report(
        [
            WorkloadResult(
                resource=KubeResource(object=k8s.new_pod()),
                audit_results=[
                    _test_result(SeverityLevel.ERROR),
                    _test_result(SeverityLevel.WARN),
                    _test_result(SeverityLevel.INFO),
                ],
            )
        ]
    )


def test_results_with_min_severity():
    report = _report_with_all_severities()
    assert [len(r.audit_results) for r in report.results_with_min_severity(SeverityLevel.ERROR)] == [1]
    assert [len(r.audit_results) for r in report.results_with_min_severity(SeverityLevel.WARN)] == [2]
    assert [len(r.audit_results) for r in report.results_with_min_severity(SeverityLevel.INFO)] == [3]


@pytest.mark.parametrize(
    "min_severity, lines",
    [(SeverityLevel.ERROR, 1), (SeverityLevel.WARN, 2), (SeverityLevel.INFO, 3)],
)
def test_print_results_json_line_count(min_severity, lines):
    report = _report_with_all_severities()
    out = io.StringIO()
    report.print_results(writer=out, min_severity=min_severity, formatter=JsonFormatter())
    assert out.getvalue().count("\n") == lines


@pytest.mark.parametrize(
    "severity", [SeverityLevel.ERROR, SeverityLevel.WARN, SeverityLevel.INFO]
)
def test_log_audit_result(severity):
    resource = k8s.new_deployment()
    meta = resource.setdefault("metadata", {})
    meta["name"] = "mydeployment"
    meta["namespace"] = "mynamespace"
    report = Report(
        [
            WorkloadResult(
                resource=KubeResource(object=resource),
                audit_results=[_test_result(severity)],
            )
        ]
    )
    out = io.StringIO()
    report.print_results(writer=out, formatter=JsonFormatter())
    entry = json.loads(out.getvalue())
    assert entry["AuditResultName"] == "MyAuditResult"
    assert entry["level"] == str(severity)
    assert entry["Foo"] == "bar"
    assert entry["ResourceKind"] == "Deployment"
    assert entry["ResourceApiVersion"] == "apps/v1"
    assert entry["ResourceName"] == "mydeployment"
    assert entry["ResourceNamespace"] == "mynamespace"


def test_has_errors_false_for_warnings():
    report = Report(
        [
            WorkloadResult(
                resource=KubeResource(object=k8s.new_pod()),
                audit_results=[_test_result(SeverityLevel.WARN)],
            )
        ]
    )
    assert report.has_errors() is False