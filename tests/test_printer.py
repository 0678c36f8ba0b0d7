import io
import json
import logging

import pytest

from kubeaudit import colors, k8s
from kubeaudit.printer import JsonFormatter, Printer
from kubeaudit.result import AuditResult, KubeResource, SeverityLevel, WorkloadResult


class _Report:
    def __init__(self, results):
        self._results = results

    def results_with_min_severity(self, min_severity):
        filtered = []
        for result in self._results:
            kept = [a for a in result.audit_results if a.severity >= min_severity]
            if kept:
                filtered.append(WorkloadResult(resource=result.resource, audit_results=kept))
        return filtered


def _audit_result(severity):
    return AuditResult(name="MyAuditResult", severity=severity, metadata={"Foo": "bar"})


def _three_severity_report():
    return _Report(
        [
            WorkloadResult(
                resource=KubeResource(object=k8s.new_pod()),
                audit_results=[
                    _audit_result(SeverityLevel.ERROR),
                    _audit_result(SeverityLevel.WARN),
                    _audit_result(SeverityLevel.INFO),
                ],
            )
        ]
    )


@pytest.mark.parametrize(
    "min_severity, lines",
    [(SeverityLevel.ERROR, 1), (SeverityLevel.WARN, 2), (SeverityLevel.INFO, 3)],
)
def test_print_results_line_count(min_severity, lines):
    out = io.StringIO()
    printer = Printer(writer=out, min_severity=min_severity, formatter=JsonFormatter())
    printer.print_report(_three_severity_report())
    assert out.getvalue().count("\n") == lines


@pytest.mark.parametrize(
    "severity", [SeverityLevel.ERROR, SeverityLevel.WARN, SeverityLevel.INFO]
)
def test_log_audit_result(severity):
    resource = k8s.new_deployment()
    resource["metadata"]["name"] = "mydeployment"
    resource["metadata"]["namespace"] = "mynamespace"
    report = _Report(
        [
            WorkloadResult(
                resource=KubeResource(object=resource),
                audit_results=[_audit_result(severity)],
            )
        ]
    )
    out = io.StringIO()
    Printer(writer=out, formatter=JsonFormatter()).print_report(report)
    got = json.loads(out.getvalue())
    expected = {
        "AuditResultName": "MyAuditResult",
        "Foo": "bar",
        "level": str(severity),
        "ResourceKind": "Deployment",
        "ResourceApiVersion": "apps/v1",
        "ResourceName": "mydeployment",
        "ResourceNamespace": "mynamespace",
    }
    assert {key: got.get(key) for key in expected} == expected


def test_json_formatter_prefixes_reserved_fields():
    record = logging.LogRecord("n", logging.WARNING, __file__, 1, "hello %s", ("x",), None)
    record.fields = {"msg": "m", "A": "b"}
    parsed = json.loads(JsonFormatter().format(record))
    assert parsed["msg"] == "hello x"
    assert parsed["fields.msg"] == "m"
    assert parsed["A"] == "b"
    assert parsed["level"] == "warning"


def test_pretty_print_without_results():
    out = io.StringIO()
    report = _Report(
        [
            WorkloadResult(
                resource=KubeResource(object=k8s.new_pod()),
                audit_results=[_audit_result(SeverityLevel.INFO)],
            )
        ]
    )
    Printer(writer=out, min_severity=SeverityLevel.ERROR, color=False).print_report(report)
    assert out.getvalue() == "All checks completed. 0 high-risk vulnerabilities found\n"


def test_pretty_print_colored_summary():
    out = io.StringIO()
    Printer(writer=out).print_report(_Report([]))
    message = "All checks completed. 0 high-risk vulnerabilities found\n"
    assert out.getvalue() == colors.colored(colors.GREEN_COLOR, message)


def test_pretty_print_results():
    resource = k8s.new_deployment()
    resource["metadata"]["name"] = "mydeployment"
    resource["metadata"]["namespace"] = "mynamespace"
    report = _Report(
        [
            WorkloadResult(
                resource=KubeResource(object=resource),
                audit_results=[
                    AuditResult(
                        name="MyAudit",
                        severity=SeverityLevel.ERROR,
                        message="My custom error",
                        metadata={"Foo": "bar"},
                    )
                ],
            )
        ]
    )
    out = io.StringIO()
    Printer(writer=out, color=False).print_report(report)
    text = out.getvalue()
    assert "---------------- Results for ---------------" in text
    assert "  apiVersion: apps/v1\n" in text
    assert "  kind: Deployment\n" in text
    assert "    name: mydeployment\n" in text
    assert "    namespace: mynamespace\n" in text
    assert "-- [error] MyAudit\n" in text
    assert "   Message: My custom error\n" in text
    assert "   Metadata:\n      Foo: bar\n" in text


def test_pretty_print_omits_empty_metadata_block():
    report = _Report(
        [
            WorkloadResult(
                resource=KubeResource(object=k8s.new_pod()),
                audit_results=[AuditResult(name="X", severity=SeverityLevel.WARN)],
            )
        ]
    )
    out = io.StringIO()
    Printer(writer=out, color=False).print_report(report)
    text = out.getvalue()
    assert "  metadata:" not in text
    assert "   Metadata:" not in text
    assert "-- [warning] X\n" in text