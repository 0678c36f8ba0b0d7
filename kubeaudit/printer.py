"""Human-readable and structured output of audit reports."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any, Optional

from kubeaudit import colors, k8s
from kubeaudit.result import AuditResult, SeverityLevel

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}

_LOG_LEVELS = {
    SeverityLevel.INFO: logging.INFO,
    SeverityLevel.WARN: logging.WARNING,
    SeverityLevel.ERROR: logging.ERROR,
}

_SEVERITY_COLORS = {
    SeverityLevel.INFO: colors.CYAN_COLOR,
    SeverityLevel.WARN: colors.YELLOW_COLOR,
    SeverityLevel.ERROR: colors.RED_COLOR,
}

_RESERVED_KEYS = ("level", "msg", "time")


class JsonFormatter(logging.Formatter):
    """Format a record as one JSON object holding its ``fields``, level, message and time."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {}
        for key, value in (getattr(record, "fields", None) or {}).items():
            entry[f"fields.{key}" if key in _RESERVED_KEYS else key] = value
        entry["level"] = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        entry["msg"] = record.getMessage()
        entry["time"] = (
            datetime.fromtimestamp(record.created, timezone.utc)
            .astimezone()
            .isoformat(timespec="seconds")
        )
        return json.dumps(entry, sort_keys=True, default=str)


class Printer:
    """Writes audit reports, either pretty-printed or through a log formatter."""

    def __init__(
        self,
        writer: Optional[IO[str]] = None,
        min_severity: SeverityLevel = SeverityLevel.INFO,
        formatter: Optional[logging.Formatter] = None,
        color: bool = True,
    ) -> None:
        self.writer = writer if writer is not None else sys.stdout
        self.min_severity = min_severity
        self.formatter = formatter
        self.color = color

    def print_report(self, report: Any) -> None:
        """Write the results of ``report`` at or above the minimum severity."""
        if self.formatter is None:
            self._pretty_print_report(report)
        else:
            self._log_report(report)

    def _print(self, s: str) -> None:
        self.writer.write(s)

    def _print_color(self, color: str, s: str) -> None:
        self._print(colors.colored(color, s) if self.color else s)

    def _pretty_print_report(self, report: Any) -> None:
        results = report.results_with_min_severity(self.min_severity)
        if not results:
            self._print_color(
                colors.GREEN_COLOR, "All checks completed. 0 high-risk vulnerabilities found\n"
            )
            return

        for workload_result in results:
            resource = workload_result.resource.object
            api_version, kind = k8s.api_version_and_kind(resource)
            meta = k8s.get_object_meta(resource) or {}
            name = meta.get("name") or ""
            namespace = meta.get("namespace") or ""

            self._print_color(colors.CYAN_COLOR, "\n---------------- Results for ---------------\n\n")
            self._print_color(colors.CYAN_COLOR, f"  apiVersion: {api_version}\n")
            self._print_color(colors.CYAN_COLOR, f"  kind: {kind}\n")
            if name or namespace:
                self._print_color(colors.CYAN_COLOR, "  metadata:\n")
                if name:
                    self._print_color(colors.CYAN_COLOR, f"    name: {name}\n")
                if namespace:
                    self._print_color(colors.CYAN_COLOR, f"    namespace: {namespace}\n")
            self._print_color(colors.CYAN_COLOR, "\n--------------------------------------------\n\n")

            for audit_result in workload_result.audit_results:
                severity_color = _SEVERITY_COLORS.get(audit_result.severity, colors.YELLOW_COLOR)
                self._print("-- ")
                self._print_color(severity_color, f"[{audit_result.severity}] ")
                self._print(f"{audit_result.name}\n")
                self._print(f"   Message: {audit_result.message}\n")
                if audit_result.metadata:
                    self._print("   Metadata:\n")
                for key, value in audit_result.metadata.items():
                    self._print(f"      {key}: {value}\n")
                self._print("\n")

    def _log_report(self, report: Any) -> None:
        logger = logging.Logger("kubeaudit.results", logging.DEBUG)
        logger.propagate = False
        handler = logging.StreamHandler(self.writer)
        handler.setFormatter(self.formatter)
        logger.addHandler(handler)
        try:
            for workload_result in report.results_with_min_severity(self.min_severity):
                resource = workload_result.resource.object
                for audit_result in workload_result.audit_results:
                    self._log_audit_result(logger, resource, audit_result)
        finally:
            handler.flush()
            logger.removeHandler(handler)

    def _log_audit_result(
        self, logger: logging.Logger, resource: Any, result: AuditResult
    ) -> None:
        level = _LOG_LEVELS.get(result.severity)
        if level is None:
            return
        logger.log(level, result.message, extra={"fields": self._log_fields(resource, result)})

    @staticmethod
    def _log_fields(resource: Any, result: AuditResult) -> dict[str, str]:
        api_version, kind = k8s.api_version_and_kind(resource)
        fields = {
            "AuditResultName": result.name,
            "ResourceKind": kind,
            "ResourceApiVersion": api_version,
        }
        meta = k8s.get_object_meta(resource)
        if meta is not None:
            if meta.get("namespace"):
                fields["ResourceNamespace"] = meta["namespace"]
            if meta.get("name"):
                fields["ResourceName"] = meta["name"]
        fields.update(result.metadata or {})
        return fields