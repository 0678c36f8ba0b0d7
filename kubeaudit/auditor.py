"""Finding security issues in Kubernetes resources from manifests or clusters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO, Any, Callable, Optional, Union

from kubeaudit.client import (
    ClientOptions,
    DefaultClient,
    KubeConfigError,
    is_running_in_cluster,
    new_kube_client_cluster,
    new_kube_client_local,
)
from kubeaudit.k8s import Resource
from kubeaudit.manifest import (
    audit_resources,
    get_resources_from_clientset,
    get_resources_from_manifest,
)
from kubeaudit.printer import Printer
from kubeaudit.result import AuditResult, SeverityLevel, WorkloadResult
from kubeaudit.runtime import DecodeError

AuditOptions = ClientOptions

ManifestSource = Union[bytes, str, IO[bytes], IO[str]]


class Auditable(ABC):
    """An auditor that looks for one kind of security issue."""

    @abstractmethod
    def audit(self, resource: Resource, resources: list[Resource]) -> list[AuditResult]:
        """Return the audit results for ``resource``; ``resources`` gives context."""


class Report:
    """The results of an audit."""

    def __init__(self, results: Optional[list[WorkloadResult]] = None) -> None:
        self._results = list(results or [])

    def raw_results(self) -> list[WorkloadResult]:
        """All results, including resources without any audit result."""
        return list(self._results)

    def results(self) -> list[WorkloadResult]:
        """Results of the resources that have at least one audit result."""
        return [result for result in self._results if result.audit_results]

    def results_with_min_severity(self, min_severity: SeverityLevel) -> list[WorkloadResult]:
        """Results holding only the audit results at or above ``min_severity``."""
        filtered = []
        for result in self._results:
            kept = [r for r in result.audit_results if r.severity >= min_severity]
            if kept:
                filtered.append(WorkloadResult(resource=result.resource, audit_results=kept))
        return filtered

    def has_errors(self) -> bool:
        """True if any audit result has error severity."""
        return any(
            audit_result.severity >= SeverityLevel.ERROR
            for result in self.results()
            for audit_result in result.audit_results
        )

    def print_results(self, **kwargs: Any) -> None:
        """Write the results; keyword arguments are passed on to :class:`Printer`."""
        Printer(**kwargs).print_report(self)

    def print_plan(self, writer: IO[str]) -> None:
        """Write the fixes that would be applied, one per line."""
        for result in self.results():
            for audit_result in result.audit_results:
                plan = audit_result.fix_plan()
                if plan is not None:
                    writer.write(f"*  {plan}\n")


class Kubeaudit:
    """Runs a set of auditors on manifests, a local cluster or the enclosing cluster."""

    def __init__(
        self,
        auditors: list[Auditable],
        *options: Callable[[Kubeaudit], None],
        cluster_client: Optional[Any] = None,
    ) -> None:
        if not auditors:
            raise ValueError("no auditors enabled")
        self.auditors = list(auditors)
        self.cluster_client = cluster_client if cluster_client is not None else DefaultClient()
        for option in options:
            option(self)

    def audit_manifest(self, manifest: ManifestSource) -> Report:
        """Audit the resources of a manifest given as bytes, text or a readable file."""
        data = manifest.read() if hasattr(manifest, "read") else manifest
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            resources = get_resources_from_manifest(data)
        except DecodeError as err:
            raise DecodeError(f"failed to get resources from manifest: {err}") from err
        return Report(audit_resources(resources, self.auditors))

    def audit_cluster(self, options: Optional[ClientOptions] = None) -> Report:
        """Audit the resources of the cluster this process runs in."""
        if not is_running_in_cluster(self.cluster_client):
            raise RuntimeError(
                "failed to audit resources in cluster mode: not running in cluster"
            )
        clientset = new_kube_client_cluster(self.cluster_client)
        resources = get_resources_from_clientset(clientset, options or ClientOptions())
        return Report(audit_resources(resources, self.auditors))

    def audit_local(self, configpath: str, options: Optional[ClientOptions] = None) -> Report:
        """Audit the resources of the cluster described by a kubeconfig file."""
        try:
            clientset = new_kube_client_local(configpath)
        except KubeConfigError as err:
            raise KubeConfigError(f"failed to open kubeconfig file {configpath}") from err
        resources = get_resources_from_clientset(clientset, options or ClientOptions())
        return Report(audit_resources(resources, self.auditors))