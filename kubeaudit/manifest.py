"""Loading resources from manifests or clusters, and running auditors on them."""

from __future__ import annotations

from typing import Any, Union

import yaml

from kubeaudit import client, k8s
from kubeaudit.k8s import Resource
from kubeaudit.result import (
    ERROR_UNSUPPORTED_RESOURCE,
    AuditResult,
    KubeResource,
    SeverityLevel,
    WorkloadResult,
)
from kubeaudit.runtime import DecodeError, decode_resource


def get_resources_from_clientset(
    clientset: Any, options: client.ClientOptions
) -> list[KubeResource]:
    """Fetch every supported resource from a cluster."""
    return [
        KubeResource(object=resource)
        for resource in client.get_all_resources(clientset, options)
    ]


def _check_yaml(data: bytes) -> None:
    try:
        next(yaml.compose_all(data, Loader=yaml.SafeLoader), None)
    except yaml.YAMLError as err:
        raise DecodeError(f"Invalid yaml: {err}") from err


def get_resources_from_manifest(data: Union[bytes, str]) -> list[KubeResource]:
    """Split a manifest into its documents and decode each known resource.

    Documents that are not known resources are kept with their bytes only.
    Raises DecodeError if the manifest is not valid YAML.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    resources = []
    for chunk in data.split(b"---"):
        try:
            obj = decode_resource(chunk)
        except (DecodeError, UnicodeDecodeError):
            obj = None
        if obj is not None:
            resources.append(KubeResource(object=obj, raw=chunk))
            continue
        _check_yaml(data)
        resources.append(KubeResource(raw=chunk))
    return resources


def unwrap_resources(resources: list[KubeResource]) -> list[Resource]:
    """Return the decoded objects of the given resources."""
    return [resource.object for resource in resources]


def audit_resource(
    resource: KubeResource, resources: list[KubeResource], auditables: list[Any]
) -> WorkloadResult:
    """Run every auditor on one resource."""
    result = WorkloadResult(resource=resource)
    if resource.object is None:
        return result

    if not k8s.is_supported_resource_type(resource.object):
        result.audit_results.append(
            AuditResult(
                name=ERROR_UNSUPPORTED_RESOURCE,
                severity=SeverityLevel.WARN,
                message="Resource is not currently supported.",
            )
        )
        return result

    unwrapped = unwrap_resources(resources)
    for auditable in auditables:
        result.audit_results.extend(auditable.audit(resource.object, unwrapped) or [])
    return result


def audit_resources(
    resources: list[KubeResource], auditables: list[Any]
) -> list[WorkloadResult]:
    """Run every auditor on every resource."""
    return [audit_resource(resource, resources, auditables) for resource in resources]