"""Decoding and encoding of Kubernetes resources from and to YAML."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

import yaml

from kubeaudit.k8s import Resource

_RBAC_KINDS = frozenset({"Role", "RoleBinding", "ClusterRole", "ClusterRoleBinding"})
_AUTHORIZATION_KINDS = frozenset(
    {
        "SubjectAccessReview",
        "SelfSubjectAccessReview",
        "LocalSubjectAccessReview",
        "SelfSubjectRulesReview",
    }
)

_KNOWN_KINDS: dict[str, frozenset[str]] = {
    "v1": frozenset(
        {
            "Binding",
            "ComponentStatus",
            "ConfigMap",
            "Endpoints",
            "Event",
            "LimitRange",
            "List",
            "Namespace",
            "Node",
            "PersistentVolume",
            "PersistentVolumeClaim",
            "Pod",
            "PodStatusResult",
            "PodTemplate",
            "RangeAllocation",
            "ReplicationController",
            "ResourceQuota",
            "Secret",
            "SerializedReference",
            "Service",
            "ServiceAccount",
        }
    ),
    "admissionregistration.k8s.io/v1beta1": frozenset(
        {"ValidatingWebhookConfiguration", "MutatingWebhookConfiguration"}
    ),
    "cert-manager.io/v1alpha2": frozenset(
        {"Certificate", "CertificateRequest", "Issuer", "ClusterIssuer"}
    ),
    "apps/v1": frozenset(
        {"ControllerRevision", "DaemonSet", "Deployment", "ReplicaSet", "StatefulSet"}
    ),
    "apps/v1beta1": frozenset(
        {"ControllerRevision", "Deployment", "DeploymentRollback", "Scale", "StatefulSet"}
    ),
    "apps/v1beta2": frozenset(
        {"ControllerRevision", "DaemonSet", "Deployment", "ReplicaSet", "Scale", "StatefulSet"}
    ),
    "authentication.k8s.io/v1": frozenset({"TokenReview", "TokenRequest"}),
    "authentication.k8s.io/v1beta1": frozenset({"TokenReview"}),
    "authorization.k8s.io/v1": _AUTHORIZATION_KINDS,
    "authorization.k8s.io/v1beta1": _AUTHORIZATION_KINDS,
    "autoscaling/v1": frozenset({"HorizontalPodAutoscaler", "Scale"}),
    "autoscaling/v2beta1": frozenset({"HorizontalPodAutoscaler"}),
    "autoscaling/v2beta2": frozenset({"HorizontalPodAutoscaler"}),
    "batch/v1": frozenset({"Job", "CronJob"}),
    "batch/v1beta1": frozenset({"CronJob", "JobTemplate"}),
    "certificates.k8s.io/v1beta1": frozenset({"CertificateSigningRequest"}),
    "coordination.k8s.io/v1": frozenset({"Lease"}),
    "coordination.k8s.io/v1beta1": frozenset({"Lease"}),
    "events.k8s.io/v1beta1": frozenset({"Event"}),
    "apiextensions.k8s.io/v1beta1": frozenset({"CustomResourceDefinition", "ConversionReview"}),
    "extensions/v1beta1": frozenset(
        {
            "DaemonSet",
            "Deployment",
            "DeploymentRollback",
            "Ingress",
            "NetworkPolicy",
            "PodSecurityPolicy",
            "ReplicaSet",
            "Scale",
        }
    ),
    "networking.k8s.io/v1": frozenset({"NetworkPolicy", "Ingress", "IngressClass"}),
    "networking.k8s.io/v1beta1": frozenset({"Ingress", "IngressClass"}),
    "node.k8s.io/v1alpha1": frozenset({"RuntimeClass"}),
    "node.k8s.io/v1beta1": frozenset({"RuntimeClass"}),
    "policy/v1beta1": frozenset({"PodDisruptionBudget", "PodSecurityPolicy", "Eviction"}),
    "rbac.authorization.k8s.io/v1": _RBAC_KINDS,
    "rbac.authorization.k8s.io/v1beta1": _RBAC_KINDS,
    "rbac.authorization.k8s.io/v1alpha1": _RBAC_KINDS,
    "scheduling.k8s.io/v1": frozenset({"PriorityClass"}),
    "scheduling.k8s.io/v1beta1": frozenset({"PriorityClass"}),
    "scheduling.k8s.io/v1alpha1": frozenset({"PriorityClass"}),
    "storage.k8s.io/v1": frozenset({"StorageClass", "VolumeAttachment", "CSIDriver", "CSINode"}),
    "storage.k8s.io/v1beta1": frozenset(
        {"StorageClass", "VolumeAttachment", "CSIDriver", "CSINode", "CSIStorageCapacity"}
    ),
    "storage.k8s.io/v1alpha1": frozenset({"VolumeAttachment", "CSIStorageCapacity"}),
}

# Kinds registered alongside every known group version.
_META_KINDS = frozenset(
    {
        "Status",
        "WatchEvent",
        "DeleteOptions",
        "ListOptions",
        "GetOptions",
        "CreateOptions",
        "UpdateOptions",
        "PatchOptions",
        "ExportOptions",
    }
)


class DecodeError(ValueError):
    """Raised when bytes do not hold a single known Kubernetes resource."""


def is_known_kind(api_version: str, kind: str) -> bool:
    """True if the kind is registered for the given API version."""
    kinds = _KNOWN_KINDS.get(api_version)
    if kinds is None:
        return False
    if kind in kinds or kind in _META_KINDS:
        return True
    return kind.endswith("List") and kind[: -len("List")] in kinds


def decode_resource(data: Union[bytes, str]) -> Resource:
    """Decode a YAML or JSON document into a resource mapping."""
    text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
    try:
        obj = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise DecodeError(f"invalid yaml: {err}") from err
    if obj is None:
        raise DecodeError("Object 'Kind' is missing in empty document")
    if not isinstance(obj, dict):
        raise DecodeError(f"expected a mapping but got {type(obj).__name__}")

    kind = obj.get("kind")
    api_version = obj.get("apiVersion")
    if not isinstance(kind, str) or not kind:
        raise DecodeError("Object 'Kind' is missing")
    if not isinstance(api_version, str) or not api_version:
        raise DecodeError("Object 'apiVersion' is missing")
    if not is_known_kind(api_version, kind):
        raise DecodeError(f'no kind "{kind}" is registered for version "{api_version}"')
    return obj


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def encode_resource(resource: Resource) -> bytes:
    """Encode a resource mapping as YAML with sorted keys."""
    if not isinstance(resource, Mapping):
        raise TypeError(f"expected a mapping but got {type(resource).__name__}")
    text = yaml.safe_dump(
        _plain(resource), sort_keys=True, default_flow_style=False, allow_unicode=True
    )
    return text.encode("utf-8")