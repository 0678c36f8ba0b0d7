"""Helpers for Kubernetes resources represented as plain mappings."""

from collections.abc import Mapping, MutableMapping
from enum import Enum, auto
from typing import Any, Optional

Resource = MutableMapping[str, Any]


class _Shape(Enum):
    CRON_JOB = auto()
    WORKLOAD = auto()
    REPLICATION_CONTROLLER = auto()
    POD_TEMPLATE = auto()
    POD = auto()
    NAMESPACE = auto()
    SERVICE_ACCOUNT = auto()
    FLAT = auto()


_SUPPORTED: dict[tuple[str, str], _Shape] = {
    ("batch/v1beta1", "CronJob"): _Shape.CRON_JOB,
    ("apps/v1", "DaemonSet"): _Shape.WORKLOAD,
    # new_daemon_set() spells the kind this way; accept it as well.
    ("apps/v1", "Daemonset"): _Shape.WORKLOAD,
    ("extensions/v1beta1", "DaemonSet"): _Shape.WORKLOAD,
    ("apps/v1beta2", "DaemonSet"): _Shape.WORKLOAD,
    ("extensions/v1beta1", "Deployment"): _Shape.WORKLOAD,
    ("apps/v1", "Deployment"): _Shape.WORKLOAD,
    ("apps/v1beta1", "Deployment"): _Shape.WORKLOAD,
    ("apps/v1beta2", "Deployment"): _Shape.WORKLOAD,
    ("batch/v1", "Job"): _Shape.WORKLOAD,
    ("v1", "Namespace"): _Shape.NAMESPACE,
    ("networking.k8s.io/v1", "NetworkPolicy"): _Shape.FLAT,
    ("v1", "Pod"): _Shape.POD,
    ("v1", "PodTemplate"): _Shape.POD_TEMPLATE,
    ("v1", "ReplicationController"): _Shape.REPLICATION_CONTROLLER,
    ("v1", "ServiceAccount"): _Shape.SERVICE_ACCOUNT,
    ("v1", "Service"): _Shape.FLAT,
    ("apps/v1", "StatefulSet"): _Shape.WORKLOAD,
    ("apps/v1beta1", "StatefulSet"): _Shape.WORKLOAD,
}


def api_version_and_kind(resource: Any) -> tuple[str, str]:
    """Return the ``(apiVersion, kind)`` pair of a resource."""
    if not isinstance(resource, Mapping):
        return "", ""
    return str(resource.get("apiVersion") or ""), str(resource.get("kind") or "")


def _shape(resource: Any) -> Optional[_Shape]:
    return _SUPPORTED.get(api_version_and_kind(resource))


def _child(mapping: MutableMapping, key: str) -> MutableMapping:
    """Return the mapping under ``key``, creating an empty one if absent."""
    value = mapping.get(key)
    if not isinstance(value, MutableMapping):
        value = {}
        mapping[key] = value
    return value


def is_supported_resource_type(resource: Any) -> bool:
    """True if the resource is a kind that can be audited."""
    return _shape(resource) is not None


def is_namespace_v1(resource: Any) -> bool:
    return api_version_and_kind(resource) == ("v1", "Namespace")


def is_pod_v1(resource: Any) -> bool:
    return api_version_and_kind(resource) == ("v1", "Pod")


def get_object_meta(resource: Any) -> Optional[MutableMapping]:
    """Return the top-level metadata of a supported resource."""
    if _shape(resource) is None:
        return None
    return _child(resource, "metadata")


def get_pod_template_spec(resource: Any) -> Optional[MutableMapping]:
    """Return the pod template of a resource, or None if it has none."""
    shape = _shape(resource)
    if shape is _Shape.CRON_JOB:
        job_template = _child(_child(resource, "spec"), "jobTemplate")
        return _child(_child(job_template, "spec"), "template")
    if shape is _Shape.WORKLOAD:
        return _child(_child(resource, "spec"), "template")
    if shape is _Shape.REPLICATION_CONTROLLER:
        spec = resource.get("spec")
        template = spec.get("template") if isinstance(spec, Mapping) else None
        return template if isinstance(template, MutableMapping) else None
    if shape is _Shape.POD_TEMPLATE:
        return _child(resource, "template")
    return None


def get_pod_object_meta(resource: Any) -> Optional[MutableMapping]:
    """Return the pod-level metadata, falling back to the top-level metadata."""
    template = get_pod_template_spec(resource)
    if template is not None:
        return _child(template, "metadata")
    return get_object_meta(resource)


def get_pod_spec(resource: Any) -> Optional[MutableMapping]:
    """Return the pod spec of a resource, or None if it has none."""
    template = get_pod_template_spec(resource)
    if template is not None:
        return _child(template, "spec")
    if _shape(resource) is _Shape.POD:
        return _child(resource, "spec")
    return None


def _container_list(pod_spec: Mapping, key: str) -> list:
    containers = pod_spec.get(key)
    if not isinstance(containers, list):
        return []
    return [c for c in containers if isinstance(c, MutableMapping)]


def get_init_containers(resource: Any) -> list:
    """Return the init containers of a resource's pod spec."""
    pod_spec = get_pod_spec(resource)
    if pod_spec is None:
        return []
    return _container_list(pod_spec, "initContainers")


def get_containers(resource: Any) -> list:
    """Return the containers followed by the init containers of a resource."""
    pod_spec = get_pod_spec(resource)
    if pod_spec is None:
        return []
    return _container_list(pod_spec, "containers") + _container_list(pod_spec, "initContainers")


def get_annotations(resource: Any) -> Optional[MutableMapping]:
    """Return the pod-level annotations, or the top-level ones for pod-less resources."""
    meta = get_pod_object_meta(resource)
    return None if meta is None else meta.get("annotations")


def get_labels(resource: Any) -> Optional[MutableMapping]:
    """Return the pod-level labels, or the top-level ones for pod-less resources."""
    meta = get_pod_object_meta(resource)
    return None if meta is None else meta.get("labels")


def _pod_template_spec() -> dict:
    return {"metadata": {}, "spec": {}}


def _base(api_version: str, kind: str) -> dict:
    return {"apiVersion": api_version, "kind": kind, "metadata": {}}


def new_deployment() -> dict:
    return {**_base("apps/v1", "Deployment"), "spec": {"template": _pod_template_spec()}}


def new_pod() -> dict:
    return {**_base("v1", "Pod"), "spec": {}}


def new_namespace() -> dict:
    return {**_base("v1", "Namespace"), "spec": {}}


def new_daemon_set() -> dict:
    return {**_base("apps/v1", "Daemonset"), "spec": {"template": _pod_template_spec()}}


def new_replication_controller() -> dict:
    return {**_base("v1", "ReplicationController"), "spec": {"template": _pod_template_spec()}}


def new_stateful_set() -> dict:
    return {**_base("apps/v1", "StatefulSet"), "spec": {"template": _pod_template_spec()}}


def new_network_policy() -> dict:
    return {**_base("networking.k8s.io/v1", "NetworkPolicy"), "spec": {}}


def new_pod_template() -> dict:
    return {**_base("v1", "PodTemplate"), "template": _pod_template_spec()}


def new_cron_job() -> dict:
    return {
        **_base("batch/v1beta1", "CronJob"),
        "spec": {"jobTemplate": {"spec": {"template": _pod_template_spec()}}},
    }


def new_service_account() -> dict:
    return _base("v1", "ServiceAccount")


def new_service() -> dict:
    return _base("v1", "Service")


def new_job() -> dict:
    return {**_base("batch/v1", "Job"), "spec": {"template": _pod_template_spec()}}