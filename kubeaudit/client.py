"""Access to the resources of a Kubernetes cluster over its HTTP API."""

from __future__ import annotations

import base64
import copy
import logging
import os
import tempfile
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

import requests
import yaml

from kubeaudit import k8s
from kubeaudit.k8s import Resource

log = logging.getLogger(__name__)

SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")

# Kind -> (group version, plural resource name, namespaced)
_API_RESOURCES: dict[str, tuple[str, str, bool]] = {
    "DaemonSet": ("apps/v1", "daemonsets", True),
    "Deployment": ("apps/v1", "deployments", True),
    "Pod": ("v1", "pods", True),
    "PodTemplate": ("v1", "podtemplates", True),
    "ReplicationController": ("v1", "replicationcontrollers", True),
    "StatefulSet": ("apps/v1", "statefulsets", True),
    "NetworkPolicy": ("networking.k8s.io/v1", "networkpolicies", True),
    "CronJob": ("batch/v1beta1", "cronjobs", True),
    "ServiceAccount": ("v1", "serviceaccounts", True),
    "Namespace": ("v1", "namespaces", False),
    "Service": ("v1", "services", True),
    "Job": ("batch/v1", "jobs", True),
}

_FETCH_ERRORS = (requests.RequestException, OSError, ValueError)


class KubeConfigError(OSError):
    """Raised when a kubeconfig file cannot be opened."""

    def __init__(self, message: str = "unable to open kubeconfig file") -> None:
        super().__init__(message)


@dataclass
class ClientOptions:
    """Options that select which resources are fetched from a cluster."""

    namespace: str = ""
    include_generated: bool = False


@dataclass
class ClusterConfig:
    """How to reach and authenticate to a cluster's API server."""

    host: str
    bearer_token: Optional[str] = None
    ca_file: Optional[str] = None
    verify: bool = True
    client_cert: Optional[tuple[str, str]] = None
    basic_auth: Optional[tuple[str, str]] = None


class _ConfigSource(Protocol):
    def in_cluster_config(self) -> ClusterConfig: ...


class _Clientset(Protocol):
    def list(self, kind: str, namespace: str = "", field_selector: str = "") -> list: ...

    def server_version(self) -> dict: ...


def _join_host_port(host: str, port: str) -> str:
    if ":" in host and not host.startswith("["):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass
class DefaultClient:
    """Loads the configuration available to a pod running inside a cluster."""

    environ: Mapping[str, str] = field(default_factory=lambda: os.environ)
    service_account_dir: Path = SERVICE_ACCOUNT_DIR

    def in_cluster_config(self) -> ClusterConfig:
        """Return the in-cluster configuration; raise if not running in a cluster."""
        host = self.environ.get("KUBERNETES_SERVICE_HOST")
        port = self.environ.get("KUBERNETES_SERVICE_PORT")
        if not host or not port:
            raise RuntimeError(
                "unable to load in-cluster configuration, KUBERNETES_SERVICE_HOST and "
                "KUBERNETES_SERVICE_PORT must be defined"
            )
        bearer_token = (Path(self.service_account_dir) / "token").read_text().strip()
        ca_path = Path(self.service_account_dir) / "ca.crt"
        ca_file = str(ca_path) if ca_path.is_file() else None
        if ca_file is None:
            log.error("Expected to load root CA config from %s, but it is missing", ca_path)
        return ClusterConfig(
            host=f"https://{_join_host_port(host, port)}",
            bearer_token=bearer_token,
            ca_file=ca_file,
        )


class HttpClientset:
    """A minimal client for listing resources from the Kubernetes API."""

    def __init__(
        self,
        config: ClusterConfig,
        session: Optional[Any] = None,
        timeout: float = 30.0,
    ) -> None:
        self.config = config
        self.session = session if session is not None else self._new_session(config)
        self.timeout = timeout

    @staticmethod
    def _new_session(config: ClusterConfig) -> requests.Session:
        session = requests.Session()
        session.verify = config.ca_file if config.ca_file else config.verify
        if config.client_cert is not None:
            session.cert = config.client_cert
        if config.bearer_token:
            session.headers["Authorization"] = f"Bearer {config.bearer_token}"
        elif config.basic_auth is not None:
            session.auth = config.basic_auth
        return session

    def _get(self, path: str, params: dict) -> Any:
        url = self.config.host.rstrip("/") + path
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def list(self, kind: str, namespace: str = "", field_selector: str = "") -> list:
        """List the resources of a kind, optionally in one namespace."""
        try:
            group_version, plural, namespaced = _API_RESOURCES[kind]
        except KeyError:
            raise ValueError(f"unsupported resource kind: {kind}") from None
        path = "/api/v1" if group_version == "v1" else f"/apis/{group_version}"
        if namespaced and namespace:
            path += f"/namespaces/{namespace}"
        path += f"/{plural}"
        params = {"fieldSelector": field_selector} if field_selector else {}
        data = self._get(path, params)
        return list((data or {}).get("items") or [])

    def server_version(self) -> dict:
        """Return the version information reported by the API server."""
        return self._get("/version", {})


def _named_entry(config: Mapping, section: str, name: Any, inner: str) -> Mapping:
    for entry in config.get(section) or []:
        if isinstance(entry, Mapping) and entry.get("name") == name:
            value = entry.get(inner)
            return value if isinstance(value, Mapping) else {}
    raise ValueError(f"invalid configuration: {section[:-1]} {name!r} not found")


def _resolve(base: Path, value: str) -> str:
    path = Path(value)
    return str(path if path.is_absolute() else base / path)


def _data_file(encoded: str) -> str:
    with tempfile.NamedTemporaryFile(delete=False, suffix=".pem") as handle:
        handle.write(base64.b64decode(encoded))
        return handle.name


def _file_setting(section: Mapping, key: str, base: Path) -> Optional[str]:
    encoded = section.get(f"{key}-data")
    if encoded:
        return _data_file(encoded)
    value = section.get(key)
    return _resolve(base, value) if value else None


def _load_kubeconfig(path: Path) -> ClusterConfig:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as err:
        raise ValueError(f"error loading kubeconfig {path}: {err}") from err
    if not isinstance(data, Mapping):
        raise ValueError(f"error loading kubeconfig {path}: not a kubeconfig file")

    current = data.get("current-context")
    if not current:
        raise ValueError("invalid configuration: no current context is set")
    context = _named_entry(data, "contexts", current, "context")
    cluster = _named_entry(data, "clusters", context.get("cluster"), "cluster")
    user_name = context.get("user")
    user = _named_entry(data, "users", user_name, "user") if user_name else {}

    server = cluster.get("server")
    if not server:
        raise ValueError("invalid configuration: no server found for cluster")

    base = path.parent
    bearer_token = user.get("token")
    token_file = user.get("tokenFile") or user.get("token-file")
    if not bearer_token and token_file:
        bearer_token = Path(_resolve(base, token_file)).read_text().strip()

    cert = _file_setting(user, "client-certificate", base)
    key = _file_setting(user, "client-key", base)
    username = user.get("username")
    basic_auth = (username, user.get("password") or "") if username else None

    return ClusterConfig(
        host=str(server),
        bearer_token=bearer_token or None,
        ca_file=_file_setting(cluster, "certificate-authority", base),
        verify=not cluster.get("insecure-skip-tls-verify", False),
        client_cert=(cert, key) if cert and key else None,
        basic_auth=basic_auth,
    )


def _default_kubeconfig_path(environ: Mapping[str, str]) -> Optional[Path]:
    env = environ.get("KUBECONFIG")
    if env:
        candidates = [Path(p) for p in env.split(os.pathsep) if p]
    else:
        candidates = [Path.home() / ".kube" / "config"]
    return next((p for p in candidates if p.is_file()), None)


def new_kube_client_local(config_path: str) -> HttpClientset:
    """Create a client from a kubeconfig file, or from the default one if no path is given."""
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise KubeConfigError()
        return HttpClientset(_load_kubeconfig(path))

    path = _default_kubeconfig_path(os.environ)
    if path is not None:
        return HttpClientset(_load_kubeconfig(path))
    try:
        config = DefaultClient().in_cluster_config()
    except (RuntimeError, OSError) as err:
        raise ValueError("invalid configuration: no configuration has been provided") from err
    return HttpClientset(config)


def new_kube_client_cluster(client: _ConfigSource) -> HttpClientset:
    """Create a client from the in-cluster configuration."""
    config = client.in_cluster_config()
    log.info("Running inside cluster, using the cluster config")
    return HttpClientset(config)


def is_running_in_cluster(client: _ConfigSource) -> bool:
    """True if an in-cluster configuration can be loaded."""
    try:
        client.in_cluster_config()
    except Exception:
        return False
    return True


def _fetch(
    clientset: _Clientset,
    kind: str,
    factory: Callable[[], dict],
    namespace: str,
    field_selector: str = "",
) -> list[Resource]:
    try:
        items = clientset.list(kind, namespace, field_selector)
    except _FETCH_ERRORS as err:
        log.error("%s", err)
        return []
    template = factory()
    resources = []
    for item in items:
        resource = copy.deepcopy(item)
        # The API omits type information on listed items, so fill it in.
        resource["apiVersion"] = template["apiVersion"]
        resource["kind"] = template["kind"]
        resources.append(resource)
    return resources


def _exclude_generated(resources: list[Resource]) -> list[Resource]:
    """Drop resources that are owned by another resource (e.g. pods of a deployment)."""
    kept = []
    for resource in resources:
        meta = k8s.get_object_meta(resource)
        if not (meta and meta.get("ownerReferences")):
            kept.append(resource)
    return kept


def get_daemon_sets(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "DaemonSet", k8s.new_daemon_set, options.namespace)


def get_deployments(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "Deployment", k8s.new_deployment, options.namespace)


def get_pods(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "Pod", k8s.new_pod, options.namespace)


def get_pod_templates(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "PodTemplate", k8s.new_pod_template, options.namespace)


def get_replication_controllers(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(
        clientset, "ReplicationController", k8s.new_replication_controller, options.namespace
    )


def get_stateful_sets(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "StatefulSet", k8s.new_stateful_set, options.namespace)


def get_cron_jobs(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "CronJob", k8s.new_cron_job, options.namespace)


def get_network_policies(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "NetworkPolicy", k8s.new_network_policy, options.namespace)


def get_service_accounts(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "ServiceAccount", k8s.new_service_account, options.namespace)


def get_namespaces(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    """Get namespaces; only the selected one if a namespace is set in the options."""
    selector = f"metadata.name={options.namespace}" if options.namespace else ""
    return _fetch(clientset, "Namespace", k8s.new_namespace, "", selector)


def get_services(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "Service", k8s.new_service, options.namespace)


def get_jobs(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    return _fetch(clientset, "Job", k8s.new_job, options.namespace)


def get_all_resources(clientset: _Clientset, options: ClientOptions) -> list[Resource]:
    """Get every supported resource from the cluster."""
    getters = (
        get_daemon_sets,
        get_deployments,
        get_pods,
        get_pod_templates,
        get_replication_controllers,
        get_stateful_sets,
        get_network_policies,
        get_cron_jobs,
        get_service_accounts,
        get_namespaces,
        get_services,
        get_jobs,
    )
    resources = [resource for getter in getters for resource in getter(clientset, options)]
    if not options.include_generated:
        resources = _exclude_generated(resources)
    return resources


def get_kubernetes_version(clientset: _Clientset) -> dict:
    """Return the version information of the cluster's API server."""
    return clientset.server_version()