# kubeaudit

`kubeaudit` is a library for running security auditors over Kubernetes
resources. Resources can come from three places:

- **a manifest** – YAML text, bytes or an open file
  (`Kubeaudit.audit_manifest`);
- **a kubeconfig** – the cluster named by the current context of a kubeconfig
  file (`Kubeaudit.audit_local`);
- **the enclosing cluster** – when the code runs in a pod, using the pod's
  service-account token (`Kubeaudit.audit_cluster`).

## Auditors

The package does not ship any auditors; you supply them. An auditor subclasses
`kubeaudit.auditor.Auditable` and implements `audit(resource, resources)`. It
receives one resource (a plain `dict` as decoded from YAML/JSON) and the list
of every resource in the same audit, and returns a list of
`kubeaudit.result.AuditResult`.

An `AuditResult` has a `name`, a `severity` (`SeverityLevel.INFO`, `WARN` or
`ERROR`), a `message`, a `metadata` dict of strings, and an optional
`pending_fix`. A pending fix subclasses `kubeaudit.result.PendingFix` with
`plan()` (a description) and `apply(resource)` (modifies the resource in place
and returns any newly created resources). `AuditResult.fix(resource)` applies
it; `AuditResult.fix_plan()` returns the plan or `None`.

`kubeaudit.annotations` provides fixes for pod-level annotations:
`BySettingPodAnnotation(key, value)`, `ByAddingPodAnnotation(key, value)` and
`ByRemovingPodAnnotation(key)`.

`kubeaudit.k8s` has helpers for resource dicts: `get_object_meta`,
`get_pod_object_meta`, `get_pod_spec`, `get_pod_template_spec`,
`get_containers`, `get_init_containers`, `get_annotations`, `get_labels`,
`is_supported_resource_type`, and constructors such as `new_deployment()` and
`new_pod()`.

## Auditing a manifest

```python
import sys

from kubeaudit.annotations import BySettingPodAnnotation
from kubeaudit.auditor import Auditable, Kubeaudit
from kubeaudit.k8s import get_annotations
from kubeaudit.result import AuditResult, SeverityLevel


class SeccompAuditor(Auditable):
    def audit(self, resource, resources):
        key = "seccomp.security.alpha.kubernetes.io/pod"
        if key in (get_annotations(resource) or {}):
            return []
        return [
            AuditResult(
                name="SeccompAnnotationMissing",
                severity=SeverityLevel.ERROR,
                message="Seccomp annotation is missing.",
                pending_fix=BySettingPodAnnotation(key=key, value="runtime/default"),
            )
        ]


auditor = Kubeaudit([SeccompAuditor()])

with open("deployment.yaml") as manifest:
    report = auditor.audit_manifest(manifest)

report.print_results()
report.print_plan(sys.stdout)

if report.has_errors():
    sys.exit(1)
```

`Kubeaudit([])` raises `ValueError("no auditors enabled")`.

The manifest is split on `---`. Each part that decodes to a resource of a
known `apiVersion`/`kind` is audited. Known kinds that cannot be audited (for
example `ConfigMap`) get a single `WARN` result named `Unsupported resource`
instead. Parts that are not known resources are kept with their bytes only and
have no results. If the manifest is not valid YAML,
`kubeaudit.runtime.DecodeError` is raised.

Auditable kinds are Pod, PodTemplate, ReplicationController, Deployment,
DaemonSet, StatefulSet, Job, CronJob (`batch/v1beta1`), Namespace,
NetworkPolicy, Service and ServiceAccount, including the older `apps` and
`extensions` versions of the workload kinds.

## Local and cluster mode

```python
from kubeaudit.auditor import Kubeaudit
from kubeaudit.client import ClientOptions

auditor = Kubeaudit([SeccompAuditor()])

# A kubeconfig path, or "" to use $KUBECONFIG, then ~/.kube/config,
# then the in-cluster configuration.
report = auditor.audit_local("/path/to/kubeconfig", ClientOptions(namespace="default"))

# Only inside a pod; raises RuntimeError otherwise.
report = auditor.audit_cluster(ClientOptions())
```

A missing kubeconfig path raises `kubeaudit.client.KubeConfigError`.
`ClientOptions(namespace="", include_generated=False)` selects one namespace
(all by default) and whether resources with owner references, such as pods
created by a deployment, are kept. Kubeconfig files are read for the current
context's server, CA (file or data), `insecure-skip-tls-verify`, bearer token
or token file, client certificate and key, and username/password. Resource
lists that fail to load are logged and skipped.

## Reading results

- `report.results()` – one `WorkloadResult` per resource with findings.
- `report.raw_results()` – every resource, including clean ones.
- `report.results_with_min_severity(level)` – findings at or above `level`.
- `report.has_errors()` – whether any finding has `ERROR` severity.
- `report.print_plan(writer)` – writes `*  <plan>` for each pending fix.

A `WorkloadResult` has `resource` (a `KubeResource` with `object` and the
original `raw` bytes) and `audit_results`.

## Output

`report.print_results(**kwargs)` passes its arguments to
`kubeaudit.printer.Printer`:

- `writer` – a text stream (default `sys.stdout`);
- `min_severity` – default `SeverityLevel.INFO`;
- `color` – ANSI colours, default `True` (no colour codes on Windows);
- `formatter` – a `logging.Formatter`. Without one the output is a readable
  block per resource; with one each finding is logged as a record whose
  `fields` attribute holds `AuditResultName`, `ResourceKind`,
  `ResourceApiVersion`, `ResourceName`, `ResourceNamespace` and the metadata.

`kubeaudit.printer.JsonFormatter` writes such records as one JSON object per
line with `level`, `msg` and `time` keys.

```python
import io
from kubeaudit.printer import JsonFormatter
from kubeaudit.result import SeverityLevel

out = io.StringIO()
report.print_results(writer=out, min_severity=SeverityLevel.WARN, formatter=JsonFormatter())
```

`kubeaudit.options.with_logger(formatter)` returns an option for
`Kubeaudit(auditors, with_logger(formatter))` that sets the formatter of the
`kubeaudit` logger's handler.

## Override labels

`kubeaudit.override` builds labels that turn an auditor off for a pod
(`audit.kubernetes.io/pod.<label>`), a namespace
(`audit.kubernetes.io/namespace.<label>`) or a container
(`container.audit.kubernetes.io/<container>.<label>`). `apply_override`
turns a finding into an `INFO` result named `<name>Allowed` without a fix,
recording a label value other than `true` as `OverrideReason`; with no finding
it returns a `RedundantAuditorOverride` warning.

## Merging YAML

`kubeaudit.yamlmerge.merge(original, fixed)` merges a fixed document into the
original: keys and list items missing from the fixed one are dropped, new ones
are appended, and the original key order is kept. List items are matched by
the field that identifies them in Kubernetes (a container's `name`, a volume
mount's `mountPath`, and so on). Comments are not preserved in the output.
`kubeaudit.runtime.encode_resource` turns a resource dict back into YAML.

## What it does not do

- There are no built-in auditors and no command-line program.
- `Report` has no method that writes a fixed manifest. Fixes can be applied
  with `AuditResult.fix` and written back with `encode_resource` and `merge`:

```python
from kubeaudit.runtime import encode_resource
from kubeaudit.yamlmerge import merge

for result in report.raw_results():
    resource = result.resource
    if resource.object is None:
        continue
    for audit_result in result.audit_results:
        audit_result.fix(resource.object)
    fixed = merge(resource.raw, encode_resource(resource.object))
```

- Kubeconfig `exec` and auth-provider plugins are not supported.