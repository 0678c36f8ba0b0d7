"""Rules for deciding which items of two YAML sequences correspond."""

from __future__ import annotations

from typing import Optional

from kubeaudit.yamlnodes import (
    Node,
    NodeKind,
    deep_equal,
    equal_value_for_key,
    find_val_in_map,
)

# Sequence key -> key whose value identifies an item of that sequence.
IDENTIFYING_KEY: dict[str, str] = {
    "allowedFlexVolumes": "driver",
    "allowedHostPaths": "pathPrefix",
    "allowedTopologies": "matchLabelExpressions",
    "clusterRoleSelectors": "matchExpressions",
    "containers": "name",
    "egress": "ports",
    "env": "name",
    "hostAliases": "ip",
    # Assumes a header name appears only once per httpHeaders list.
    "httpHeaders": "name",
    "imagePullSecrets": "name",
    "initContainers": "name",
    "matchExpressions": "key",
    "matchFields": "key",
    "options": "name",
    "matchLabelExpressions": "key",
    "pending": "name",
    "readinessGates": "conditionType",
    "requiredDuringSchedulingIgnoredDuringExecution": "labelSelector",
    "secrets": "name",
    "subjects": "name",
    "subsets": "addresses",
    "sysctls": "name",
    "taints": "key",
    "volumeDevices": "devicePath",
    "volumeMounts": "mountPath",
    "volumes": "name",
}

# Sequence key -> alternative identifying keys, tried in order.
_ALTERNATIVE_KEYS: dict[str, tuple[str, ...]] = {
    "addresses": ("hostname", "ip"),
    "notReadyAddresses": ("hostname", "ip"),
    "ingress": ("ports", "from"),
    "items": ("key", "path"),
    "nodeSelectorTerms": ("matchExpressions", "matchFields"),
    "ownerReferences": ("uid", "name"),
    "preferredDuringSchedulingIgnoredDuringExecution": ("preference", "podAffinityTerm"),
    "ports": ("containerPort", "port"),
    "tls": ("secretName", "hosts"),
}

_ENV_FROM_REFS = ("configMapRef", "secretRef")

_PROJECTION_SOURCES = (
    ("configMap", "name"),
    ("downwardAPI", "items"),
    ("secret", "name"),
    ("serviceAccountToken", "path"),
)


def _nested_value_match(outer: str, inner: str, item1: Node, item2: Node) -> Optional[bool]:
    """Compare ``item[outer][inner]``; None if ``outer`` is missing from ``item1``."""
    found1 = find_val_in_map(outer, item1)
    if found1 is None:
        return None
    found2 = find_val_in_map(outer, item2)
    if found2 is None:
        return False
    return equal_value_for_key(inner, found1[0], found2[0])


def _env_from_match(item1: Node, item2: Node) -> bool:
    for ref in _ENV_FROM_REFS:
        found1 = find_val_in_map(ref, item1)
        found2 = find_val_in_map(ref, item2)
        if found1 is not None and found2 is not None:
            return equal_value_for_key("name", found1[0], found2[0])
    return False


def _sources_match(item1: Node, item2: Node) -> bool:
    for outer, inner in _PROJECTION_SOURCES:
        result = _nested_value_match(outer, inner, item1, item2)
        if result is not None:
            return result
    return False


def _volume_claim_match(item1: Node, item2: Node) -> bool:
    return bool(_nested_value_match("metadata", "name", item1, item2))


def sequence_item_match(sequence_key: str, item1: Node, item2: Node) -> bool:
    """True if two items of the sequence stored under ``sequence_key`` correspond.

    Mapping items are matched on the identifying key(s) of the sequence; other
    items, and items of unknown sequences, are matched by deep equality.
    """
    if item1.kind is not item2.kind:
        return False
    if not sequence_key or item1.kind is not NodeKind.MAPPING:
        return deep_equal(item1, item2)

    id_key = IDENTIFYING_KEY.get(sequence_key)
    if id_key is not None:
        return equal_value_for_key(id_key, item1, item2)

    alternatives = _ALTERNATIVE_KEYS.get(sequence_key)
    if alternatives is not None:
        return any(equal_value_for_key(key, item1, item2) for key in alternatives)

    if sequence_key == "rules":
        return (
            equal_value_for_key("resources", item1, item2)
            or equal_value_for_key("host", item1, item2)
            or deep_equal(item1, item2)
        )
    if sequence_key == "envFrom":
        return _env_from_match(item1, item2)
    if sequence_key == "sources":
        return _sources_match(item1, item2)
    if sequence_key == "volumeClaimTemplates":
        return _volume_claim_match(item1, item2)

    return deep_equal(item1, item2)


def find_item_in_sequence(
    sequence_key: str, find_val: Node, sequence_node: Node
) -> Optional[int]:
    """Return the index of the first item matching ``find_val``, or None."""
    return next(
        (
            index
            for index, item in enumerate(sequence_node.content)
            if sequence_item_match(sequence_key, item, find_val)
        ),
        None,
    )


def is_item_in_sequence(sequence_key: str, find_val: Node, sequence_node: Node) -> bool:
    return find_item_in_sequence(sequence_key, find_val, sequence_node) is not None