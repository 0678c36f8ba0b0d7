"""Fixes that change pod-level annotations."""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Optional

from kubeaudit import k8s
from kubeaudit.k8s import Resource
from kubeaudit.result import PendingFix


def _pod_meta(resource: Resource) -> MutableMapping:
    meta = k8s.get_pod_object_meta(resource)
    if meta is None:
        raise TypeError("resource has no pod-level metadata")
    return meta


def _annotations(resource: Resource, create: bool) -> Optional[MutableMapping]:
    meta = _pod_meta(resource)
    if meta.get("annotations") is None and create:
        meta["annotations"] = {}
    return meta.get("annotations")


@dataclass
class BySettingPodAnnotation(PendingFix):
    """Set a pod-level annotation to a value."""

    key: str
    value: str

    def apply(self, resource: Resource) -> list[Resource]:
        _annotations(resource, create=True)[self.key] = self.value
        return []

    def plan(self) -> str:
        return f"Set pod-level annotation '{self.key}' to '{self.value}'"


@dataclass
class ByAddingPodAnnotation(PendingFix):
    """Add a pod-level annotation."""

    key: str
    value: str

    def apply(self, resource: Resource) -> list[Resource]:
        _annotations(resource, create=True)[self.key] = self.value
        return []

    def plan(self) -> str:
        return f"Add pod-level annotation '{self.key}: {self.value}'"


@dataclass
class ByRemovingPodAnnotation(PendingFix):
    """Remove a pod-level annotation."""

    key: str

    def apply(self, resource: Resource) -> list[Resource]:
        annotations = _annotations(resource, create=False)
        if annotations is not None:
            annotations.pop(self.key, None)
        return []

    def plan(self) -> str:
        return f"Remove pod-level annotation '{self.key}'"