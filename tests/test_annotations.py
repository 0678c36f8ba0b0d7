import pytest

from kubeaudit import k8s
from kubeaudit.annotations import (
    ByAddingPodAnnotation,
    ByRemovingPodAnnotation,
    BySettingPodAnnotation,
)


@pytest.mark.parametrize("fix_class", [BySettingPodAnnotation, ByAddingPodAnnotation])
def test_set_and_add(fix_class):
    resource = k8s.new_pod()
    fix = fix_class(key="mykey", value="myvalue")
    assert fix.plan()
    assert fix.apply(resource) == []
    assert k8s.get_annotations(resource) == {"mykey": "myvalue"}


def test_remove():
    resource = k8s.new_pod()
    k8s.get_pod_object_meta(resource)["annotations"] = {"mykey": "myvalue", "other": "x"}
    fix = ByRemovingPodAnnotation(key="mykey")
    assert fix.plan()
    fix.apply(resource)
    assert k8s.get_annotations(resource) == {"other": "x"}


def test_remove_without_annotations():
    resource = k8s.new_pod()
    assert ByRemovingPodAnnotation(key="mykey").apply(resource) == []
    assert k8s.get_annotations(resource) is None


def test_set_overwrites_existing_value():
    resource = k8s.new_pod()
    k8s.get_pod_object_meta(resource)["annotations"] = {"mykey": "old"}
    BySettingPodAnnotation(key="mykey", value="new").apply(resource)
    assert k8s.get_annotations(resource) == {"mykey": "new"}


def test_applies_at_pod_level_of_deployment():
    deployment = k8s.new_deployment()
    ByAddingPodAnnotation(key="mykey", value="myvalue").apply(deployment)
    assert deployment["spec"]["template"]["metadata"]["annotations"] == {"mykey": "myvalue"}
    assert "annotations" not in deployment["metadata"]


def test_plans():
    assert BySettingPodAnnotation("k", "v").plan() == "Set pod-level annotation 'k' to 'v'"
    assert ByAddingPodAnnotation("k", "v").plan() == "Add pod-level annotation 'k: v'"
    assert ByRemovingPodAnnotation("k").plan() == "Remove pod-level annotation 'k'"


def test_unsupported_resource():
    with pytest.raises(TypeError):
        BySettingPodAnnotation("k", "v").apply({"apiVersion": "v1", "kind": "Binding"})