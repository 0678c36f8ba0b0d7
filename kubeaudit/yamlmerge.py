"""Merge a fixed YAML document into the original one, keeping its order and comments."""

from __future__ import annotations

import logging
from typing import Optional, Union

import yaml

from kubeaudit.matching import find_item_in_sequence, is_item_in_sequence
from kubeaudit.yamlnodes import MAP_TAG, SEQ_TAG, Node, NodeKind, find_key_in_map, is_key_in_map

log = logging.getLogger(__name__)

_LONG_PREFIX = "tag:yaml.org,2002:"
_FLOW = "flow"


class YamlMergeError(ValueError):
    """Raised when documents cannot be parsed, merged or rendered."""


class _Dumper(yaml.SafeDumper):
    """Dumper that indents sequences nested in mappings."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def _short_tag(tag: Optional[str]) -> str:
    if not tag:
        return ""
    if tag.startswith(_LONG_PREFIX):
        return "!!" + tag[len(_LONG_PREFIX):]
    return tag


def _long_tag(tag: str) -> str:
    if tag.startswith("!!"):
        return _LONG_PREFIX + tag[2:]
    return tag


def _from_yaml(node: yaml.Node) -> Node:
    position = {"line": node.start_mark.line + 1, "column": node.start_mark.column + 1}
    tag = _short_tag(node.tag)
    if isinstance(node, yaml.ScalarNode):
        return Node(
            kind=NodeKind.SCALAR, tag=tag, value=node.value, style=node.style or "", **position
        )
    style = _FLOW if node.flow_style else ""
    if isinstance(node, yaml.SequenceNode):
        content = [_from_yaml(child) for child in node.value]
        return Node(kind=NodeKind.SEQUENCE, tag=tag, content=content, style=style, **position)
    content = [_from_yaml(part) for pair in node.value for part in pair]
    return Node(kind=NodeKind.MAPPING, tag=tag, content=content, style=style, **position)


def _to_yaml(node: Node) -> yaml.Node:
    if node.kind is NodeKind.DOCUMENT:
        if not node.content:
            raise YamlMergeError("cannot render an empty document")
        return _to_yaml(node.content[0])
    if node.kind is NodeKind.ALIAS:
        if node.alias is None:
            raise YamlMergeError("alias node has no target")
        return _to_yaml(node.alias)
    if node.kind is NodeKind.SCALAR:
        tag = _long_tag(node.tag) if node.tag else yaml.resolver.Resolver().resolve(
            yaml.ScalarNode, node.value, (True, False)
        )
        return yaml.ScalarNode(tag, node.value, style=node.style or None)
    flow = node.style == _FLOW
    if node.kind is NodeKind.SEQUENCE:
        tag = _long_tag(node.tag or SEQ_TAG)
        return yaml.SequenceNode(tag, [_to_yaml(child) for child in node.content], flow_style=flow)
    tag = _long_tag(node.tag or MAP_TAG)
    pairs = [(_to_yaml(key), _to_yaml(value)) for key, value in node.pairs()]
    return yaml.MappingNode(tag, pairs, flow_style=flow)


def parse_document(data: Union[bytes, str, None]) -> Node:
    """Parse a single YAML document whose root is a mapping into a document node."""
    if data is None:
        data = b""
    text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
    try:
        root = yaml.compose(text, Loader=yaml.SafeLoader)
    except yaml.YAMLError as err:
        raise YamlMergeError(f"invalid yaml: {err}") from err
    if root is None:
        raise YamlMergeError("expected original yaml document to have one child but got 0")
    if not isinstance(root, yaml.MappingNode):
        raise YamlMergeError(
            "expected mapping node as child of original yaml document node "
            f"but got {type(root).__name__}"
        )
    return Node(kind=NodeKind.DOCUMENT, content=[_from_yaml(root)], line=1, column=1)


def render_document(node: Node) -> bytes:
    """Serialise a node tree to YAML with a two-space indent."""
    try:
        text = yaml.serialize(
            _to_yaml(node),
            Dumper=_Dumper,
            default_flow_style=False,
            indent=2,
            width=2**31 - 1,
            allow_unicode=True,
        )
    except yaml.YAMLError as err:
        raise YamlMergeError(f"error marshaling merged yaml: {err}") from err
    return text.encode("utf-8")


def merge(orig_data: Union[bytes, str, None], fixed_data: Union[bytes, str, None]) -> bytes:
    """Merge ``fixed_data`` into ``orig_data``, keeping the original order and comments."""
    orig = parse_document(orig_data)
    fixed = parse_document(fixed_data)
    merged = orig.shallow_copy()
    merged.content = [merge_maps(orig.content[0], fixed.content[0])]
    return render_document(merged)


def merge_maps(orig: Node, fixed: Node) -> Node:
    """Recursively merge two mapping nodes.

    Keys missing from ``fixed`` are dropped, keys new in ``fixed`` are appended,
    and shared keys take the value from ``fixed`` unless both values are
    collections, in which case they are merged.
    """
    merged = orig.shallow_copy()
    for key, value in orig.pairs():
        if is_key_in_map(key, fixed):
            merged.content.extend((key, value))

    for fixed_key, fixed_val in fixed.pairs():
        key_index = find_key_in_map(fixed_key, merged)
        if key_index is None:
            merged.content.extend((fixed_key, fixed_val))
            continue

        val_index = key_index + 1
        merged_val = merged.content[val_index]
        if fixed_val.kind is not merged_val.kind:
            merged.content[val_index] = fixed_val
        elif fixed_val.kind is NodeKind.SCALAR:
            merged_val.value = fixed_val.value
        elif fixed_val.kind is NodeKind.MAPPING:
            merged.content[val_index] = merge_maps(merged_val, fixed_val)
        elif fixed_val.kind is NodeKind.SEQUENCE:
            merged.content[val_index] = merge_sequences(fixed_key.value, merged_val, fixed_val)
        else:
            log.error("Unexpected yaml node kind %s", fixed_val.kind)

    return merged


def merge_sequences(sequence_key: str, orig: Node, fixed: Node) -> Node:
    """Recursively merge two sequence nodes stored under ``sequence_key``."""
    merged = orig.shallow_copy()
    merged.content = [
        item for item in orig.content if is_item_in_sequence(sequence_key, item, fixed)
    ]

    for fixed_item in fixed.content:
        index = find_item_in_sequence(sequence_key, fixed_item, merged)
        if index is None:
            merged.content.append(fixed_item)
            continue
        merged_item = merged.content[index]
        if fixed_item.kind is not merged_item.kind:
            merged.content[index] = fixed_item
        elif fixed_item.kind is NodeKind.MAPPING:
            merged.content[index] = merge_maps(merged_item, fixed_item)
        elif fixed_item.kind is NodeKind.SEQUENCE:
            merged.content[index] = merge_sequences(sequence_key, merged_item, fixed_item)

    return merged