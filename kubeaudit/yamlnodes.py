"""A YAML node tree that keeps comments, with order-insensitive comparison."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

STR_TAG = "!!str"
SEQ_TAG = "!!seq"
MAP_TAG = "!!map"


class NodeKind(Enum):
    """The kind of a YAML node."""

    DOCUMENT = 1
    SEQUENCE = 2
    MAPPING = 4
    SCALAR = 8
    ALIAS = 16


@dataclass
class Node:
    """A YAML node.

    Mapping nodes hold their keys and values alternately in ``content``.
    """

    kind: NodeKind
    tag: str = ""
    value: str = ""
    content: list[Node] = field(default_factory=list)
    style: str = ""
    anchor: str = ""
    alias: Optional[Node] = None
    head_comment: str = ""
    line_comment: str = ""
    foot_comment: str = ""
    line: int = 0
    column: int = 0

    def shallow_copy(self) -> Node:
        """Return a copy of this node with an empty ``content`` list."""
        return replace(self, content=[])

    def pairs(self):
        """Yield ``(key, value)`` pairs of a mapping node."""
        return zip(self.content[0::2], self.content[1::2])


def deep_equal(val1: Node, val2: Node) -> bool:
    """Compare two nodes, ignoring comments and the order of children."""
    if val1.kind is not val2.kind:
        return False
    if val1.kind is NodeKind.SCALAR:
        return equal_scalar(val1, val2)
    if val1.kind is NodeKind.MAPPING:
        return equal_map(val1, val2)
    if val1.kind is NodeKind.SEQUENCE:
        return equal_sequence(val1, val2)
    return False


def equal_scalar(val1: Node, val2: Node) -> bool:
    if val1.kind is not NodeKind.SCALAR or val2.kind is not NodeKind.SCALAR:
        return False
    return val1.tag == val2.tag and val1.value == val2.value


def equal_sequence(seq1: Node, seq2: Node) -> bool:
    """True if both sequences have the same length and every item of one is in the other."""
    if seq1.kind is not NodeKind.SEQUENCE or seq2.kind is not NodeKind.SEQUENCE:
        return False
    if len(seq1.content) != len(seq2.content):
        return False
    return all(
        any(deep_equal(item, other) for other in seq2.content) for item in seq1.content
    )


def equal_map(map1: Node, map2: Node) -> bool:
    """True if both mappings hold equal values for the same keys, in any order."""
    if map1.kind is not NodeKind.MAPPING or map2.kind is not NodeKind.MAPPING:
        return False
    if len(map1.content) != len(map2.content):
        return False
    for key, value in map1.pairs():
        index = find_key_in_map(key, map2)
        if index is None or not deep_equal(value, map2.content[index + 1]):
            return False
    return True


def equal_value_for_key(find_key: str, map1: Node, map2: Node) -> bool:
    """True if both mappings hold an equal value for the given key."""
    if map1.kind is not NodeKind.MAPPING or map2.kind is not NodeKind.MAPPING:
        return False
    found1 = find_val_in_map(find_key, map1)
    found2 = find_val_in_map(find_key, map2)
    if found1 is None or found2 is None:
        return False
    return deep_equal(found1[0], found2[0])


def is_key_in_map(find_key: Node, map_node: Node) -> bool:
    return find_key_in_map(find_key, map_node) is not None


def find_key_in_map(find_key: Node, map_node: Node) -> Optional[int]:
    """Return the index of ``find_key`` among the mapping's children, or None."""
    if map_node.kind is not NodeKind.MAPPING:
        return None
    for index in range(0, len(map_node.content), 2):
        if deep_equal(map_node.content[index], find_key):
            return index
    return None


def find_val_in_map(key: str, map_node: Node) -> Optional[tuple[Node, int]]:
    """Return the value for a string key and its index in the mapping, or None."""
    key_node = Node(kind=NodeKind.SCALAR, tag=STR_TAG, value=key)
    key_index = find_key_in_map(key_node, map_node)
    if key_index is None:
        return None
    return map_node.content[key_index + 1], key_index + 1