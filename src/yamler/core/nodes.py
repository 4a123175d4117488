#!/usr/bin/env python3
"""
YAMLER NODE CONVERSION
----------------------
Bridges plain Python values and the ruamel.yaml round-trip node tree:
values -> nodes for Set, nodes -> values for Get, plus the comment and
style carry-over applied when a node is replaced.
"""

import datetime
from typing import Any

from ruamel.yaml.comments import CommentedBase, CommentedMap, CommentedSeq
from ruamel.yaml.scalarbool import ScalarBoolean
from ruamel.yaml.scalarfloat import ScalarFloat
from ruamel.yaml.scalarint import ScalarInt
from ruamel.yaml.scalarstring import (
    DoubleQuotedScalarString,
    FoldedScalarString,
    LiteralScalarString,
    ScalarString,
    SingleQuotedScalarString,
)

from yamler.core.errors import TypeMismatch
from yamler.core.paths import index_path, join_path

_STICKY_STRING_STYLES = (
    SingleQuotedScalarString,
    DoubleQuotedScalarString,
    LiteralScalarString,
    FoldedScalarString,
)


def to_value(node: Any) -> Any:
    """Deep conversion of a node into plain dict / list / scalar values."""
    if isinstance(node, dict):
        return {to_value(k): to_value(v) for k, v in node.items()}
    if isinstance(node, list):
        return [to_value(item) for item in node]
    if isinstance(node, ScalarBoolean):
        return bool(node)
    if isinstance(node, ScalarString):
        return str(node)
    if isinstance(node, ScalarInt):
        return int(node)
    if isinstance(node, ScalarFloat):
        return float(node)
    return node


def to_node(value: Any, path: str = "") -> Any:
    """
    Converts a Python value into a node ready to be inserted in the tree.

    Mappings keep their insertion order; multi-line strings become literal
    block scalars. Values that already are round-trip nodes pass through.
    """
    if isinstance(value, CommentedBase) or isinstance(value, ScalarString):
        return value
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return LiteralScalarString(value) if "\n" in value else value
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value
    if isinstance(value, dict):
        mapping = CommentedMap()
        for key, item in value.items():
            mapping[key] = to_node(item, join_path(path, key))
        return mapping
    if isinstance(value, (list, tuple)):
        seq = CommentedSeq()
        for position, item in enumerate(value):
            seq.append(to_node(item, index_path(path, position)))
        return seq
    raise TypeMismatch(path, f"unsupported value type {type(value).__name__}")


def new_flow_sequence() -> CommentedSeq:
    seq = CommentedSeq()
    seq.fa.set_flow_style()
    return seq


def force_block_style(node: Any) -> Any:
    """Marks a new collection as block so it never nests stray flow markers."""
    if isinstance(node, (CommentedMap, CommentedSeq)):
        node.fa.set_block_style()
    return node


def is_flow(node: Any) -> bool:
    return isinstance(node, (CommentedMap, CommentedSeq)) and node.fa.flow_style() is True


def carry_comments(old: Any, new: Any):
    """
    Copies comments owned by `old` onto `new` wherever `new` has none.

    Recurses through keys (or indices) present in both trees, so replacing
    a subtree with a similar one keeps its inner comments and blank lines.
    """
    if not isinstance(old, CommentedBase) or not isinstance(new, CommentedBase):
        return
    if old.ca.comment and not new.ca.comment:
        new.ca.comment = old.ca.comment
    if isinstance(old, dict) and isinstance(new, dict):
        for key in new:
            if key not in old:
                continue
            if key in old.ca.items and key not in new.ca.items:
                new.ca.items[key] = old.ca.items[key]
            carry_comments(old[key], new[key])
    elif isinstance(old, list) and isinstance(new, list):
        for position in range(min(len(old), len(new))):
            if position in old.ca.items and position not in new.ca.items:
                new.ca.items[position] = old.ca.items[position]
            carry_comments(old[position], new[position])


def carry_scalar_style(old: Any, new: Any) -> Any:
    """A plain str replacing a quoted or block scalar inherits its style."""
    if isinstance(new, str) and not isinstance(new, ScalarString):
        for style in _STICKY_STRING_STYLES:
            if isinstance(old, style):
                return style(new)
    return new


def carry_flow_style(old: Any, new: Any):
    if isinstance(old, (CommentedMap, CommentedSeq)) and isinstance(new, (CommentedMap, CommentedSeq)):
        if type(old) is type(new) and new.fa.flow_style() is None:
            if is_flow(old):
                new.fa.set_flow_style()
            elif old.fa.flow_style() is False:
                new.fa.set_block_style()
