#!/usr/bin/env python3
"""
YAMLER ARRAY OPERATIONS
-----------------------
Append / insert / update / remove on sequence nodes. The sequence's own
flow or block style is left to the formatting pipeline; new elements are
always marked block so a block sequence never grows stray flow markers.
"""

import logging
from typing import Any

from yamler.core.errors import IndexOutOfBounds, TypeMismatch
from yamler.core.nodes import carry_comments, force_block_style, new_flow_sequence, to_node, to_value
from yamler.core.paths import ArrayIndex, find_key, index_path, resolve, resolve_or_create

logger = logging.getLogger("yamler.arrays")

_TRUTHY = ("true", "yes", "1", "on")
_FALSY = ("false", "no", "0", "off")


class ArrayOpsMixin:
    """Sequence editing for Document."""

    def _sequence_at(self, path: str) -> list:
        root = self._require_root()
        path = self._root_path(path)
        node = resolve(root, path)
        if not isinstance(node, list):
            raise TypeMismatch(path, "expected a sequence")
        return node

    def _sequence_for_write(self, path: str) -> list:
        """The sequence at `path`; a missing or null one becomes an empty flow sequence."""
        root = self._require_root()
        path = self._root_path(path)
        if path == "":
            if not isinstance(root, list):
                raise TypeMismatch(path, "document root is not a sequence")
            return root

        parent, step = resolve_or_create(root, path)
        if isinstance(step, ArrayIndex):
            present = step.index < len(parent)
            current = parent[step.index] if present else None
        else:
            key = find_key(parent, step.name)
            present = key is not None
            current = parent[key] if present else None

        if isinstance(current, list):
            return current
        if current is not None:
            raise TypeMismatch(path, "expected a sequence")

        seq = new_flow_sequence()
        if isinstance(step, ArrayIndex):
            if present:
                parent[step.index] = seq
            else:
                parent.append(seq)
        else:
            parent[key if present else step.name] = seq
        logger.debug("arrays: created flow sequence at %s", path)
        return seq

    def get_array_length(self, path: str) -> int:
        return len(self._sequence_at(path))

    def append_to_array(self, path: str, value: Any):
        """Appends `value`, creating the sequence when `path` does not exist."""
        seq = self._sequence_for_write(path)
        seq.append(force_block_style(to_node(value, index_path(path, len(seq)))))
        self._refresh()

    def insert_into_array(self, path: str, index: int, value: Any):
        """Inserts before `index`; `index == len` appends."""
        seq = self._sequence_for_write(path)
        if index < 0 or index > len(seq):
            raise IndexOutOfBounds(path, index, len(seq))
        seq.insert(index, force_block_style(to_node(value, index_path(path, index))))
        self._refresh()

    def update_array_element(self, path: str, index: int, value: Any):
        """Replaces element `index`, keeping the comments of the old element."""
        seq = self._sequence_at(path)
        if index < 0 or index >= len(seq):
            raise IndexOutOfBounds(path, index, len(seq))
        node = force_block_style(to_node(value, index_path(path, index)))
        carry_comments(seq[index], node)
        seq[index] = node
        self._refresh()

    def remove_from_array(self, path: str, index: int):
        seq = self._sequence_at(path)
        if index < 0 or index >= len(seq):
            raise IndexOutOfBounds(path, index, len(seq))
        del seq[index]
        self._refresh()

    def get_array_element(self, path: str, index: int) -> Any:
        seq = self._sequence_at(path)
        if index < 0 or index >= len(seq):
            raise IndexOutOfBounds(path, index, len(seq))
        return to_value(seq[index])

    def get_typed_array_element(self, path: str, index: int, target_type: str) -> Any:
        """
        Element `index` converted to `target_type`: "string", "int",
        "float", "bool", "map" or "list". Strings holding a number or a
        boolean word are converted.
        """
        value = self.get_array_element(path, index)
        where = index_path(path, index)
        try:
            return _convert(value, target_type, where)
        except ValueError as exc:
            raise TypeMismatch(where, f"invalid {target_type} value {value!r}") from exc


def _convert(value: Any, target_type: str, where: str) -> Any:
    if target_type == "string":
        if isinstance(value, str):
            return value
    elif target_type == "int":
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            return int(value, 10)
    elif target_type == "float":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            return float(value)
    elif target_type == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            word = value.lower()
            if word in _TRUTHY:
                return True
            if word in _FALSY:
                return False
            raise ValueError(value)
    elif target_type == "map":
        if isinstance(value, dict):
            return value
    elif target_type == "list":
        if isinstance(value, list):
            return value
    else:
        raise TypeMismatch(where, f"unsupported element type {target_type!r}")
    raise TypeMismatch(where, f"expected {target_type}, got {type(value).__name__}")
