#!/usr/bin/env python3
"""
YAMLER MERGE
------------
Merges another document (or plain data) into this one while keeping the
formatting of the receiving document:

  * mappings merge recursively; new keys are appended in source order
  * sequences are replaced by the source, keeping the target's flow/block style
  * scalars are replaced, keeping the target's comments and quoting
"""

import copy
import logging
from typing import Any

from ruamel.yaml.comments import CommentedMap, CommentedSeq

from yamler.core.errors import TypeMismatch
from yamler.core.nodes import carry_scalar_style, to_node
from yamler.core.paths import ArrayIndex, find_key, resolve_or_create

logger = logging.getLogger("yamler.merge")


def _source_root(other: Any) -> Any:
    # a Document, or plain / round-trip data
    root = getattr(other, "root", other)
    if not isinstance(root, dict):
        raise TypeMismatch("", "merge source must be a mapping")
    return root


def merge_nodes(target: CommentedMap, source: dict):
    """Merges the mapping `source` into the mapping `target` in place."""
    for key, value in source.items():
        existing = find_key(target, str(key))
        if existing is None:
            target[key] = copy.deepcopy(to_node(value))
            continue
        current = target[existing]
        if isinstance(value, dict):
            if not isinstance(current, CommentedMap):
                current = CommentedMap()
                target[existing] = current
            merge_nodes(current, value)
        elif isinstance(value, list):
            target[existing] = _replace_sequence(current, value)
        else:
            target[existing] = carry_scalar_style(current, value)


def _replace_sequence(current: Any, value: list) -> CommentedSeq:
    seq = copy.deepcopy(to_node(value))
    if isinstance(current, CommentedSeq):
        flow = current.fa.flow_style()
        if flow is True:
            seq.fa.set_flow_style()
        elif flow is False:
            seq.fa.set_block_style()
    return seq


class MergeMixin:
    """Document merging."""

    def merge(self, other: Any):
        """Merges `other` (a Document or a mapping) into the root mapping."""
        root = self._require_root()
        if not isinstance(root, CommentedMap):
            raise TypeMismatch("", "document root is not a mapping")
        source = _source_root(other)
        merge_nodes(root, source)
        logger.debug("merge: merged %d top-level keys", len(source))
        self._refresh()

    def merge_at(self, path: str, other: Any):
        """Merges `other` below `path`, creating it and turning it into a mapping when needed."""
        source = _source_root(other)
        root = self._require_root()
        path = self._root_path(path)
        if path == "":
            self.merge(other)
            return

        parent, step = resolve_or_create(root, path, pad_final=True)
        if isinstance(step, ArrayIndex):
            while len(parent) <= step.index:
                parent.append(CommentedMap())
            target = parent[step.index]
            if not isinstance(target, CommentedMap):
                target = parent[step.index] = CommentedMap()
        else:
            key = find_key(parent, step.name)
            target = parent[key] if key is not None else None
            if not isinstance(target, CommentedMap):
                target = CommentedMap()
                parent[key if key is not None else step.name] = target
        merge_nodes(target, source)
        logger.debug("merge: merged into %s", path)
        self._refresh()
