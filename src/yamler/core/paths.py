#!/usr/bin/env python3
"""
YAMLER PATH RESOLVER
--------------------
Translates logical paths such as `spec.containers[0].image` into traversal
steps and walks (or grows) the ruamel.yaml round-trip tree with them.

Parsed paths are memoized in a process-wide cache guarded by a lock, so
independent documents may be used from different threads.
"""

import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ruamel.yaml.comments import CommentedMap, CommentedSeq

from yamler.core.errors import IndexOutOfBounds, InvalidPath, PathError, PathNotFound, TypeMismatch


@dataclass(frozen=True)
class MapKey:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayIndex:
    index: int

    def __str__(self) -> str:
        return f"[{self.index}]"


Step = Union[MapKey, ArrayIndex]

# `name`, `name[1]`, `name[1][2]`, `[3]`
SEGMENT_PATTERN = re.compile(r'^([^\[\]]*)((?:\[[^\[\]]*\])*)$')
INDEX_PATTERN = re.compile(r'\[([^\[\]]*)\]')

_CACHE_LIMIT = 4096
_cache: Dict[str, Tuple[Step, ...]] = {}
_cache_lock = threading.Lock()


def parse_path(path: str) -> Tuple[Step, ...]:
    """
    Splits a path into steps. The empty path addresses the root.

    Raises InvalidPath for empty segments, unbalanced brackets and
    non-numeric or negative indices.
    """
    with _cache_lock:
        cached = _cache.get(path)
    if cached is not None:
        return cached

    steps = tuple(_parse_uncached(path))

    with _cache_lock:
        if len(_cache) >= _CACHE_LIMIT:
            _cache.clear()
        _cache[path] = steps
    return steps


def _parse_uncached(path: str) -> List[Step]:
    if path == "":
        return []

    steps: List[Step] = []
    for segment in path.split("."):
        match = SEGMENT_PATTERN.match(segment)
        if not match:
            raise InvalidPath(path, f"malformed segment {segment!r}")
        name, indices = match.groups()
        if name:
            steps.append(MapKey(name))
        elif not indices:
            raise InvalidPath(path, "empty path segment")
        for raw_index in INDEX_PATTERN.findall(indices):
            if not raw_index.isdigit():
                raise InvalidPath(path, f"invalid array index {raw_index!r}")
            steps.append(ArrayIndex(int(raw_index)))
    return steps


def format_path(steps: List[Step]) -> str:
    """Inverse of parse_path: `[MapKey('a'), ArrayIndex(0)]` -> `a[0]`."""
    out = ""
    for step in steps:
        if isinstance(step, ArrayIndex):
            out += str(step)
        else:
            out = f"{out}.{step.name}" if out else step.name
    return out


def join_path(base: str, key: Any) -> str:
    """Child path of a mapping key under `base`."""
    return f"{base}.{key}" if base else str(key)


def index_path(base: str, index: int) -> str:
    return f"{base}[{index}]"


def find_key(mapping: dict, name: str) -> Optional[Any]:
    """
    Returns the actual key object stored in `mapping` for `name`.

    YAML keys are not always strings (`1: one`, `true: yes`), so a key
    matches when it is equal to `name` or renders to it.
    """
    if name in mapping:
        return name
    for key in mapping:
        if str(key) == name:
            return key
        # str(True) is "True"; YAML writes true, True or TRUE
        if isinstance(key, bool) and str(key).lower() == name.lower():
            return key
    return None


def is_container(node: Any) -> bool:
    return isinstance(node, (dict, list))


def resolve(root: Any, path: str) -> Any:
    """Read-only walk; raises PathNotFound or TypeMismatch."""
    node = root
    walked: List[Step] = []
    for step in parse_path(path):
        walked.append(step)
        if isinstance(step, MapKey):
            if not isinstance(node, dict):
                raise TypeMismatch(format_path(walked), f"cannot look up key {step.name!r} in {_kind(node)}")
            key = find_key(node, step.name)
            if key is None:
                raise PathNotFound(format_path(walked))
            node = node[key]
        else:
            if not isinstance(node, list):
                raise TypeMismatch(format_path(walked), f"cannot index into {_kind(node)}")
            if step.index >= len(node):
                raise PathNotFound(format_path(walked))
            node = node[step.index]
    return node


def resolve_or_create(root: Any, path: str, pad_final: bool = False) -> Tuple[Any, Step]:
    """
    Write walk: returns (parent container, final step).

    Missing intermediates are created as mappings (or sequences when the
    next step is an index); scalar and null placeholders are converted in
    place. Sequences are padded with empty mappings up to a required index.
    A mapping where a sequence is required (or the reverse) is a
    TypeMismatch: existing data is never discarded.

    A final index past the end of its sequence is IndexOutOfBounds unless
    `pad_final` is set. When the walk fails, every container it created
    or replaced is put back, so the tree is left as it was.
    """
    steps = parse_path(path)
    if not steps:
        raise InvalidPath(path, "empty path has no parent")

    undo: List[Callable[[], None]] = []
    try:
        node = _create_parents(root, steps, undo)
        final = steps[-1]
        if isinstance(final, MapKey) and not isinstance(node, dict):
            raise TypeMismatch(path, f"cannot set key {final.name!r} on {_kind(node)}")
        if isinstance(final, ArrayIndex):
            if not isinstance(node, list):
                raise TypeMismatch(path, f"cannot set index {final.index} on {_kind(node)}")
            if final.index > len(node) and not pad_final:
                raise IndexOutOfBounds(path, final.index, len(node))
    except PathError:
        for action in reversed(undo):
            action()
        raise
    return node, final


def _create_parents(root: Any, steps: List[Step], undo: List[Callable[[], None]]) -> Any:
    node = root
    for position, step in enumerate(steps[:-1]):
        wanted = steps[position + 1]
        walked = format_path(list(steps[:position + 1]))
        if isinstance(step, MapKey):
            if not isinstance(node, dict):
                raise TypeMismatch(walked, f"cannot create key {step.name!r} in {_kind(node)}")
            key = find_key(node, step.name)
            target = key if key is not None else step.name
            child = node.get(target)
            if not is_container(child):
                undo.append(_restore_key(node, target, key is not None, child))
                child = _new_container(wanted)
                node[target] = child
            _check_kind(child, wanted, walked)
            node = child
        else:
            if not isinstance(node, list):
                raise TypeMismatch(walked, f"cannot index into {_kind(node)}")
            if len(node) <= step.index:
                undo.append(_truncate(node, len(node)))
            while len(node) < step.index:
                node.append(CommentedMap())
            if len(node) == step.index:
                node.append(_new_container(wanted))
            child = node[step.index]
            if not is_container(child):
                undo.append(_restore_index(node, step.index, child))
                child = _new_container(wanted)
                node[step.index] = child
            _check_kind(child, wanted, walked)
            node = child
    return node


def _restore_key(mapping: dict, key: Any, existed: bool, old: Any) -> Callable[[], None]:
    def restore():
        if existed:
            mapping[key] = old
        else:
            del mapping[key]
    return restore


def _truncate(seq: list, length: int) -> Callable[[], None]:
    def restore():
        del seq[length:]
    return restore


def _restore_index(seq: list, index: int, old: Any) -> Callable[[], None]:
    def restore():
        seq[index] = old
    return restore


def _new_container(step: Step) -> Any:
    return CommentedSeq() if isinstance(step, ArrayIndex) else CommentedMap()


def _check_kind(node: Any, wanted: Step, walked: str):
    if isinstance(wanted, ArrayIndex) and not isinstance(node, list):
        raise TypeMismatch(walked, "expected a sequence, found a mapping")
    if isinstance(wanted, MapKey) and not isinstance(node, dict):
        raise TypeMismatch(walked, "expected a mapping, found a sequence")


def _kind(node: Any) -> str:
    if isinstance(node, dict):
        return "mapping"
    if isinstance(node, list):
        return "sequence"
    return "scalar"
