#!/usr/bin/env python3
"""
YAMLER WILDCARD PATTERNS
------------------------
Path patterns over the node tree:

  config.*.name     `*` matches one key segment (and an index on it)
  config.**.name    `**` matches any number of segments
  servers[*].host   `[*]` matches any sequence index
"""

import re
from functools import lru_cache
from typing import Any, Dict, List

from yamler.core.nodes import to_value
from yamler.core.paths import index_path, join_path

_TOKENS = re.compile(r'\*\*|\[\*\]|\*')


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> "re.Pattern":
    """Translates a wildcard pattern into an anchored regular expression."""
    out = []
    position = 0
    for match in _TOKENS.finditer(pattern):
        out.append(re.escape(pattern[position:match.start()]))
        token = match.group()
        if token == "**":
            out.append(r'.*')
        elif token == "[*]":
            out.append(r'\[\d+\]')
        else:
            out.append(r'[^.\[\]]*(?:\[\d+\])?')
        position = match.end()
    out.append(re.escape(pattern[position:]))
    return re.compile(''.join(out))


def path_matches(path: str, pattern: str) -> bool:
    return path == pattern or compile_pattern(pattern).fullmatch(path) is not None


def filter_by_pattern(data: Dict[str, Any], pattern: str) -> Dict[str, Any]:
    """Entries of a path -> value mapping whose path matches `pattern`."""
    return {path: value for path, value in data.items() if path_matches(path, pattern)}


def _collect(node: Any, pattern: str, path: str, results: Dict[str, Any]):
    if path and path_matches(path, pattern):
        results[path] = to_value(node)
        return
    if isinstance(node, dict):
        for key, child in node.items():
            _collect(child, pattern, join_path(path, key), results)
    elif isinstance(node, list):
        for position, child in enumerate(node):
            _collect(child, pattern, index_path(path, position), results)


def _all_paths(node: Any, path: str, paths: List[str]):
    if path:
        paths.append(path)
    if isinstance(node, dict):
        for key, child in node.items():
            _all_paths(child, join_path(path, key), paths)
    elif isinstance(node, list):
        for position, child in enumerate(node):
            _all_paths(child, index_path(path, position), paths)


class WildcardMixin:
    """Pattern queries for Document."""

    def get_all(self, pattern: str) -> Dict[str, Any]:
        """Every matching path with its value, in path order. A match is not descended into."""
        results: Dict[str, Any] = {}
        _collect(self._require_root(), pattern, "", results)
        return dict(sorted(results.items()))

    def set_all(self, pattern: str, value: Any) -> int:
        """Sets `value` on every existing matching path; returns the number of paths set."""
        paths = list(self.get_all(pattern))
        for path in paths:
            self.set(path, value)
        return len(paths)

    def get_keys(self, pattern: str) -> List[str]:
        return sorted(self.get_all(pattern))

    def get_paths_recursive(self) -> List[str]:
        paths: List[str] = []
        _all_paths(self._require_root(), "", paths)
        return sorted(paths)
