#!/usr/bin/env python3
"""
YAMLER LEXER - Structural Line Sharder
--------------------------------------
Decomposes YAML text into one LineShard per physical line. Each shard
knows its logical path (`spec.containers[0].image`), the line anchoring
its indentation and the collection it belongs to.

The lexer never parses values. It keeps just enough state to step over
block scalars (`|`, `>`), multi-line flow collections and multi-line
quoted scalars, so that their content is never mistaken for structure.
Both the fingerprint extractor (on the original text) and the
reconciler passes (on rendered text) shard through this module, which
keeps paths computed on both sides comparable.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from yamler.core.models import LineKind, LineShard, Relation
from yamler.core.paths import index_path, join_path
from yamler.formatting.flowtext import find_comment_split, scan_depth

BLOCK_HEADER = re.compile(r'^(?:[&!]\S*\s+)*[|>][0-9+-]*$')
PROPERTY_PREFIX = re.compile(r'^(?:[&!]\S*\s+)*')


@dataclass
class _Frame:
    kind: str                  # 'key', 'seq' or 'item'
    col: int                   # key column / dash column / item content column
    path: str
    line: Optional[int] = None
    count: int = 0             # 'seq': index of the current entry
    dash_col: int = 0          # 'item': column of the dash
    anchor: Optional[int] = None  # 'seq': column the dashes are indented from
    pending: bool = False      # 'item': bare dash, content column not known yet


def split_key(code: str, start: int) -> Optional[Tuple[str, int]]:
    """
    Finds a `key:` at `start`. Returns (key, value column) or None.
    The value column equals len(code) when the value is empty.
    """
    if start >= len(code) or code[start] in "[{#?|>":
        return None
    if code[start] == "-" and code[start + 1:start + 2] in ("", " ", "\t"):
        return None

    if code[start] in "\"'":
        quote = code[start]
        i = start + 1
        while i < len(code):
            if code[i] == '\\' and quote == '"':
                i += 2
                continue
            if code[i] == quote:
                if quote == "'" and code[i + 1:i + 2] == "'":
                    i += 2
                    continue
                break
            i += 1
        else:
            return None
        key = code[start + 1:i]
        colon = i + 1
        while colon < len(code) and code[colon] in " \t":
            colon += 1
        if colon >= len(code) or code[colon] != ':':
            return None
        if colon + 1 < len(code) and code[colon + 1] not in " \t":
            return None
    else:
        depth = 0
        colon = -1
        for i in range(start, len(code)):
            char = code[i]
            if char in "[{":
                depth += 1
            elif char in "]}":
                depth -= 1
            elif char == ':' and depth == 0 and (i + 1 == len(code) or code[i + 1] in " \t"):
                colon = i
                break
        if colon <= start:
            return None
        key = code[start:colon].rstrip()

    value_col = colon + 1
    while value_col < len(code) and code[value_col] in " \t":
        value_col += 1
    return key, value_col


def _is_marker(stripped: str) -> bool:
    return (stripped == '---' or stripped.startswith('--- ') or stripped == '...'
            or stripped.startswith('%'))


def _quote_closes(text: str, quote: str) -> bool:
    i = 0
    while i < len(text):
        if quote == '"' and text[i] == '\\':
            i += 2
            continue
        if text[i] == quote:
            if quote == "'" and text[i + 1:i + 2] == "'":
                i += 2
                continue
            return True
        i += 1
    return False


class YamlLexer:
    """
    Orchestrates the transition from raw text to LineShards.
    Maintains region state so that block scalars, multi-line flow
    collections and open quoted scalars are preserved as opaque lines.
    """

    def __init__(self):
        self.frames: List[_Frame] = []
        self.region: Optional[Tuple[str, int, object]] = None  # (kind, owner line, state)
        self.last_structural: Optional[int] = None

    def shard(self, text: str) -> List[LineShard]:
        """Primary interface: one LineShard per line of `text`."""
        self.frames = []
        self.region = None
        self.last_structural = None
        return [self._shard_line(index, line) for index, line in enumerate(text.split('\n'))]

    def _shard_line(self, index: int, line: str) -> LineShard:
        stripped = line.strip()
        indent = len(line) - len(line.lstrip(' \t'))

        # 1. Opaque regions opened by a previous line
        if self.region is not None:
            kind, owner, state = self.region
            if kind == 'body':
                if not stripped or indent > state:
                    return LineShard(index, indent, LineKind.BODY, line, owner=owner)
                self.region = None
            elif kind == 'flow':
                depth = scan_depth(line, state)
                self.region = None if depth <= 0 else ('flow', owner, depth)
                return LineShard(index, indent, LineKind.FLOW, line, owner=owner)
            else:
                if _quote_closes(line, state):
                    self.region = None
                return LineShard(index, indent, LineKind.CONT, line, owner=owner)

        # 2. Lines without structure
        if not stripped:
            return LineShard(index, indent, LineKind.BLANK, line)
        if stripped.startswith('#'):
            return LineShard(index, indent, LineKind.COMMENT, line)
        if indent == 0 and _is_marker(stripped):
            self.frames = []
            self.last_structural = None
            return LineShard(index, indent, LineKind.MARKER, line)

        comment_col = find_comment_split(line)
        code = (line[:comment_col] if comment_col != -1 else line).rstrip()

        # 3. Structure
        if code[indent] == '-' and (len(code) == indent + 1 or code[indent + 1] in ' \t'):
            shard = self._shard_item(index, line, indent, code)
        else:
            found = split_key(code, indent)
            if found is None:
                return LineShard(index, indent, LineKind.CONT, line, comment_col=comment_col,
                                 owner=self.last_structural)
            shard = self._shard_key(index, line, indent, code, found)

        shard.comment_col = comment_col
        self.last_structural = index
        return shard

    def _shard_item(self, index: int, line: str, indent: int, code: str) -> LineShard:
        while self.frames and self.frames[-1].col > indent and not (
                self.frames[-1].kind == 'item' and self.frames[-1].dash_col < indent
                and self.frames[-1].pending):
            self.frames.pop()
        top = self.frames[-1] if self.frames else None
        if top is not None and top.kind == 'item' and top.pending and top.dash_col < indent:
            top.col = indent
            top.pending = False

        if top is not None and top.kind == 'seq' and top.col == indent:
            top.count += 1
            seq = top
        elif top is None:
            seq = _Frame('seq', indent, "", None)
            self.frames.append(seq)
        else:
            anchor = top.dash_col if top.kind == 'item' else top.col
            seq = _Frame('seq', indent, top.path, top.line, anchor=anchor)
            self.frames.append(seq)

        item_path = index_path(seq.path, seq.count)
        content_col = indent + 1
        while content_col < len(code) and code[content_col] in ' \t':
            content_col += 1
        bare = content_col >= len(code)
        if bare:
            content_col = indent + 2

        shard = LineShard(
            index, indent, LineKind.ITEM, line,
            path=item_path, node_path=item_path, container=seq.path,
            parent=seq.line, anchor_col=seq.anchor, relation=Relation.CHILD,
            content_col=content_col,
        )
        self.frames.append(_Frame('item', content_col, item_path, index, dash_col=indent, pending=bare))
        if bare:
            return shard

        found = split_key(code, content_col)
        if found is not None:
            key, value_col = found
            shard.key = key
            shard.path = join_path(item_path, key)
            self.frames.append(_Frame('key', content_col, shard.path, index))
            owner_col = content_col
        else:
            value_col = content_col
            owner_col = indent
        shard.value = code[value_col:].strip()
        shard.value_col = value_col
        self._open_region(index, shard.value, owner_col)
        return shard

    def _shard_key(self, index: int, line: str, indent: int, code: str,
                   found: Tuple[str, int]) -> LineShard:
        key, value_col = found
        while self.frames:
            top = self.frames[-1]
            if top.kind == 'item' and top.pending and top.dash_col < indent:
                top.col = indent
                top.pending = False
            if top.col > indent or (top.col == indent and top.kind in ('key', 'seq')):
                self.frames.pop()
                continue
            break

        top = self.frames[-1] if self.frames else None
        if top is None:
            path, container, parent, anchor = key, "", None, None
            relation = Relation.CHILD
        else:
            path = join_path(top.path, key)
            container, parent, anchor = top.path, top.line, top.col
            relation = Relation.SIBLING if top.kind == 'item' and indent == top.col else Relation.CHILD

        self.frames.append(_Frame('key', indent, path, index))
        value = code[value_col:].strip()
        shard = LineShard(
            index, indent, LineKind.KEY, line,
            key=key, value=value, value_col=value_col,
            path=path, node_path=path, container=container,
            parent=parent, anchor_col=anchor, relation=relation,
        )
        self._open_region(index, value, indent)
        return shard

    def _open_region(self, index: int, value: str, owner_col: int):
        if not value:
            return
        if BLOCK_HEADER.match(value):
            self.region = ('body', index, owner_col)
            return
        bare = value[PROPERTY_PREFIX.match(value).end():]
        if bare[:1] in ('[', '{'):
            depth = scan_depth(bare)
            if depth > 0:
                self.region = ('flow', index, depth)
        elif bare[:1] in ('"', "'") and not _quote_closes(bare[1:], bare[0]):
            self.region = ('quote', index, bare[0])


def shard_text(text: str) -> List[LineShard]:
    """Convenience wrapper used by the formatting passes."""
    return YamlLexer().shard(text)


def region_lines(shards: List[LineShard], owner: int) -> List[LineShard]:
    """BODY / FLOW / CONT lines opened by the line `owner`, in order."""
    out = []
    for shard in shards[owner + 1:]:
        if shard.owner == owner and shard.kind in (LineKind.BODY, LineKind.FLOW, LineKind.CONT):
            out.append(shard)
        elif shard.kind not in (LineKind.BLANK, LineKind.COMMENT, LineKind.BODY):
            break
    return out
