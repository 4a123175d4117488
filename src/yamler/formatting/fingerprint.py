#!/usr/bin/env python3
"""
YAMLER FINGERPRINT - The Formatting Curator
-------------------------------------------
Records the formatting conventions of a YAML text so they can be
reimposed after the node tree has been re-rendered: indentation unit and
per-collection deviations, blank-line runs, flow collection literals,
block scalar bodies, inline comment gaps and document markers.

Every entry is keyed by full dotted path, so `general.resources.cpu` and
`test.resources.cpu` never share an entry.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from functools import reduce
from math import gcd
from typing import Dict, List, Set

from yamler.core.models import (
    BlockScalar,
    LineKind,
    LineShard,
    Relation,
    ScalarStyle,
)
from yamler.formatting.flowtext import find_matching
from yamler.formatting.lexer import BLOCK_HEADER, PROPERTY_PREFIX, YamlLexer, region_lines

logger = logging.getLogger("yamler.fingerprint")

SUPERMAJORITY = 0.7
MIN_UNIT, MAX_UNIT = 1, 8
DEFAULT_UNIT = 2


@dataclass
class Fingerprint:
    """Formatting ground truth of one version of the raw text."""
    indent_unit: int = DEFAULT_UNIT
    uses_tabs: bool = False
    empty_lines_before: Dict[str, int] = field(default_factory=dict)
    flow_styles: Dict[str, bool] = field(default_factory=dict)
    scalar_styles: Dict[str, ScalarStyle] = field(default_factory=dict)
    comment_offsets: Dict[str, int] = field(default_factory=dict)
    indent_offsets: Dict[str, int] = field(default_factory=dict)   # container path -> offset from anchor
    flow_texts: Dict[str, str] = field(default_factory=dict)
    block_scalars: Dict[str, BlockScalar] = field(default_factory=dict)
    scalar_tokens: Dict[str, str] = field(default_factory=dict)
    zero_indent_sequences: Set[str] = field(default_factory=set)
    flow_indents: Dict[str, int] = field(default_factory=dict)      # indent of the line owning a flow literal
    has_document_start: bool = False
    document_start_index: int = 0       # line number of the `---` marker
    document_start_line: str = "---"
    has_document_end: bool = False


def comment_key(text: str, ordinal: int) -> str:
    """Fingerprint key of the `ordinal`-th full-line comment reading `text`."""
    return f"#{ordinal}:{text.strip()}"


def infer_indent_unit(deltas: List[int]) -> int:
    """
    Picks the indentation unit from the observed nesting deltas.

    Candidates are tried from the most frequent delta down; the first one
    that a supermajority of deltas are exact multiples of wins. Falls back
    to the GCD of all deltas, clamped to [1, 8].
    """
    deltas = [d for d in deltas if d > 0]
    if not deltas:
        return DEFAULT_UNIT
    for candidate, _ in sorted(Counter(deltas).items(), key=lambda kv: (-kv[1], kv[0])):
        multiples = sum(1 for d in deltas if d % candidate == 0)
        if multiples >= SUPERMAJORITY * len(deltas):
            return max(MIN_UNIT, min(MAX_UNIT, candidate))
    return max(MIN_UNIT, min(MAX_UNIT, reduce(gcd, deltas)))


class FingerprintExtractor:
    """
    The Curator: captures everything about the text that is not data
    but that a maintainer would notice if it changed.
    """

    def __init__(self):
        self.lexer = YamlLexer()

    def extract(self, raw_text: str) -> Fingerprint:
        fp = Fingerprint()
        if not raw_text:
            return fp

        shards = self.lexer.shard(raw_text)
        self._capture_markers(fp, shards)
        self._capture_blank_runs(fp, shards)
        self._capture_values(fp, shards)
        self._capture_indentation(fp, shards)
        logger.debug("fingerprint: unit=%d flows=%d comments=%d deviations=%d",
                     fp.indent_unit, len(fp.flow_styles), len(fp.comment_offsets),
                     len(fp.indent_offsets))
        return fp

    def _capture_markers(self, fp: Fingerprint, shards: List[LineShard]):
        for shard in shards:
            if shard.is_structural:
                break
            if shard.kind == LineKind.MARKER and shard.raw_line.strip().startswith('---'):
                fp.has_document_start = True
                fp.document_start_index = shard.index
                fp.document_start_line = shard.raw_line.rstrip()
                break
        for shard in reversed(shards):
            if shard.kind == LineKind.BLANK:
                continue
            fp.has_document_end = shard.kind == LineKind.MARKER and shard.raw_line.strip() == '...'
            break

    def _capture_blank_runs(self, fp: Fingerprint, shards: List[LineShard]):
        run = 0
        seen_comments: Counter = Counter()
        for shard in shards:
            if shard.kind == LineKind.BLANK or (shard.kind == LineKind.BODY and not shard.raw_line.strip()):
                run += 1
                continue
            if shard.kind == LineKind.COMMENT:
                text = shard.raw_line.strip()
                seen_comments[text] += 1
                if run:
                    fp.empty_lines_before[comment_key(text, seen_comments[text])] = run
            elif shard.is_structural and run:
                fp.empty_lines_before[shard.node_path] = run
            run = 0

    def _capture_values(self, fp: Fingerprint, shards: List[LineShard]):
        continued = {s.owner for s in shards if s.kind == LineKind.CONT and s.owner is not None}
        for shard in shards:
            if not shard.is_structural:
                continue
            if "\t" in shard.raw_line[:shard.indent]:
                fp.uses_tabs = True
            if shard.comment_col != -1:
                fp.comment_offsets[shard.path] = shard.comment_col - len(shard.code)

            value = shard.value
            if not value:
                continue
            bare = value[PROPERTY_PREFIX.match(value).end():]
            if BLOCK_HEADER.match(value):
                self._capture_block(fp, shards, shard, value)
            elif bare[:1] in ('[', '{'):
                self._capture_flow(fp, shards, shard, bare)
            elif shard.index not in continued and bare[:1] not in ('"', "'", '*', '&', '!'):
                fp.scalar_tokens[shard.path] = value

    def _capture_block(self, fp: Fingerprint, shards: List[LineShard], shard: LineShard, header: str):
        style = ScalarStyle.LITERAL if header.split()[-1].startswith("|") else ScalarStyle.FOLDED
        fp.scalar_styles[shard.path] = style
        body = [s.raw_line for s in region_lines(shards, shard.index)]
        while body and not body[-1].strip():
            body.pop()
        fp.block_scalars[shard.path] = BlockScalar(header=header, body=body, owner_indent=shard.indent)

    def _capture_flow(self, fp: Fingerprint, shards: List[LineShard], shard: LineShard, bare: str):
        start = shard.raw_line.index(bare, shard.value_col)
        text = shard.raw_line[start:]
        continuation = region_lines(shards, shard.index)
        if continuation:
            text = "\n".join([text] + [s.raw_line for s in continuation])
        end = find_matching(text, 0)
        if end == -1:
            logger.debug("fingerprint: unbalanced flow collection at %s", shard.path)
            return
        literal = text[:end + 1]
        fp.flow_styles[shard.path] = True
        fp.flow_texts[shard.path] = literal
        fp.flow_indents[shard.path] = shard.indent

    def _capture_indentation(self, fp: Fingerprint, shards: List[LineShard]):
        structural = [s for s in shards if s.is_structural]
        deltas = [s.indent - s.anchor_col for s in structural
                  if s.anchor_col is not None and s.relation == Relation.CHILD]
        fp.indent_unit = infer_indent_unit(deltas)

        for shard in structural:
            container = shard.container if shard.container is not None else ""
            if shard.anchor_col is None:
                if shard.indent > 0 and container not in fp.indent_offsets:
                    fp.indent_offsets[container] = shard.indent
                continue
            if shard.relation != Relation.CHILD:
                continue
            offset = shard.indent - shard.anchor_col
            if shard.kind == LineKind.ITEM and offset == 0:
                fp.zero_indent_sequences.add(container)
            elif offset != fp.indent_unit and container not in fp.indent_offsets:
                fp.indent_offsets[container] = offset


def extract(raw_text: str) -> Fingerprint:
    """Builds the fingerprint of `raw_text`."""
    return FingerprintExtractor().extract(raw_text)

