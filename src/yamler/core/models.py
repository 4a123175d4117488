#!/usr/bin/env python3
"""
YAMLER CORE MODELS
------------------
Defines the small data structures shared by the lexer, the fingerprint
extractor, the reconciler and the document facade.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class CommentMode(Enum):
    RELATIVE = "relative"   # keep the original gap between value and '#'
    ABSOLUTE = "absolute"   # '#' starts at a fixed column
    DISABLED = "disabled"   # inline comments are stripped


class ScalarStyle(Enum):
    NONE = "none"
    LITERAL = "literal"
    FOLDED = "folded"


class LineKind(Enum):
    KEY = "key"          # `key: value` or `key:` line
    ITEM = "item"        # `- ...` sequence entry, possibly with an inline key
    COMMENT = "comment"  # full-line comment
    BLANK = "blank"
    MARKER = "marker"    # `---`, `...` or a `%` directive
    BODY = "body"        # line inside a `|` / `>` block scalar
    FLOW = "flow"        # continuation of a multi-line flow collection
    CONT = "cont"        # continuation of a multi-line plain or quoted scalar


class Relation(Enum):
    CHILD = "child"      # nested one level below its anchor
    SIBLING = "sibling"  # shares the content column of a `- ` entry


@dataclass
class LineShard:
    """
    One physical line of YAML text with its structural position.

    The lexer produces one LineShard per line. Structural lines (KEY/ITEM)
    know the line that anchors their indentation, so that indentation can
    be recomputed top-down without re-parsing.
    """
    index: int                         # 0-based line number
    indent: int                        # leading whitespace width
    kind: LineKind
    raw_line: str = ""
    key: Optional[str] = None          # mapping key on this line (inline keys included)
    value: str = ""                    # value text, comment removed, stripped
    value_col: int = -1                # column where `value` starts
    path: str = ""                     # innermost node whose value sits on this line
    node_path: str = ""                # the node the line introduces (item path for `- `)
    container: Optional[str] = None    # path of the collection this line belongs to
    parent: Optional[int] = None       # index of the anchoring line
    anchor_col: Optional[int] = None   # column of the anchor (content column for siblings)
    relation: Relation = Relation.CHILD
    content_col: int = -1              # ITEM: column after `- `
    comment_col: int = -1              # column of an inline '#', -1 if none
    owner: Optional[int] = None        # BODY/FLOW/CONT: line that opened the region

    @property
    def code(self) -> str:
        """The line without its inline comment, right-stripped."""
        if self.comment_col == -1:
            return self.raw_line.rstrip()
        return self.raw_line[:self.comment_col].rstrip()

    @property
    def comment(self) -> str:
        return self.raw_line[self.comment_col:] if self.comment_col != -1 else ""

    @property
    def is_structural(self) -> bool:
        return self.kind in (LineKind.KEY, LineKind.ITEM)


@dataclass
class BlockScalar:
    """Original text of a `|` / `>` scalar: header token and body lines."""
    header: str
    body: List[str] = field(default_factory=list)
    owner_indent: int = 0


@dataclass
class FormatOptions:
    """Caller-tunable reconciliation settings."""
    comment_mode: CommentMode = CommentMode.RELATIVE
    comment_column: int = 0                # used by CommentMode.ABSOLUTE
    zero_indent_sequences: bool = False    # enables the zero-indent pass
    preserve_markers: bool = True          # re-emit `---` / `...`
    restore_scalar_tokens: bool = True     # `~`, `null`, `True`... kept as written
