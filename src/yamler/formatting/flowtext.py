#!/usr/bin/env python3
"""
YAMLER FLOW TEXT SCANNING
-------------------------
Quote-aware helpers for reading YAML text without a parser: comment
detection, bracket matching and top-level comma splitting of flow
collections (`[a, b]`, `{a: 1, b: 2}`).
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

_QUOTE_OPENERS = " \t[{,"
_FLOW_PUNCTUATION = "[]{},"


def _quote_may_open(text: str, i: int) -> bool:
    return i == 0 or text[i - 1] in _QUOTE_OPENERS


def find_comment_split(text: str) -> int:
    """
    Index of the '#' that starts a comment, or -1.

    Hashes wrapped in quotes are protected; a quote only opens a quoted
    scalar at the start of a token, so apostrophes in plain text such as
    `don't` do not hide a following comment.
    """
    quote = None
    i = 0
    while i < len(text):
        char = text[i]
        if quote == '"':
            if char == '\\':
                i += 2
                continue
            if char == '"':
                quote = None
        elif quote == "'":
            if char == "'":
                if i + 1 < len(text) and text[i + 1] == "'":
                    i += 2
                    continue
                quote = None
        elif char in "\"'" and _quote_may_open(text, i):
            quote = char
        elif char == '#' and (i == 0 or text[i - 1].isspace()):
            return i
        i += 1
    return -1


def scan_depth(text: str, depth: int = 0) -> int:
    """Bracket depth after reading `text`, starting from `depth`."""
    cut = find_comment_split(text)
    if cut != -1:
        text = text[:cut]
    quote = None
    i = 0
    while i < len(text):
        char = text[i]
        if quote == '"':
            if char == '\\':
                i += 2
                continue
            if char == '"':
                quote = None
        elif quote == "'":
            if char == "'":
                quote = None
        elif char in "\"'" and _quote_may_open(text, i):
            quote = char
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
        i += 1
    return depth


def find_matching(text: str, start: int) -> int:
    """Index of the bracket closing the one at `start`, or -1."""
    depth = 0
    quote = None
    i = start
    while i < len(text):
        char = text[i]
        if quote == '"':
            if char == '\\':
                i += 2
                continue
            if char == '"':
                quote = None
        elif quote == "'":
            if char == "'":
                quote = None
        elif char in "\"'" and _quote_may_open(text, i):
            quote = char
        elif char == '#' and i > 0 and text[i - 1].isspace():
            newline = text.find('\n', i)
            if newline == -1:
                return -1
            i = newline
            continue
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def split_top_level(text: str, start: int = 0, end: Optional[int] = None) -> List[Tuple[int, int]]:
    """
    Spans of the comma separated elements of text[start:end], trimmed of
    surrounding whitespace. Nested brackets and quotes are respected and a
    trailing empty element (`[a, b,]`) is dropped.
    """
    end = len(text) if end is None else end
    spans = []
    depth = 0
    quote = None
    element_start = start
    i = start
    while i < end:
        char = text[i]
        if quote == '"':
            if char == '\\':
                i += 2
                continue
            if char == '"':
                quote = None
        elif quote == "'":
            if char == "'":
                quote = None
        elif char in "\"'" and _quote_may_open(text, i):
            quote = char
        elif char == '#' and i > 0 and text[i - 1].isspace():
            newline = text.find('\n', i, end)
            i = end if newline == -1 else newline
            continue
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
        elif char == ',' and depth == 0:
            spans.append(_trim(text, element_start, i))
            element_start = i + 1
        i += 1
    spans.append(_trim(text, element_start, end))
    if spans and spans[-1][0] == spans[-1][1]:
        spans.pop()
    return spans


def _trim(text: str, start: int, end: int) -> Tuple[int, int]:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    # an element may end in a comment inside a multi-line flow collection
    cut = find_comment_split(text[start:end])
    if cut > 0:
        end = start + cut
        while end > start and text[end - 1].isspace():
            end -= 1
    return start, end


@dataclass
class FlowEntry:
    """One element of a flow collection; `key` is None for sequences."""
    key: Optional[str]
    value: str
    span: Tuple[int, int]         # whole element
    value_span: Tuple[int, int]   # value token only


def parse_flow(text: str) -> Optional[List[FlowEntry]]:
    """
    Elements of a single flow collection `text` (brackets included).
    Returns None when the text is not one balanced collection.
    """
    text_end = len(text.rstrip())
    if not text or text[0] not in "[{" or find_matching(text, 0) != text_end - 1:
        return None
    is_mapping = text[0] == "{"
    entries = []
    for start, end in split_top_level(text, 1, text_end - 1):
        if not is_mapping:
            entries.append(FlowEntry(None, text[start:end], (start, end), (start, end)))
            continue
        colon = _find_mapping_colon(text, start, end)
        if colon == -1:
            entries.append(FlowEntry(text[start:end], "", (start, end), (end, end)))
            continue
        value_start = colon + 1
        while value_start < end and text[value_start].isspace():
            value_start += 1
        entries.append(FlowEntry(
            text[start:colon].strip(), text[value_start:end], (start, end), (value_start, end)
        ))
    return entries


def _find_mapping_colon(text: str, start: int, end: int) -> int:
    depth = 0
    quote = None
    for i in range(start, end):
        char = text[i]
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'" and _quote_may_open(text, i):
            quote = char
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
        elif char == ':' and depth == 0 and (i + 1 >= end or text[i + 1].isspace()):
            return i
    return -1


def normalize(token: str) -> str:
    """
    Spacing-insensitive form of a flow token, used to decide whether two
    renderings of the same value are equal (`{ a: [ 1 ] }` == `{a: [1]}`).
    """
    out = []
    quote = None
    pending_space = False
    i = 0
    while i < len(token):
        char = token[i]
        if quote:
            out.append(char)
            if quote == '"' and char == '\\' and i + 1 < len(token):
                out.append(token[i + 1])
                i += 2
                continue
            if char == quote:
                quote = None
            i += 1
            continue
        if char == '#' and (i == 0 or token[i - 1].isspace()):
            newline = token.find('\n', i)
            i = len(token) if newline == -1 else newline
            continue
        if char.isspace():
            pending_space = True
            i += 1
            continue
        if char in _FLOW_PUNCTUATION:
            pending_space = False
            while out and out[-1] == ' ':
                out.pop()
            out.append(char)
        else:
            if pending_space and out and out[-1] not in _FLOW_PUNCTUATION:
                out.append(' ')
            if char in "\"'" and _quote_may_open(token, i):
                quote = char
            out.append(char)
        pending_space = False
        i += 1
    return ''.join(out)
