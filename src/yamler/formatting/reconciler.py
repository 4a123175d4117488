#!/usr/bin/env python3
"""
YAMLER RECONCILER - The Formatting Surgeon
------------------------------------------
Takes the naively rendered text and reimposes the fingerprint of the
original through an ordered chain of text-to-text passes:

  1. indentation remap           6. block scalars and scalar tokens
  2. flow sequences              7. zero-indent sequences (optional)
  3. flow mappings               8. inline comment alignment
  4. exact indentation           9. document markers
  5. blank lines                10. whitespace-only line cleanup

Every pass re-shards its input, so each one only depends on the text it
receives. A pass that cannot find its target leaves the text untouched;
a pass that fails is logged and skipped. Losing a formatting nuance is
preferred over failing the edit.
"""

import logging
from collections import Counter
from typing import Callable, Dict, List, Optional, Tuple

from ruamel.yaml import YAML, YAMLError

from yamler.core.models import (
    CommentMode,
    FormatOptions,
    LineKind,
    LineShard,
    Relation,
)
from yamler.formatting.fingerprint import Fingerprint, comment_key
from yamler.formatting.flowtext import FlowEntry, find_matching, normalize, parse_flow
from yamler.formatting.lexer import BLOCK_HEADER, PROPERTY_PREFIX, YamlLexer, region_lines

logger = logging.getLogger("yamler.reconciler")

_token_loader = YAML(typ='safe', pure=True)

OffsetRule = Callable[[LineShard, Optional[int]], int]


def shift_line(line: str, delta: int) -> str:
    """Moves a line by `delta` columns without cutting into its content."""
    if delta == 0 or not line.strip():
        return line
    if delta > 0:
        return ' ' * delta + line
    indent = len(line) - len(line.lstrip(' '))
    return line[min(indent, -delta):]


def _dedent(lines: List[str]) -> List[str]:
    indents = [len(l) - len(l.lstrip()) for l in lines if l.strip()]
    cut = min(indents) if indents else 0
    return [l[cut:].rstrip() if l.strip() else "" for l in lines]


def _chomping(header: str) -> str:
    token = header.split()[-1]
    return ''.join(c for c in token if c in '|>+-')


def _scalar_of(token: str) -> Tuple[bool, object]:
    try:
        return True, _token_loader.load(token)
    except YAMLError:
        return False, None


def same_scalar(a: str, b: str) -> bool:
    """True when two plain scalar tokens load to the same typed value."""
    ok_a, value_a = _scalar_of(a)
    ok_b, value_b = _scalar_of(b)
    return ok_a and ok_b and type(value_a) is type(value_b) and value_a == value_b


class FormatReconciler:
    """
    Orchestrates the post-processing passes. The registry order is part
    of the contract: later passes assume the normalization of earlier ones.
    """

    def __init__(self, fingerprint: Fingerprint, options: FormatOptions = None):
        self.fp = fingerprint
        self.options = options or FormatOptions()
        self.lexer = YamlLexer()
        self.original = ""
        self.preserve_markers = True

        # Registry of passes, executed in order against the rendered text
        self.passes = [
            ("indentation", self._pass_indentation),
            ("flow_sequences", self._pass_flow_sequences),
            ("flow_mappings", self._pass_flow_mappings),
            ("exact_indent", self._pass_exact_indent),
            ("blank_lines", self._pass_blank_lines),
            ("block_scalars", self._pass_block_scalars),
            ("zero_indent", self._pass_zero_indent),
            ("comments", self._pass_comments),
            ("markers", self._pass_markers),
            ("cleanup", self._pass_cleanup),
        ]

    def reconcile(self, naive_text: str, original_text: str = "", preserve_markers: bool = True) -> str:
        self.original = original_text
        self.preserve_markers = preserve_markers
        text = naive_text
        for name, run in self.passes:
            try:
                text = run(text)
            except Exception as exc:
                logger.debug("reconciler: pass %s skipped: %s", name, exc)
        return text

    # --- STRUCTURAL RELAYOUT ---

    def _relayout(self, text: str, rule: OffsetRule) -> str:
        """
        Recomputes the indentation of every structural line top-down.

        `rule(shard, rel)` returns the offset of a line from its anchor
        (rel is the current offset), or the absolute column of a root line
        (rel is None). Block bodies and continuation lines follow the line
        that opened them; comment lines are left where they are.
        """
        shards = self.lexer.shard(text)
        lines = text.split('\n')
        placed: Dict[int, int] = {}

        for shard in shards:
            if shard.is_structural:
                if shard.parent is None or shard.anchor_col is None:
                    target = rule(shard, None)
                else:
                    parent = shards[shard.parent]
                    parent_col = placed.get(shard.parent, parent.indent)
                    anchor = parent_col + (shard.anchor_col - parent.indent)
                    target = anchor + rule(shard, shard.indent - shard.anchor_col)
                placed[shard.index] = max(0, target)
            elif shard.owner is not None and shard.kind in (LineKind.BODY, LineKind.FLOW, LineKind.CONT):
                owner = shards[shard.owner]
                delta = placed.get(shard.owner, owner.indent) - owner.indent
                if delta and shard.raw_line.strip():
                    placed[shard.index] = max(0, shard.indent + delta)

        for index, column in placed.items():
            shard = shards[index]
            if column != shard.indent:
                lines[index] = ' ' * column + lines[index][shard.indent:]
        return '\n'.join(lines)

    # --- PASS 1: INDENTATION REMAP ---

    def _pass_indentation(self, text: str) -> str:
        unit = self.fp.indent_unit

        def canonical(shard: LineShard, rel: Optional[int]) -> int:
            if rel is None:
                return 0
            if shard.relation == Relation.SIBLING:
                return rel
            return unit

        text = self._relayout(text, canonical)
        if not self.fp.uses_tabs:
            return text

        out = []
        for shard, line in zip(self.lexer.shard(text), text.split('\n')):
            if shard.kind in (LineKind.BODY, LineKind.BLANK) or not shard.indent:
                out.append(line)
                continue
            tabs, spaces = divmod(shard.indent, unit)
            out.append('\t' * tabs + ' ' * spaces + line[shard.indent:])
        return '\n'.join(out)

    # --- PASSES 2 & 3: FLOW COLLECTIONS ---

    def _pass_flow_sequences(self, text: str) -> str:
        return self._reapply_flow(text, '[')

    def _pass_flow_mappings(self, text: str) -> str:
        return self._reapply_flow(text, '{')

    def _reapply_flow(self, text: str, opener: str) -> str:
        shards = self.lexer.shard(text)
        lines = text.split('\n')
        for shard in shards:
            if not shard.is_structural or not shard.value:
                continue
            original = self.fp.flow_texts.get(shard.path)
            if original is None or original[0] != opener:
                continue
            if region_lines(shards, shard.index):
                logger.debug("reconciler: %s renders over several lines, skipped", shard.path)
                continue
            line = lines[shard.index]
            start = shard.value_col + PROPERTY_PREFIX.match(shard.value).end()
            if line[start:start + 1] != opener:
                continue
            end = find_matching(line, start)
            if end == -1:
                continue
            shift = shard.indent - self.fp.flow_indents.get(shard.path, shard.indent)
            literal = '\n'.join(shift_line(l, shift) if i else l
                                for i, l in enumerate(original.split('\n')))
            rendered = line[start:end + 1]
            merged = self.merge_flow(rendered, literal)
            if merged is None:
                logger.debug("reconciler: flow literal of %s not reconciled", shard.path)
                continue
            if merged != rendered:
                lines[shard.index] = line[:start] + merged + line[end + 1:]
        return '\n'.join(lines)

    def merge_flow(self, rendered: str, original: str) -> Optional[str]:
        """
        Merges the rendered flow collection into the original literal.

        Same content: the original literal verbatim. Same shape with
        changed values: only the changed value tokens are replaced inside
        the original text. Different shape: the collection is rebuilt
        with the original's spacing conventions.
        """
        new_entries = parse_flow(rendered)
        old_entries = parse_flow(original)
        if new_entries is None or old_entries is None:
            return None

        if len(new_entries) == len(old_entries) and all(
                _same_key(n, o) for n, o in zip(new_entries, old_entries)):
            out = original
            for new, old in reversed(list(zip(new_entries, old_entries))):
                if normalize(new.value) == normalize(old.value):
                    continue
                token = new.value
                if new.value[:1] in '[{' and old.value[:1] == new.value[:1]:
                    token = self.merge_flow(new.value, old.value) or new.value
                start, end = old.value_span
                if old.key is not None and start == end:
                    # `{a}` style entry gaining a value
                    token = ": " + token
                out = out[:start] + token + out[end:]
            return out

        return self._rebuild_flow(rendered, new_entries, original, old_entries)

    def _rebuild_flow(self, rendered: str, new_entries: List[FlowEntry],
                      original: str, old_entries: List[FlowEntry]) -> str:
        opener, closer = rendered[0], rendered[-1]
        unused = list(old_entries)
        elements = []
        for entry in new_entries:
            match = next((o for o in unused if _same_key(entry, o)
                          and normalize(o.value) == normalize(entry.value)), None)
            if match is not None:
                unused.remove(match)
                elements.append(original[match.span[0]:match.span[1]])
            else:
                elements.append(rendered[entry.span[0]:entry.span[1]])
        if not elements:
            return opener + closer

        inner = original[1:-1]
        if '\n' not in original:
            pad = inner[:len(inner) - len(inner.lstrip())] if inner.strip() else ""
            separator = ", "
            if len(old_entries) > 1:
                separator = original[old_entries[0].span[1]:old_entries[1].span[0]]
            return opener + pad + separator.join(elements) + pad + closer

        body = [line for line in inner.split('\n')]
        if body[0].strip():
            # elements start on the opening line: keep them on one line
            return opener + ", ".join(elements) + closer
        element_lines = [line for line in body[1:] if line.strip() and line.strip() != closer]
        indent = element_lines[0][:len(element_lines[0]) - len(element_lines[0].lstrip())] if element_lines else "  "
        closing = body[-1] if not body[-1].strip() else ""
        trailing_comma = inner.rstrip().endswith(',')
        out = [opener]
        for position, element in enumerate(elements):
            last = position == len(elements) - 1
            out.append(indent + element + ("," if not last or trailing_comma else ""))
        return '\n'.join(out) + '\n' + closing + closer

    # --- PASS 4: EXACT INDENTATION ---

    def _pass_exact_indent(self, text: str) -> str:
        offsets = self.fp.indent_offsets
        if not offsets:
            return text

        def exact(shard: LineShard, rel: Optional[int]) -> int:
            container = shard.container or ""
            if rel is None:
                return offsets.get(container, shard.indent)
            if shard.relation == Relation.CHILD and container in offsets:
                return offsets[container]
            return rel

        return self._relayout(text, exact)

    # --- PASS 5: BLANK LINES ---

    def _pass_blank_lines(self, text: str) -> str:
        wanted = self.fp.empty_lines_before
        if not wanted:
            return text
        shards = self.lexer.shard(text)
        lines = text.split('\n')
        inserts: Dict[int, int] = {}
        run = 0
        seen_comments: Counter = Counter()

        for shard in shards:
            if shard.kind == LineKind.BLANK or (shard.kind == LineKind.BODY and not shard.raw_line.strip()):
                run += 1
                continue
            key = None
            if shard.kind == LineKind.COMMENT:
                text_ = shard.raw_line.strip()
                seen_comments[text_] += 1
                key = comment_key(text_, seen_comments[text_])
            elif shard.is_structural:
                key = shard.node_path
            if key is not None and shard.index > 0 and wanted.get(key, 0) > run:
                inserts[shard.index] = wanted[key] - run
            run = 0

        if not inserts:
            return text
        out = []
        for index, line in enumerate(lines):
            out.extend([""] * inserts.get(index, 0))
            out.append(line)
        return '\n'.join(out)

    # --- PASS 6: BLOCK SCALARS AND SCALAR TOKENS ---

    def _pass_block_scalars(self, text: str) -> str:
        shards = self.lexer.shard(text)
        lines = text.split('\n')

        for shard in shards:
            if not shard.is_structural:
                continue
            block = self.fp.block_scalars.get(shard.path)
            if block is not None and BLOCK_HEADER.match(shard.value):
                self._restore_block(shards, lines, shard, block)
            elif self.options.restore_scalar_tokens and shard.path in self.fp.scalar_tokens:
                self._restore_token(shards, lines, shard, self.fp.scalar_tokens[shard.path])
        return '\n'.join(lines)

    def _restore_block(self, shards, lines, shard, block):
        body = region_lines(shards, shard.index)
        while body and not body[-1].raw_line.strip():
            body.pop()
        rendered = [s.raw_line for s in body]
        shift = shard.indent - block.owner_indent

        if _dedent(rendered) == _dedent(block.body) and _chomping(shard.value) == _chomping(block.header):
            line = lines[shard.index]
            lines[shard.index] = line[:shard.value_col] + block.header + line[shard.value_col + len(shard.value):]
            for target, original in zip(body, block.body):
                lines[target.index] = shift_line(original, shift)
            return

        # content changed: keep the new lines, restore the body offset
        def offset(body_lines, owner_indent):
            indents = [len(l) - len(l.lstrip()) for l in body_lines if l.strip()]
            return (min(indents) - owner_indent) if indents else None

        wanted, current = offset(block.body, block.owner_indent), offset(rendered, shard.indent)
        if wanted is None or current is None or wanted == current:
            return
        for target in body:
            lines[target.index] = shift_line(target.raw_line, wanted - current)

    def _restore_token(self, shards, lines, shard, original: str):
        current = shard.value
        if current == original or current[:1] in ('[', '{', '|', '>', '"', "'", '&', '*', '!'):
            return
        if not current and self._has_children(shards, shard):
            return
        if not same_scalar(current, original):
            return
        line = lines[shard.index]
        code = shard.code
        if current:
            start = shard.value_col
            lines[shard.index] = line[:start] + original + line[start + len(current):]
        else:
            lines[shard.index] = code + " " + original + line[len(code):]

    @staticmethod
    def _has_children(shards: List[LineShard], shard: LineShard) -> bool:
        owner_col = shard.content_col if shard.kind == LineKind.ITEM and shard.key else shard.indent
        for later in shards[shard.index + 1:]:
            if later.kind in (LineKind.BLANK, LineKind.COMMENT):
                continue
            if later.kind in (LineKind.BODY, LineKind.FLOW, LineKind.CONT):
                return True
            # a dash at the key's own column opens a zero-indent sequence
            return later.indent > owner_col or (later.kind == LineKind.ITEM and later.indent == owner_col
                                                and shard.kind == LineKind.KEY)
        return False

    # --- PASS 7: ZERO-INDENT SEQUENCES ---

    def _pass_zero_indent(self, text: str) -> str:
        zero = self.fp.zero_indent_sequences
        if not self.options.zero_indent_sequences or not zero:
            return text

        def flush_left(shard: LineShard, rel: Optional[int]) -> int:
            if rel is None:
                return shard.indent
            if shard.kind == LineKind.ITEM and (shard.container or "") in zero:
                return 0
            return rel

        return self._relayout(text, flush_left)

    # --- PASS 8: INLINE COMMENTS ---

    def _pass_comments(self, text: str) -> str:
        mode = self.options.comment_mode
        shards = self.lexer.shard(text)
        lines = text.split('\n')

        for shard in shards:
            if not shard.is_structural or shard.comment_col == -1:
                continue
            code, comment = shard.code, shard.comment
            if not code.strip():
                continue
            if mode == CommentMode.DISABLED:
                lines[shard.index] = code
            elif mode == CommentMode.ABSOLUTE:
                gap = max(1, self.options.comment_column - len(code))
                lines[shard.index] = code + ' ' * gap + comment
            else:
                gap = self.fp.comment_offsets.get(shard.path)
                if gap is not None:
                    lines[shard.index] = code + ' ' * max(1, gap) + comment
        return '\n'.join(lines)

    # --- PASS 9: DOCUMENT MARKERS ---

    def _pass_markers(self, text: str) -> str:
        if not (self.preserve_markers and self.options.preserve_markers):
            return text
        if self.fp.has_document_start:
            lines = text.split('\n')
            lead = 0
            while lead < len(lines) and (not lines[lead].strip() or lines[lead].lstrip().startswith('#')):
                lead += 1
            if lead >= len(lines) or not lines[lead].startswith('---'):
                position = min(lead, self.fp.document_start_index)
                lines.insert(position, self.fp.document_start_line)
                text = '\n'.join(lines)
        if self.fp.has_document_end and text.rstrip().split('\n')[-1].strip() != '...':
            text = text.rstrip('\n') + '\n...\n'
        return text

    # --- PASS 10: CLEANUP ---

    def _pass_cleanup(self, text: str) -> str:
        original = self.original.split('\n')
        lines = text.split('\n')
        for shard in self.lexer.shard(text):
            line = lines[shard.index]
            if shard.kind != LineKind.BLANK or not line:
                continue
            if shard.index < len(original) and original[shard.index] == line:
                continue
            lines[shard.index] = ""
        return '\n'.join(lines)


def _same_key(new: FlowEntry, old: FlowEntry) -> bool:
    if new.key is None and old.key is None:
        return True
    if new.key is None or old.key is None:
        return False
    return new.key.strip('"\'') == old.key.strip('"\'')
