import pytest

from yamler.core.models import LineKind, Relation, ScalarStyle
from yamler.formatting.fingerprint import extract, infer_indent_unit
from yamler.formatting.flowtext import find_comment_split, find_matching, parse_flow, split_top_level
from yamler.formatting.lexer import shard_text

SAMPLE = (
    "---\n"
    "# top\n"
    "general:\n"
    "  resources:\n"
    "    cpu: 512   # general cpu\n"
    "\n"
    "test:\n"
    "  resources: {cpu: 256, mem: 1}\n"
    "script: |\n"
    "  echo hi\n"
    "...\n"
)


@pytest.mark.parametrize("deltas,unit", [
    ([], 2),
    ([2, 2, 4], 2),
    ([4, 4, 8], 4),
    ([3, 6, 3], 3),
    ([2, 4, 3], 1),
    ([0, 0], 2),
])
def test_infer_indent_unit(deltas, unit):
    """INDENT TEST: most frequent delta wins when most deltas are its multiples."""
    assert infer_indent_unit(deltas) == unit


@pytest.mark.parametrize("line,column", [
    ("a: 1 # c", 5),
    ("a: 1", -1),
    ("a: 'x # y'", -1),
    ('a: "x # y" # z', 11),
    ("a: don't # c", 9),
    ("url: http://x/#frag", -1),
    ("# whole line", 0),
])
def test_find_comment_split(line, column):
    assert find_comment_split(line) == column


def test_flow_scanning():
    text = "[1, [2, 3], {a: 4}]"
    assert find_matching(text, 0) == len(text) - 1
    spans = split_top_level(text, 1, len(text) - 1)
    assert [text[s:e] for s, e in spans] == ["1", "[2, 3]", "{a: 4}"]

    entries = parse_flow("{ cpu: 1, memory: 2 }")
    assert [(e.key, e.value) for e in entries] == [("cpu", "1"), ("memory", "2")]
    assert parse_flow("[1, 2") is None


def test_lexer_paths_and_relations():
    """
    LEXER TEST: every structural line knows its full path and the line
    that anchors its indentation.
    """
    text = "env:\n  - name: A\n    value: 1\n  - name: B\nother: x\n"
    shards = shard_text(text)

    assert shards[0].kind == LineKind.KEY and shards[0].path == "env"
    assert shards[1].kind == LineKind.ITEM
    assert shards[1].node_path == "env[0]"
    assert shards[1].path == "env[0].name"
    assert shards[1].parent == 0
    assert shards[2].path == "env[0].value"
    assert shards[2].relation == Relation.SIBLING
    assert shards[2].parent == 1
    assert shards[3].node_path == "env[1]"
    assert shards[4].path == "other"
    assert shards[4].parent is None


def test_lexer_skips_block_scalar_bodies():
    text = "script: |\n  key: not structure\n  - nor this\nname: x\n"
    kinds = [s.kind for s in shard_text(text)]
    assert kinds[:4] == [LineKind.KEY, LineKind.BODY, LineKind.BODY, LineKind.KEY]


def test_extract_full_sample():
    """
    FINGERPRINT TEST: markers, blank runs, comment gaps, flow literals and
    block scalars are all keyed by full path.
    """
    fp = extract(SAMPLE)

    # 1. Document markers
    assert fp.has_document_start is True
    assert fp.document_start_index == 0
    assert fp.has_document_end is True

    # 2. Layout
    assert fp.indent_unit == 2
    assert fp.empty_lines_before == {"test": 1}

    # 3. Values
    assert fp.comment_offsets == {"general.resources.cpu": 3}
    assert fp.scalar_tokens["general.resources.cpu"] == "512"
    assert fp.flow_texts["test.resources"] == "{cpu: 256, mem: 1}"
    assert fp.flow_styles["test.resources"] is True
    assert "general.resources" not in fp.flow_styles

    # 4. Block scalars
    assert fp.scalar_styles["script"] == ScalarStyle.LITERAL
    assert fp.block_scalars["script"].header == "|"
    assert fp.block_scalars["script"].body == ["  echo hi"]


def test_extract_indent_deviation():
    fp = extract("a:\n    b: 1\n    c:\n        d: 2\nlist:\n  - x\n")
    assert fp.indent_unit == 4
    assert fp.indent_offsets == {"list": 2}


def test_extract_flow_literals_by_path():
    fp = extract("a: [ 1, 2 ]\nb:\n  c: {x: 1}\nd:\n  - x\n")
    assert fp.flow_texts == {"a": "[ 1, 2 ]", "b.c": "{x: 1}"}
    assert fp.flow_indents["b.c"] == 2


def test_extract_zero_indent_sequence():
    fp = extract("items:\n- a\n- b\n")
    assert "items" in fp.zero_indent_sequences
    assert "items" not in fp.indent_offsets


def test_extract_empty_text():
    fp = extract("")
    assert fp.indent_unit == 2
    assert fp.flow_texts == {}
