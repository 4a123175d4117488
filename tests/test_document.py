#!/usr/bin/env python3
"""
YAMLER DOCUMENT TESTS - Formatting Preservation
-----------------------------------------------
End-to-end checks of the Load / Get / Set / ToBytes contract: untouched
regions stay byte-identical, edited regions keep the original's layout.
"""

import re

import pytest
from ruamel.yaml import YAML

from yamler.core.document import Document, load, load_file
from yamler.core.errors import (
    FileError,
    IndexOutOfBounds,
    InvalidPath,
    ParseError,
    PathNotFound,
    TypeMismatch,
    ValidationError,
)
from yamler.validator.validator import load_schema

ROUND_TRIP_SAMPLES = [
    "a: 1\n",
    "a: 1",
    "a: 1\nb:\n  c: 2\n",
    "items: [1, 2, 3]\n",
    "r: { cpu: 1, memory: 2 }\n",
    "x: 1 # c\n",
    "list:\n  - a\n  - b\n",
    "name: web   # the name\nreplicas: 3\n\nports: [80, 443]\n",
    "env:\n  - name: A\n    value: \"1\"\n  - name: B\n    value: '2'\n",
    "script: |\n  echo one\n  echo two\nname: x\n",
    "a:\n    b:\n        c: 1\n",
]


@pytest.mark.parametrize("original", ROUND_TRIP_SAMPLES)
def test_unedited_round_trip_is_identical(original):
    """
    STABILITY TEST: loading and re-emitting without any edit reproduces
    the input byte for byte.
    """
    doc = load(original)
    assert doc.to_bytes() == original.encode("utf-8")


@pytest.mark.parametrize("original", ROUND_TRIP_SAMPLES)
def test_edit_preserves_data_of_untouched_keys(original):
    """DATA INTEGRITY: an edit changes exactly the addressed value."""
    doc = load(original)
    doc.set("added", "value")

    yaml_parser = YAML(typ='safe')
    before = yaml_parser.load(original)
    after = yaml_parser.load(doc.to_string())
    before["added"] = "value"
    assert after == before


SIBLING_CASES = [
    ("name: web   # the name\nreplicas: 3\n\nports: [80, 443]\n", "replicas", 5),
    ("general:\n  resources: {cpu: 512}\ntest:\n  resources:\n    cpu: 256 # low\n",
     "test.resources.cpu", 111),
    ("# header\nfirst: 1\n\n# about second\nsecond:\n  - a\n  - b\nthird: { x: 1 }\n",
     "second[1]", "c"),
    ("a: 1 # one\nb: [ x, y ]\nc:\n  d: 2\n", "c.d", 3),
    ("script: |\n  echo one\nname: x\nr: { cpu: 1, memory: 2 }\n", "r.cpu", 9),
]


def _top_level_blocks(text):
    """Lines owned by each top-level key; lines before the first key go under ''."""
    blocks = {}
    owner = ""
    for line in text.splitlines(keepends=True):
        if line[:1] not in (" ", "#", "-", "\n") and ":" in line:
            owner = line.split(":", 1)[0]
        blocks[owner] = blocks.get(owner, "") + line
    return blocks


@pytest.mark.parametrize("original,path,value", SIBLING_CASES)
def test_edit_leaves_sibling_text_untouched(original, path, value):
    """
    ISOLATION TEST: editing one key leaves every line of the other
    top-level subtrees (comments, flow literals, blank lines) as written.
    """
    doc = load(original)
    doc.set(path, value)
    assert doc.get(path) == value

    edited = re.split(r"[.\[]", path)[0]
    before = _top_level_blocks(original)
    after = _top_level_blocks(doc.to_string())
    assert after.keys() == before.keys()
    for key, block in before.items():
        if key != edited:
            assert after[key] == block


def test_minimal_edit():
    doc = load("a: 1")
    doc.set("a", 2)
    assert doc.to_bytes() == b"a: 2"


@pytest.mark.parametrize("original,expected", [
    ("a: 1", "a: 2"),
    ("a: 1\n", "a: 2\n"),
    ("a: 1\n\n", "a: 2\n\n"),
])
def test_trailing_newlines_preserved(original, expected):
    doc = load(original)
    doc.set("a", 2)
    assert doc.to_string() == expected


def test_path_disambiguation():
    """Identical key names under different parents are edited independently."""
    original = (
        "general:\n"
        "  resources:\n"
        "    cpu: 512\n"
        "test:\n"
        "  resources:\n"
        "    cpu: 256\n"
    )
    doc = load(original)
    doc.set("test.resources.cpu", 111)

    assert doc.get("general.resources.cpu") == 512
    assert doc.get("test.resources.cpu") == 111
    assert doc.to_string() == original.replace("256", "111")


def test_flow_mapping_spacing_kept():
    doc = load("r: { cpu: 1, memory: 2 }\n")
    doc.set("r.cpu", 9)
    assert doc.to_string() == "r: { cpu: 9, memory: 2 }\n"


def test_comments_survive_edit():
    doc = load("a: 1 # first\nb: 2 # second\nc: 3 # third\n")
    doc.set("b", 20)
    assert doc.to_string() == "a: 1 # first\nb: 20 # second\nc: 3 # third\n"


def test_comment_alignment_modes():
    """COMMENT TEST: relative, absolute and disabled alignment."""
    relative = load("x: 1 # c\n")
    relative.set("x", 2)
    assert relative.to_string() == "x: 2 # c\n"

    absolute = load("x: 1 # c\n")
    absolute.set_absolute_comment_alignment(10)
    absolute.set("x", 2)
    assert absolute.to_string().index("#") == 10

    disabled = load("x: 1 # c\n")
    disabled.disable_comment_alignment()
    disabled.set("x", 2)
    assert disabled.to_string() == "x: 2\n"


def test_comment_alignment_mode_by_name():
    doc = load("x: 1 # c\n")
    doc.set_comment_alignment("disabled")
    doc.set("x", 3)
    assert "#" not in doc.to_string()
    doc.enable_relative_comment_alignment()
    assert doc.options.comment_mode.value == "relative"


def test_options_are_copied_per_document():
    first = load("x: 1 # c\n")
    second = load("x: 1 # c\n", first.options)
    second.disable_comment_alignment()
    assert first.options.comment_mode.value == "relative"


def test_key_order_preserved_and_new_keys_appended():
    doc = load("b: 1\na: 2\n")
    doc.set("a", 3)
    doc.set("c", 4)
    doc.set("d", 5)
    assert doc.to_string() == "b: 1\na: 3\nc: 4\nd: 5\n"


def test_set_creates_intermediate_mappings():
    doc = load("a: 1\n")
    doc.set("b.c.d", 2)
    assert doc.get("b") == {"c": {"d": 2}}
    assert doc.to_string() == "a: 1\nb:\n  c:\n    d: 2\n"


def test_set_list_value_renders_block():
    doc = load("a: 1\n")
    doc.set("tags", ["x", "y"])
    assert doc.to_string() == "a: 1\ntags:\n  - x\n  - y\n"


def test_set_multiline_string_becomes_block_scalar():
    doc = load("a: 1\n")
    doc.set("msg", "first\nsecond")
    assert doc.get("msg") == "first\nsecond"
    assert "msg: |" in doc.to_string()


def test_block_scalar_untouched_by_sibling_edit():
    original = "script: |\n  echo one\n  echo two\nname: x\n"
    doc = load(original)
    doc.set("name", "y")
    assert doc.to_string() == original.replace("name: x", "name: y")


def test_quoted_scalar_style_kept():
    doc = load('name: "web"\nother: \'x\'\n')
    doc.set("name", "api")
    doc.set("other", "y")
    assert doc.to_string() == 'name: "api"\nother: \'y\'\n'


def test_null_and_bool_tokens_kept():
    doc = load("a: ~\nflag: True\nn: 1\n")
    doc.set("n", 2)
    assert doc.to_string() == "a: ~\nflag: True\nn: 2\n"


def test_blank_lines_kept_after_edit():
    original = "a: 1\n\nb: 2\n\n\nc: 3\n"
    doc = load(original)
    doc.set("b", 5)
    assert doc.to_string() == "a: 1\n\nb: 5\n\n\nc: 3\n"


def test_document_start_marker_kept():
    doc = load("---\na: 1\n")
    doc.set("a", 2)
    assert doc.to_string() == "---\na: 2\n"


def test_document_end_marker_kept():
    doc = load("a: 1\n...\n")
    doc.set("a", 2)
    assert doc.to_string() == "a: 2\n...\n"


def test_bom_stripped_and_crlf_kept():
    doc = load("\ufeffa: 1\r\nb: 2\r\n")
    doc.set("a", 5)
    assert doc.to_bytes() == b"a: 5\r\nb: 2\r\n"


def test_empty_document():
    doc = load("")
    assert doc.get("") == {}
    assert doc.to_string() == ""
    doc.set("a", 1)
    assert doc.to_string() == "a: 1"


@pytest.mark.parametrize("original", [
    "# nothing here\n",
    "# one\n\n# two\n",
    "# no trailing newline",
])
def test_comment_only_document_round_trip(original):
    doc = load(original)
    assert doc.get("") == {}
    assert doc.to_string() == original


def test_comment_only_document_keeps_comments_after_edit():
    doc = load("# settings\n")
    doc.set("a", 1)
    assert doc.to_string() == "# settings\na: 1\n"
    doc.set("a", 2)
    assert doc.to_string() == "# settings\na: 2\n"


def test_scalar_document():
    doc = load("42\n")
    assert doc.get("") == 42
    with pytest.raises(TypeMismatch):
        doc.set("a", 1)


def test_replace_root():
    doc = load("a: 1\n")
    doc.set("", {"b": 2})
    assert doc.get("") == {"b": 2}
    assert doc.to_string() == "b: 2\n"


def test_unloaded_document():
    doc = Document()
    with pytest.raises(RuntimeError):
        doc.get("a")
    with pytest.raises(RuntimeError):
        doc.to_string()


def test_parse_error_reports_position():
    with pytest.raises(ParseError) as excinfo:
        load("a: [1, 2\nb: 3\n")
    assert excinfo.value.line is not None
    assert excinfo.value.line >= 1


@pytest.mark.parametrize("path,error", [
    ("missing", PathNotFound),
    ("a.b", TypeMismatch),
    ("items[9]", PathNotFound),
    ("a..b", InvalidPath),
])
def test_get_errors(path, error):
    doc = load("a: 1\nitems: [x]\n")
    with pytest.raises(error):
        doc.get(path)


def test_set_index_rules():
    """Index == length appends; beyond it is out of bounds."""
    doc = load("items:\n  - a\n")
    doc.set("items[1]", "b")
    assert doc.get("items") == ["a", "b"]
    with pytest.raises(IndexOutOfBounds):
        doc.set("items[5]", "z")
    with pytest.raises(TypeMismatch):
        doc.set("items.key", "z")


def test_failed_set_leaves_text_unchanged():
    doc = load("items:\n  - a\n")
    before = doc.to_string()
    with pytest.raises(IndexOutOfBounds):
        doc.set("items[3]", "x")
    assert doc.to_string() == before


@pytest.mark.parametrize("path", ["x.y[3]", "x[1].y[2]", "a.b[4]"])
def test_failed_set_does_not_create_parents(path):
    doc = load("a: 1\n")
    with pytest.raises(IndexOutOfBounds):
        doc.set(path, 1)
    assert doc.get("") == {"a": 1}
    assert doc.to_string() == "a: 1\n"


def test_array_root_document():
    """ARRAY ROOT: element access and edits on a top-level sequence."""
    original = "- name: a\n  port: 1\n- name: b\n  port: 2\n"
    doc = load(original)

    assert doc.is_array_root()
    assert doc.get("name") == "a"
    assert doc.get_array_document_element(1, "port") == 2

    doc.set_array_element(1, "port", 3)
    assert doc.get_array_document_element(1, "port") == 3
    assert doc.to_string() == original.replace("port: 2", "port: 3")

    doc.add_array_element({"name": "c", "port": 4})
    assert doc.get_array_document_element(2) == {"name": "c", "port": 4}
    with pytest.raises(IndexOutOfBounds):
        doc.get_array_document_element(7)


def test_array_element_helpers_on_mapping_root():
    doc = load("a: 1\n")
    with pytest.raises(TypeMismatch):
        doc.add_array_element(1)
    with pytest.raises(TypeMismatch):
        doc.set_array_element(0, "x", 1)


def test_failed_element_edit_keeps_markers():
    doc = load("---\na: 1\n")
    with pytest.raises(TypeMismatch):
        doc.set_array_element(0, "x", 1)
    with pytest.raises(TypeMismatch):
        doc.add_array_element(1)
    doc.set("a", 2)
    assert doc.to_string() == "---\na: 2\n"


def test_element_edit_drops_markers():
    doc = load("---\n- a: 1\n")
    doc.set_array_element(0, "a", 2)
    assert doc.to_string() == "- a: 2\n"


def test_validate():
    doc = load("name: web\nreplicas: 0\n")
    rule = load_schema("type: map\nproperties:\n  replicas: {type: int, minimum: 1}\n")
    with pytest.raises(ValidationError) as excinfo:
        doc.validate(rule)
    assert "replicas" in str(excinfo.value)

    doc.set("replicas", 2)
    doc.validate(rule)


def test_file_round_trip(tmp_path):
    target = tmp_path / "config.yaml"
    target.write_text("a: 1 # keep\nb: [1, 2]\n", encoding="utf-8")

    doc = load_file(target)
    doc.set("a", 5)
    doc.append_to_array("b", 3)
    doc.save(target)

    assert target.read_text(encoding="utf-8") == "a: 5 # keep\nb: [1, 2, 3]\n"
    assert not (tmp_path / "config.yaml.yamler.tmp").exists()


def test_load_file_errors(tmp_path):
    with pytest.raises(FileError):
        load_file(tmp_path / "missing.yaml")

    binary = tmp_path / "binary.yaml"
    binary.write_bytes(b"\xff\xfe\x00a")
    with pytest.raises(FileError):
        load_file(binary)


def test_str_matches_to_string():
    doc = load("a: 1\n")
    assert str(doc) == doc.to_string()
