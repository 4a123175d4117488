import pytest
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq

from yamler.core.errors import IndexOutOfBounds, InvalidPath, PathNotFound, TypeMismatch
from yamler.core.nodes import to_value
from yamler.core.paths import (
    ArrayIndex,
    MapKey,
    find_key,
    format_path,
    parse_path,
    resolve,
    resolve_or_create,
)
from yamler.formatting.renderer import make_yaml

VALID_PATHS = [
    ("", ()),
    ("name", (MapKey("name"),)),
    ("spec.replicas", (MapKey("spec"), MapKey("replicas"))),
    ("items[0]", (MapKey("items"), ArrayIndex(0))),
    ("[2].port", (ArrayIndex(2), MapKey("port"))),
    ("matrix[1][3]", (MapKey("matrix"), ArrayIndex(1), ArrayIndex(3))),
    ("spec.containers[0].image", (MapKey("spec"), MapKey("containers"), ArrayIndex(0), MapKey("image"))),
]

INVALID_PATHS = ["a..b", ".a", "a.", "items[x]", "items[-1]", "items[0", "items]0["]


@pytest.mark.parametrize("path,steps", VALID_PATHS)
def test_parse_path(path, steps):
    """PARSER TEST: dotted paths split into key and index steps."""
    assert parse_path(path) == steps
    if path and not path.startswith("["):
        assert format_path(list(steps)) == path


@pytest.mark.parametrize("path", INVALID_PATHS)
def test_parse_path_rejects_malformed(path):
    with pytest.raises(InvalidPath):
        parse_path(path)


def _load(text):
    return make_yaml().load(text)


def test_resolve_keeps_same_named_keys_apart():
    """
    DISAMBIGUATION TEST: identical key names under different parents are
    addressed by their full path.
    """
    root = _load("general:\n  resources:\n    cpu: 512\ntest:\n  resources:\n    cpu: 256\n")
    assert resolve(root, "general.resources.cpu") == 512
    assert resolve(root, "test.resources.cpu") == 256


def test_resolve_errors():
    root = _load("a: 1\nitems: [x, y]\n")
    with pytest.raises(PathNotFound):
        resolve(root, "missing")
    with pytest.raises(PathNotFound):
        resolve(root, "items[5]")
    with pytest.raises(TypeMismatch):
        resolve(root, "a.b")
    with pytest.raises(TypeMismatch):
        resolve(root, "a[0]")


def test_find_key_matches_int_keys():
    root = _load("1: one\nname: x\n")
    assert find_key(root, "1") == 1
    assert find_key(root, "name") == "name"
    assert find_key(root, "nope") is None


@pytest.mark.parametrize("name", ["true", "True", "TRUE"])
def test_find_key_matches_bool_keys(name):
    """BOOL KEYS: `true` is loaded as True and found under any YAML spelling."""
    root = _load("true: yes\nname: x\n")
    assert find_key(root, name) is True


def test_resolve_or_create_builds_intermediates():
    root = CommentedMap()
    parent, step = resolve_or_create(root, "a.b.c")
    assert step == MapKey("c")
    assert isinstance(root["a"], CommentedMap)
    assert parent is root["a"]["b"]

    parent, step = resolve_or_create(root, "list[0].name")
    assert isinstance(root["list"], CommentedSeq)
    assert step == MapKey("name")
    assert parent is root["list"][0]


def test_resolve_or_create_replaces_scalar_placeholders():
    root = _load("a: 1\nb:\n")
    resolve_or_create(root, "a.x")
    resolve_or_create(root, "b.y")
    assert isinstance(root["a"], CommentedMap)
    assert isinstance(root["b"], CommentedMap)


def test_resolve_or_create_never_discards_collections():
    root = _load("m:\n  k: v\ns: [1, 2]\n")
    with pytest.raises(TypeMismatch):
        resolve_or_create(root, "m[0].x")
    with pytest.raises(TypeMismatch):
        resolve_or_create(root, "s.key.x")


def test_resolve_or_create_pads_sequences():
    root = _load("s: []\n")
    parent, step = resolve_or_create(root, "s[2].name")
    assert len(root["s"]) == 3
    assert parent is root["s"][2]


def test_resolve_or_create_rejects_index_past_end():
    root = _load("s: [a]\n")
    parent, step = resolve_or_create(root, "s[1]")
    assert step == ArrayIndex(1)
    with pytest.raises(IndexOutOfBounds):
        resolve_or_create(root, "s[3]")
    parent, step = resolve_or_create(root, "s[3]", pad_final=True)
    assert parent is root["s"]


@pytest.mark.parametrize("text,path", [
    ("a: 1\n", "x.y[3]"),
    ("a: 1\n", "x[2].y[5]"),
    ("a: 1\nb:\n", "b.c[4]"),
    ("a: 1\nlist: [1]\n", "list[3].k[2]"),
    ("a: 1\n", "a.b[2]"),
])
def test_failed_resolve_or_create_leaves_tree_unchanged(text, path):
    """ROLLBACK TEST: containers created on the way to a failure are removed again."""
    root = _load(text)
    before = YAML(typ='safe').load(text)
    with pytest.raises(IndexOutOfBounds):
        resolve_or_create(root, path)
    assert to_value(root) == before
