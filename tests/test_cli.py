import pytest

from yamler.cli.main import YamlerCLI, parse_cli_value

CONFIG = "name: web # service\nport: 80\ntags: [a, b]\n"


@pytest.fixture
def config_file(tmp_path):
    target = tmp_path / "config.yaml"
    target.write_text(CONFIG, encoding="utf-8")
    return target


@pytest.mark.parametrize("text,value", [
    ("8080", 8080),
    ("true", True),
    ("[a, b]", ["a", "b"]),
    ("{k: v}", {"k": "v"}),
    ("plain text", "plain text"),
    ("a: b: c", "a: b: c"),
])
def test_parse_cli_value(text, value):
    assert parse_cli_value(text) == value


def test_get_prints_value(config_file, capsys):
    assert YamlerCLI().run(["get", str(config_file), "port"]) == 0
    assert capsys.readouterr().out.strip() == "80"


def test_get_missing_path_fails(config_file, capsys):
    assert YamlerCLI().run(["get", str(config_file), "nope"]) == 1
    assert "Error" in capsys.readouterr().out


def test_set_writes_file(config_file):
    """CLI TEST: `set` edits in place and keeps comments and flow style."""
    assert YamlerCLI().run(["set", str(config_file), "port", "8080"]) == 0
    assert config_file.read_text(encoding="utf-8") == "name: web # service\nport: 8080\ntags: [a, b]\n"


def test_set_dry_run_leaves_file(config_file, capsys):
    assert YamlerCLI().run(["set", str(config_file), "tags[2]", "c", "--dry-run"]) == 0
    assert "tags: [a, b, c]" in capsys.readouterr().out
    assert config_file.read_text(encoding="utf-8") == CONFIG


def test_set_with_diff(config_file, capsys):
    assert YamlerCLI().run(["set", str(config_file), "port", "81", "--dry-run", "--diff"]) == 0
    out = capsys.readouterr().out
    assert "-port: 80" in out
    assert "+port: 81" in out


def test_set_comment_options(config_file):
    assert YamlerCLI().run(["set", str(config_file), "port", "81", "--no-comments"]) == 0
    assert config_file.read_text(encoding="utf-8") == "name: web\nport: 81\ntags: [a, b]\n"


def test_set_invalid_index_fails(config_file):
    assert YamlerCLI().run(["set", str(config_file), "tags[7]", "x"]) == 1
    assert config_file.read_text(encoding="utf-8") == CONFIG


def test_check_identical(config_file, capsys):
    assert YamlerCLI().run(["check", str(config_file)]) == 0
    assert "IDENTICAL" in capsys.readouterr().out


def test_paths(config_file, capsys):
    assert YamlerCLI().run(["paths", str(config_file), "tags[*]"]) == 0
    out = capsys.readouterr().out
    assert "tags[0]" in out
    assert "tags[1]" in out


def test_validate(config_file, tmp_path):
    schema = tmp_path / "schema.yaml"
    schema.write_text("type: map\nproperties:\n  port: {type: int, minimum: 1024}\n", encoding="utf-8")
    assert YamlerCLI().run(["validate", str(config_file), str(schema)]) == 1

    schema.write_text("type: map\nrequired: [name]\n", encoding="utf-8")
    assert YamlerCLI().run(["validate", str(config_file), str(schema)]) == 0


def test_missing_file_fails(tmp_path, capsys):
    assert YamlerCLI().run(["get", str(tmp_path / "absent.yaml"), "a"]) == 1


def test_no_command_prints_help(capsys):
    assert YamlerCLI().run([]) == 0
    assert "usage" in capsys.readouterr().out
