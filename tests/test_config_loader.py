# tests/test_config_loader.py
from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskrail.config.loader import load_project
from taskrail.config.types import (
    CommandSpec,
    CompositeSpec,
    ConfigError,
    ServeConfig,
    SuiteConfig,
    UnsupportedConfigFormatError,
    WatchConfig,
)


# -------------------------
# Helpers
# -------------------------


def write_text(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def write_json(path: Path, obj: object) -> Path:
    path.write_text(json.dumps(obj), encoding="utf-8")
    return path


# -------------------------
# Basic file/path errors
# -------------------------


def test_missing_file_raises_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_project(tmp_path / "missing.yaml")


def test_path_is_dir_raises_config_error(tmp_path: Path) -> None:
    d = tmp_path / "dir"
    d.mkdir()
    with pytest.raises(ConfigError):
        load_project(d)


def test_unsupported_extension_raises_unsupported_format(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.txt", "tasks: {}")
    with pytest.raises(UnsupportedConfigFormatError):
        load_project(p)


# -------------------------
# Parse errors are wrapped
# -------------------------


def test_invalid_yaml_is_wrapped_as_config_error(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.yaml", "tasks: [\n")  # invalid
    with pytest.raises(ConfigError):
        load_project(p)


def test_invalid_toml_is_wrapped_as_config_error(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.toml", "tasks = {")  # invalid
    with pytest.raises(ConfigError):
        load_project(p)


def test_invalid_json_is_wrapped_as_config_error(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.json", '{"tasks": ')  # invalid
    with pytest.raises(ConfigError):
        load_project(p)


# -------------------------
# Top-level shape validation
# -------------------------


@pytest.mark.parametrize(
    "ext, content",
    [
        (".yaml", "[]\n"),
        (".yaml", "null\n"),
        (
            ".toml",
            'tasks = "nope"\n',
        ),  # valid TOML but wrong type; your code checks Mapping
        (".json", "[]"),
        (".json", "null"),
    ],
)
def test_top_level_not_mapping_raises(tmp_path: Path, ext: str, content: str) -> None:
    p = write_text(tmp_path / f"config{ext}", content)
    with pytest.raises(ConfigError):
        load_project(p)


def test_missing_tasks_key_raises(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.yaml", "not_tasks: {}\n")
    with pytest.raises(ConfigError):
        load_project(p)


@pytest.mark.parametrize(
    "ext, content",
    [
        (".yaml", "tasks: []\n"),
        (".yaml", "tasks: null\n"),
        (".json", '{"tasks": []}'),
        (".json", '{"tasks": null}'),
        (".toml", 'tasks = "nope"\n'),
        (".toml", "tasks = 123\n"),
    ],
)
def test_tasks_not_mapping_raises(tmp_path: Path, ext: str, content: str) -> None:
    p = write_text(tmp_path / f"config{ext}", content)
    with pytest.raises(ConfigError):
        load_project(p)


@pytest.mark.parametrize(
    "ext, content",
    [
        (".yaml", "tasks: {}\n"),
        (".json", '{"tasks": {}}'),
        (".toml", "[tasks]\n"),  # empty table => mapping with 0 keys
    ],
)
def test_tasks_empty_raises(tmp_path: Path, ext: str, content: str) -> None:
    p = write_text(tmp_path / f"config{ext}", content)
    with pytest.raises(ConfigError):
        load_project(p)


# -------------------------
# Task id validation
# -------------------------


def test_task_id_not_string_yaml_raises(tmp_path: Path) -> None:
    # YAML numeric key => int task_id at runtime
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  1:\n    command: echo hi\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_task_id_empty_after_strip_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        'tasks:\n  "   ":\n    command: echo hi\n',
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_duplicate_task_id_after_normalization_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n"
        "  build:\n"
        "    command: echo 1\n"
        '  " build ":\n'
        "    command: echo 2\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


# -------------------------
# Task fields shape validation
# -------------------------


def test_task_fields_not_mapping_raises(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.yaml", "tasks:\n  build: []\n")
    with pytest.raises(ConfigError):
        load_project(p)


def test_unknown_task_field_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  build:\n    command: echo hi\n    nope: 1\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


# -------------------------
# command validation
# -------------------------


def test_missing_body_raises(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.yaml", "tasks:\n  build:\n    env: {}\n")
    with pytest.raises(ConfigError):
        load_project(p)


def test_command_not_string_raises(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.yaml", "tasks:\n  build:\n    command: 123\n")
    with pytest.raises(ConfigError):
        load_project(p)


def test_command_empty_after_strip_raises(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.yaml", 'tasks:\n  build:\n    command: "   "\n')
    with pytest.raises(ConfigError):
        load_project(p)

# -------------------------
# env validation
# -------------------------


def test_env_not_mapping_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    command: echo a\n    env: []\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_env_key_not_string_yaml_raises(tmp_path: Path) -> None:
    # YAML allows non-string keys in mappings
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    command: echo a\n    env:\n      1: x\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_env_value_not_string_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    command: echo a\n    env:\n      KEY: 1\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_env_key_is_stripped_value_preserved(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        'tasks:\n  a:\n    command: echo a\n    env:\n      " KEY ": "  v  "\n',
    )
    proj = load_project(p)
    assert proj.tasks["a"].body.env == {"KEY": "  v  "}


# -------------------------
# working_dir validation
# -------------------------


def test_working_dir_not_string_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    command: echo a\n    working_dir: 1\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_working_dir_empty_string_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        'tasks:\n  a:\n    command: echo a\n    working_dir: "   "\n',
    )
    with pytest.raises(ConfigError):
        load_project(p)


# -------------------------
# series / parallel validation
# -------------------------


def test_command_and_composite_together_raise(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    command: echo a\n  b:\n    command: echo b\n    series: [a]\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_env_on_composite_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    command: echo a\n  b:\n    series: [a]\n    env: {K: v}\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


@pytest.mark.parametrize("value", ["a", "[]", "{x: 1}"])
def test_composite_children_must_be_non_empty_list(tmp_path: Path, value: str) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        f"tasks:\n  a:\n    command: echo a\n  b:\n    parallel: {value}\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_composite_child_must_be_name_or_mapping(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    command: echo a\n  b:\n    series: [a, 3]\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_unknown_reference_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    series: [b]\n",
    )
    with pytest.raises(ConfigError, match="unknown task 'b'"):
        load_project(p)


def test_unknown_reference_inside_inline_composite_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n"
        "  a:\n"
        "    command: echo a\n"
        "  b:\n"
        "    series:\n"
        "      - parallel: [a, missing]\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_self_reference_raises(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    series: [a]\n",
    )
    with pytest.raises(ConfigError):
        load_project(p)


def test_inline_tasks_are_parsed(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n"
        "  js:\n"
        "    command: echo js\n"
        "  css:\n"
        "    command: echo css\n"
        "  default:\n"
        "    series:\n"
        "      - parallel: [js, \" css \"]\n"
        "      - command: echo zip\n",
    )
    proj = load_project(p)
    body = proj.tasks["default"].body

    assert isinstance(body, CompositeSpec)
    assert body.kind == "series"
    first, second = body.children
    assert first == CompositeSpec("parallel", ["js", "css"])
    assert second == CommandSpec("echo zip")


# -------------------------
# suite / serve / watch
# -------------------------


def test_suite_defaults(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  test:\n    series: [qunit]\nsuite: {}\n",
    )
    proj = load_project(p)

    assert proj.suite == SuiteConfig()
    assert proj.has_task("qunit")
    assert proj.tasks_ids() == ["qunit", "test"]


def test_suite_fields_are_read(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n  a:\n    command: echo a\n"
        "suite:\n"
        "  name: pages\n"
        "  pattern: 'tests/**/*.html'\n"
        "  port: 9100\n"
        "  timeout: 5\n"
        "  browser: firefox\n",
    )
    suite = load_project(p).suite

    assert suite.name == "pages"
    assert suite.pattern == "tests/**/*.html"
    assert suite.port == 9100
    assert suite.timeout_s == 5.0
    assert suite.browser == "firefox"


@pytest.mark.parametrize(
    "suite",
    [
        "suite: []\n",
        "suite: {nope: 1}\n",
        "suite: {port: 70000}\n",
        "suite: {port: '8009'}\n",
        "suite: {timeout: 0}\n",
        "suite: {browser: lynx}\n",
        "suite: {pattern: 'test/{a,b'}\n",
        "suite: {name: a}\n",
    ],
)
def test_invalid_suite_raises(tmp_path: Path, suite: str) -> None:
    p = write_text(tmp_path / "config.yaml", "tasks:\n  a:\n    command: echo a\n" + suite)
    with pytest.raises(ConfigError):
        load_project(p)


def test_serve_defaults_and_overrides(tmp_path: Path) -> None:
    base = "tasks:\n  a:\n    command: echo a\n"
    assert load_project(write_text(tmp_path / "a.yaml", base)).serve == ServeConfig()

    proj = load_project(
        write_text(tmp_path / "b.yaml", base + "serve: {port: 3000, debounce: 0}\n")
    )
    assert proj.serve.port == 3000
    assert proj.serve.debounce_s == 0.0


def test_watch_bindings_are_parsed(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n"
        "  js:\n"
        "    command: echo js\n"
        "  test:\n"
        "    command: echo test\n"
        "watch:\n"
        "  - globs: ['js/**']\n"
        "    task: {series: [js, test]}\n"
        "  - globs: 'test/*.html'\n"
        "    task: test\n",
    )
    watches = load_project(p).watches

    assert len(watches) == 2
    assert watches[0].globs == ["js/**"]
    assert watches[0].task == CompositeSpec("series", ["js", "test"])
    assert watches[1] == WatchConfig(["test/*.html"], "test")


@pytest.mark.parametrize(
    "watch",
    [
        "watch: {}\n",
        "watch:\n  - globs: []\n    task: a\n",
        "watch:\n  - globs: ['js/{a']\n    task: a\n",
        "watch:\n  - globs: ['js/**']\n",
        "watch:\n  - globs: ['js/**']\n    task: missing\n",
        "watch:\n  - globs: ['js/**']\n    task: a\n    debounce: 1\n",
    ],
)
def test_invalid_watch_raises(tmp_path: Path, watch: str) -> None:
    p = write_text(tmp_path / "config.yaml", "tasks:\n  a:\n    command: echo a\n" + watch)
    with pytest.raises(ConfigError):
        load_project(p)


def test_unknown_top_level_field_raises(tmp_path: Path) -> None:
    p = write_text(tmp_path / "config.yaml", "tasks:\n  a:\n    command: echo a\nplugins: {}\n")
    with pytest.raises(ConfigError):
        load_project(p)


# -------------------------
# Happy paths (all formats)
# -------------------------


def test_valid_yaml_loads(tmp_path: Path) -> None:
    p = write_text(
        tmp_path / "config.yaml",
        "tasks:\n"
        "  build:\n"
        "    command: echo build\n"
        "    env:\n"
        "      KEY: value\n"
        "  test:\n"
        "    command: echo test\n"
        "  default:\n"
        "    series: [build, test]\n",
    )
    proj = load_project(p)
    assert set(proj.tasks.keys()) == {"build", "test", "default"}
    assert proj.tasks["build"].body.env == {"KEY": "value"}
    assert proj.tasks["default"].body == CompositeSpec("series", ["build", "test"])


def test_valid_json_loads(tmp_path: Path) -> None:
    obj = {
        "tasks": {
            "a": {"command": "echo a"},
            "b": {"parallel": ["a", {"command": "echo b"}]},
        }
    }
    p = write_json(tmp_path / "config.json", obj)
    proj = load_project(p)
    assert set(proj.tasks.keys()) == {"a", "b"}
    assert proj.tasks["b"].body == CompositeSpec("parallel", ["a", CommandSpec("echo b")])


def test_valid_toml_loads(tmp_path: Path) -> None:
    # TOML tables: [tasks.<id>]
    p = write_text(
        tmp_path / "config.toml",
        "[tasks.a]\n"
        'command = "echo a"\n'
        "\n"
        "[tasks.b]\n"
        'series = ["a"]\n'
        "\n"
        "[suite]\n"
        'pattern = "test/*.html"\n',
    )
    proj = load_project(p)
    assert set(proj.tasks.keys()) == {"a", "b"}
    assert proj.tasks["b"].body == CompositeSpec("series", ["a"])
    assert proj.suite is not None
