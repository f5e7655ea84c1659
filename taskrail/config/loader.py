import json
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from taskrail.globs import GlobError, compile_glob

from .types import (
    CommandSpec,
    CompositeSpec,
    ConfigError,
    ProjectConfig,
    ServeConfig,
    SuiteConfig,
    TaskConfig,
    TaskSpec,
    UnsupportedConfigFormatError,
    WatchConfig,
)

_COMPOSITES = ("series", "parallel")
_TASK_KEYS = {"command", "env", "working_dir", *_COMPOSITES}
_TOP_KEYS = {"tasks", "suite", "serve", "watch"}


def load_project(path: str | Path) -> ProjectConfig:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    fmt = _detect_format(pure_path)
    raw_file = _parse_file(pure_path, fmt)
    project = _build_project_config(raw_file)
    return project


def _detect_format(path: Path) -> str:
    fmt = path.suffix
    match fmt:
        case ".yaml" | ".yml":
            return "yaml"
        case ".toml":
            return "toml"
        case ".json":
            return "json"
        case _:
            raise UnsupportedConfigFormatError(
                f"Non supported file extension: {fmt}\n Expected format: .yml/.yaml, .toml, .json"
            )


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    match fmt:
        case "yaml":
            return _parse_yaml(path)
        case "toml":
            return _parse_toml(path)
        case "json":
            return _parse_json(path)
        case _:
            raise AssertionError("Unreachable")


def _parse_yaml(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML") from exc

    return _expect_top_mapping(path, "YAML", raw_file)


def _parse_toml(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: invalid TOML") from exc

    return _expect_top_mapping(path, "TOML", raw_file)


def _parse_json(path: Path) -> Mapping[str, Any]:
    try:
        raw_file = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON") from exc

    return _expect_top_mapping(path, "JSON", raw_file)


def _expect_top_mapping(path: Path, fmt: str, raw_file: Any) -> Mapping[str, Any]:
    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: {fmt} parsed successfully but top-level value is not an object: {type(raw_file)}"
        )

    return raw_file


def _build_project_config(raw: Mapping[str, Any]) -> ProjectConfig:
    tasks: dict[str, TaskConfig] = {}

    for key in raw.keys():
        if key not in _TOP_KEYS:
            raise ConfigError(f"Can't process top-level field: {key}")

    if "tasks" not in raw:
        raise ConfigError("Missing 'tasks' field")

    if not isinstance(raw["tasks"], Mapping):
        raise ConfigError(f"'tasks' must be a mapping, got {type(raw['tasks'])}")

    if len(raw["tasks"]) < 1:
        raise ConfigError("There must be at least one task in the config file")

    for task_id, fields in raw["tasks"].items():
        if not isinstance(task_id, str):
            raise ConfigError(f"Task id must be a string, got {type(task_id)}")

        if not isinstance(fields, Mapping):
            raise ConfigError(f"{task_id} must be a mapping")

        task_id_norm = task_id.strip()

        if len(task_id_norm) < 1:
            raise ConfigError("A task id can't be empty")

        if task_id_norm in tasks:
            raise ConfigError(f"Duplicate task id after normalization: {task_id_norm}")

        tasks[task_id_norm] = TaskConfig(task_id_norm, _build_body(task_id_norm, fields))

    suite = _build_suite_config(raw["suite"]) if "suite" in raw else None
    if suite is not None and suite.name in tasks:
        raise ConfigError(f"suite: name '{suite.name}' is already used by a task")

    serve = _build_serve_config(raw["serve"]) if "serve" in raw else ServeConfig()
    watches = _build_watch_configs(raw["watch"]) if "watch" in raw else []

    project = ProjectConfig(tasks=tasks, suite=suite, serve=serve, watches=watches)

    for task in tasks.values():
        for ref in _references(task.body):
            if not project.has_task(ref):
                raise ConfigError(f"Task '{task.id}' references unknown task '{ref}'")
            if ref == task.id:
                raise ConfigError(f"{task.id}: A task cannot reference itself")

    for index, watch in enumerate(watches):
        for ref in _references(watch.task):
            if not project.has_task(ref):
                raise ConfigError(f"watch[{index}] references unknown task '{ref}'")

    return project


def _references(spec: TaskSpec) -> list[str]:
    match spec:
        case str():
            return [spec]
        case CompositeSpec(children=children):
            refs: list[str] = []
            for child in children:
                refs.extend(_references(child))
            return refs
        case _:
            return []


def _build_ref(where: str, item: Any) -> TaskSpec:
    if isinstance(item, str):
        ref = item.strip()
        if len(ref) < 1:
            raise ConfigError(f"{where}: A task reference is empty")
        return ref

    if isinstance(item, Mapping):
        return _build_body(where, item)

    raise ConfigError(f"{where}: {item} should be a task name or a task mapping")


def _build_body(task_id: str, fields: Mapping[str, Any]) -> CommandSpec | CompositeSpec:
    for field in fields.keys():
        if field not in _TASK_KEYS:
            raise ConfigError(f"{task_id}: Can't process: {field}")

    kinds = [k for k in ("command", *_COMPOSITES) if k in fields]
    if len(kinds) != 1:
        raise ConfigError(
            f"{task_id}: exactly one of 'command', 'series' or 'parallel' is required"
        )

    kind = kinds[0]
    if kind == "command":
        return _build_command(task_id, fields)

    for field in ("env", "working_dir"):
        if field in fields:
            raise ConfigError(f"{task_id}: '{field}' is only allowed with 'command'")

    children = fields[kind]
    if not isinstance(children, list):
        raise ConfigError(f"{task_id}: '{kind}' should be a list.")

    if len(children) < 1:
        raise ConfigError(f"{task_id}: '{kind}' needs at least one task")

    return CompositeSpec(kind, [_build_ref(task_id, item) for item in children])


def _build_command(task_id: str, fields: Mapping[str, Any]) -> CommandSpec:
    env = {}
    working_dir = None

    if not isinstance(fields["command"], str):
        raise ConfigError(f"{task_id}: The command should be a string")

    if len(fields["command"].strip()) < 1:
        raise ConfigError(f"{task_id}: Command missing")

    command = fields["command"].strip()

    if "env" in fields:
        if not isinstance(fields["env"], Mapping):
            raise ConfigError(f"{task_id}: Env should be a mapping")

        for key, item in fields["env"].items():
            if not isinstance(key, str):
                raise ConfigError(f"{task_id}: {key} should be a string")

            if len(key.strip()) < 1:
                raise ConfigError(f"{task_id}: A key can't be empty")

            if not isinstance(item, str):
                raise ConfigError(f"{task_id}: {item} should be a string")

            env[key.strip()] = item

    if "working_dir" in fields:
        if not isinstance(fields["working_dir"], str):
            raise ConfigError(f"{task_id}: The working_dir should be a string")

        if len(fields["working_dir"].strip()) < 1:
            raise ConfigError(
                f"{task_id}: Please provide a string or remove this field"
            )

        working_dir = fields["working_dir"].strip()

    return CommandSpec(command, env, working_dir)


def _build_suite_config(raw: Any) -> SuiteConfig:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'suite' must be a mapping, got {type(raw)}")

    keys = {"name", "pattern", "host", "port", "timeout", "browser"}
    for field in raw.keys():
        if field not in keys:
            raise ConfigError(f"suite: Can't process: {field}")

    defaults = SuiteConfig()
    name = _string(raw, "name", "suite", defaults.name)
    pattern = _string(raw, "pattern", "suite", defaults.pattern)
    try:
        compile_glob(pattern)
    except GlobError as exc:
        raise ConfigError(f"suite: {exc}") from exc

    browser = _string(raw, "browser", "suite", defaults.browser)
    if browser not in ("chromium", "firefox", "webkit"):
        raise ConfigError(f"suite: unsupported browser '{browser}'")

    return SuiteConfig(
        name=name,
        pattern=pattern,
        host=_string(raw, "host", "suite", defaults.host),
        port=_port(raw, "suite", defaults.port),
        timeout_s=_seconds(raw, "timeout", "suite", defaults.timeout_s, positive=True),
        browser=browser,
    )


def _build_serve_config(raw: Any) -> ServeConfig:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"'serve' must be a mapping, got {type(raw)}")

    keys = {"host", "port", "debounce"}
    for field in raw.keys():
        if field not in keys:
            raise ConfigError(f"serve: Can't process: {field}")

    defaults = ServeConfig()
    return ServeConfig(
        host=_string(raw, "host", "serve", defaults.host),
        port=_port(raw, "serve", defaults.port),
        debounce_s=_seconds(raw, "debounce", "serve", defaults.debounce_s),
    )


def _build_watch_configs(raw: Any) -> list[WatchConfig]:
    if not isinstance(raw, list):
        raise ConfigError(f"'watch' must be a list, got {type(raw)}")

    watches = []
    for index, item in enumerate(raw):
        where = f"watch[{index}]"
        if not isinstance(item, Mapping):
            raise ConfigError(f"{where} must be a mapping")

        for field in item.keys():
            if field not in ("globs", "task"):
                raise ConfigError(f"{where}: Can't process: {field}")

        if "globs" not in item or "task" not in item:
            raise ConfigError(f"{where}: 'globs' and 'task' are required")

        globs = item["globs"]
        if isinstance(globs, str):
            globs = [globs]
        if not isinstance(globs, list) or len(globs) < 1:
            raise ConfigError(f"{where}: 'globs' should be a non-empty list")

        for glob in globs:
            if not isinstance(glob, str):
                raise ConfigError(f"{where}: {glob} should be a string")
            try:
                compile_glob(glob)
            except GlobError as exc:
                raise ConfigError(f"{where}: {exc}") from exc

        watches.append(WatchConfig([g.strip() for g in globs], _build_ref(where, item["task"])))

    return watches


def _string(raw: Mapping[str, Any], key: str, where: str, default: str) -> str:
    if key not in raw:
        return default

    value = raw[key]
    if not isinstance(value, str) or len(value.strip()) < 1:
        raise ConfigError(f"{where}: '{key}' should be a non-empty string")

    return value.strip()


def _port(raw: Mapping[str, Any], where: str, default: int) -> int:
    if "port" not in raw:
        return default

    value = raw["port"]
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 65535:
        raise ConfigError(f"{where}: 'port' should be an integer between 0 and 65535")

    return value


def _seconds(
    raw: Mapping[str, Any], key: str, where: str, default: float, *, positive: bool = False
) -> float:
    if key not in raw:
        return default

    value = raw[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{where}: '{key}' should be a number of seconds")

    if value < 0 or (positive and value == 0):
        raise ConfigError(f"{where}: '{key}' is out of range: {value}")

    return float(value)
