"""Turns a loaded project file into a Registry and watch bindings."""

from __future__ import annotations

from pathlib import Path

from taskrail.config import CommandSpec, CompositeSpec, ProjectConfig
from taskrail.config.types import TaskSpec
from taskrail.executor import Executor, ShellCommand
from taskrail.graph import Node, Registry, Task, parallel, series
from taskrail.suite import SuiteTask
from taskrail.watch import Watcher


def to_node(spec: TaskSpec, root: str | Path = ".") -> Node:
    root = Path(root)
    match spec:
        case str():
            return spec
        case CommandSpec(command=command, env=env, working_dir=working_dir):
            cwd = root / working_dir if working_dir else root
            return Task(ShellCommand(command, env, cwd))
        case CompositeSpec(kind="series", children=children):
            return series(*(to_node(c, root) for c in children))
        case CompositeSpec(kind="parallel", children=children):
            return parallel(*(to_node(c, root) for c in children))
        case _:
            raise TypeError(f"Not a task spec: {spec!r}")


def build_registry(project: ProjectConfig, root: str | Path = ".") -> Registry:
    registry = Registry()
    for task in project:
        registry.register(task.id, to_node(task.body, root))
    if project.suite is not None:
        registry.register(project.suite.name, SuiteTask(project.suite, root))
    return registry


def build_watcher(
    project: ProjectConfig, executor: Executor, root: str | Path = "."
) -> Watcher:
    watcher = Watcher(executor, root, debounce_s=project.serve.debounce_s)
    for watch in project.watches:
        watcher.watch(watch.globs, to_node(watch.task, root))
    return watcher
