from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass
class CommandSpec:
    command: str
    env: dict[str, str] = field(default_factory=dict)
    working_dir: str | None = None


@dataclass
class CompositeSpec:
    kind: str  # "series" | "parallel"
    children: list[TaskSpec]


TaskSpec = Union[str, CommandSpec, CompositeSpec]


@dataclass
class TaskConfig:
    id: str
    body: CommandSpec | CompositeSpec


@dataclass
class SuiteConfig:
    name: str = "qunit"
    pattern: str = "test/*.html"
    host: str = "127.0.0.1"
    port: int = 8009
    timeout_s: float = 20.0
    browser: str = "chromium"


@dataclass
class ServeConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    debounce_s: float = 0.1


@dataclass
class WatchConfig:
    globs: list[str]
    task: TaskSpec


@dataclass
class ProjectConfig:
    tasks: dict[str, TaskConfig]
    suite: SuiteConfig | None = None
    serve: ServeConfig = field(default_factory=ServeConfig)
    watches: list[WatchConfig] = field(default_factory=list)

    def __iter__(self):
        for tasks_id in sorted(self.tasks):
            yield self.tasks[tasks_id]

    def __len__(self):
        return len(self.tasks)

    def has_task(self, id: str) -> bool:
        if self.suite is not None and id == self.suite.name:
            return True
        return id in self.tasks

    def get_task(self, id: str) -> TaskConfig:
        if id not in self.tasks:
            raise KeyError(id)

        return self.tasks[id]

    def tasks_ids(self) -> list[str]:
        ids = set(self.tasks)
        if self.suite is not None:
            ids.add(self.suite.name)
        return sorted(ids)


class ConfigError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)
