from .loader import load_project
from .types import (
    CommandSpec,
    CompositeSpec,
    ConfigError,
    ProjectConfig,
    ServeConfig,
    SuiteConfig,
    TaskConfig,
    UnsupportedConfigFormatError,
    WatchConfig,
)

__all__ = [
    "load_project",
    "ProjectConfig",
    "TaskConfig",
    "CommandSpec",
    "CompositeSpec",
    "SuiteConfig",
    "ServeConfig",
    "WatchConfig",
    "ConfigError",
    "UnsupportedConfigFormatError",
]
