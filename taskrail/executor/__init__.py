from .executor import ANONYMOUS, Executor
from .shell import ShellCommand
from .types import CommandFailed, RunResult, TaskFailed, TaskResult

__all__ = [
    "ANONYMOUS",
    "Executor",
    "ShellCommand",
    "RunResult",
    "TaskResult",
    "TaskFailed",
    "CommandFailed",
]
