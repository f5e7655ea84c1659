"""Series/parallel task runner for front-end build pipelines."""

from .executor import Executor, RunResult
from .graph import Registry, parallel, series

__all__ = ["Executor", "RunResult", "Registry", "series", "parallel"]
