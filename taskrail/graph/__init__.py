from .nodes import Node, Parallel, Series, Task, describe, parallel, series
from .registry import Registry
from .types import CycleError, GraphError, UnknownTaskError

__all__ = [
    "Node",
    "Task",
    "Series",
    "Parallel",
    "series",
    "parallel",
    "describe",
    "Registry",
    "GraphError",
    "CycleError",
    "UnknownTaskError",
]
