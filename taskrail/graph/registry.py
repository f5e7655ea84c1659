from __future__ import annotations

from enum import Enum, auto

from .nodes import Body, Node, Parallel, Series, Task
from .types import CycleError, UnknownTaskError


class _Visit(Enum):
    UNVISITED = auto()
    VISITING = auto()
    VISITED = auto()


class Registry:
    """Name -> task table resolved by the executor.

    Composites reference names lazily, so a name registered again replaces
    the task for every lookup made afterwards.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Node] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def register(self, name: str, body: Body | Node) -> Node:
        name = name.strip()
        if len(name) < 1:
            raise ValueError("A task name can't be empty")

        if isinstance(body, (str, Series, Parallel)):
            node: Node = body
        elif isinstance(body, Task):
            node = Task(body.body, name)
        elif callable(body):
            node = Task(body, name)
        else:
            raise TypeError(f"{name}: not a callable or task reference: {body!r}")

        self._tasks[name] = node
        return node

    def get(self, name: str) -> Node:
        if name not in self._tasks:
            raise UnknownTaskError(name)
        return self._tasks[name]

    def names(self) -> list[str]:
        return sorted(self._tasks)

    def validate(self, node: Node) -> None:
        """Resolve every name reachable from ``node``.

        Raises UnknownTaskError for a missing name and CycleError when a name
        is reachable from itself.
        """
        state: dict[str, _Visit] = {}
        stack: list[str] = []

        def visit(current: Node) -> None:
            match current:
                case str():
                    visit_name(current)
                case Series(children) | Parallel(children):
                    for child in children:
                        visit(child)
                case Task():
                    pass
                case _:
                    raise TypeError(f"Not a task reference: {current!r}")

        def visit_name(name: str) -> None:
            seen = state.get(name, _Visit.UNVISITED)
            if seen == _Visit.VISITING:
                start = stack.index(name)
                raise CycleError(stack[start:] + [name])
            if seen == _Visit.VISITED:
                return

            target = self.get(name)
            state[name] = _Visit.VISITING
            stack.append(name)
            visit(target)
            stack.pop()
            state[name] = _Visit.VISITED

        visit(node)
