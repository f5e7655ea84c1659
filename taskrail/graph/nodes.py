from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

Body = Callable[[], Any]


@dataclass(frozen=True, eq=False)
class Task:
    """A leaf unit of work.

    ``body`` is called with no arguments. Raising means failure, returning an
    awaitable means the outcome is that awaitable's outcome, anything else is
    success.
    """

    body: Body
    name: str | None = None


@dataclass(frozen=True)
class Series:
    children: tuple[Node, ...]


@dataclass(frozen=True)
class Parallel:
    children: tuple[Node, ...]


Node = Union[str, Task, Series, Parallel]


def _ref(ref: object) -> Node:
    if isinstance(ref, (str, Task, Series, Parallel)):
        if isinstance(ref, str) and len(ref.strip()) < 1:
            raise ValueError("A task reference can't be empty")
        return ref
    if callable(ref):
        return Task(ref)
    raise TypeError(f"Not a task reference: {ref!r}")


def series(*refs: object) -> Series:
    return Series(tuple(_ref(r) for r in refs))


def parallel(*refs: object) -> Parallel:
    return Parallel(tuple(_ref(r) for r in refs))


def describe(node: Node) -> str:
    match node:
        case str():
            return node
        case Task(name=str() as name):
            return name
        case Task():
            return "<anonymous>"
        case Series(children):
            return "series(" + ", ".join(describe(c) for c in children) + ")"
        case Parallel(children):
            return "parallel(" + ", ".join(describe(c) for c in children) + ")"
        case _:
            raise TypeError(f"Not a task reference: {node!r}")
