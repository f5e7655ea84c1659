from __future__ import annotations

import asyncio
import inspect
import logging
import time

from taskrail.graph import Node, Parallel, Registry, Series, Task

from .types import RunResult, TaskFailed, TaskResult

logger = logging.getLogger(__name__)

ANONYMOUS = "<anonymous>"


class Executor:
    def __init__(self, registry: Registry):
        self.registry = registry

    async def run(self, node: Node) -> RunResult:
        """Run ``node`` to completion.

        Unknown names and cycles raise before anything starts. Task failures
        are returned in the RunResult, never raised.
        """
        self.registry.validate(node)
        results: list[TaskResult] = []
        try:
            await self._run_node(node, None, results)
        except TaskFailed as exc:
            return RunResult(False, exc.task_id, exc.error, results)
        return RunResult(True, results=results)

    def run_sync(self, node: Node) -> RunResult:
        return asyncio.run(self.run(node))

    async def _run_node(
        self, node: Node, name: str | None, results: list[TaskResult]
    ) -> None:
        if isinstance(node, str):
            await self._run_node(self.registry.get(node), node, results)
            return

        if isinstance(node, Task):
            name = name or node.name
        label = name or ANONYMOUS
        named = name is not None

        if named:
            logger.info("Starting '%s'...", label)
        start = time.monotonic()
        try:
            match node:
                case Task():
                    await self._run_leaf(node, label)
                case Series(children):
                    for child in children:
                        await self._run_node(child, None, results)
                case Parallel(children):
                    await self._run_parallel(children, results)
                case _:
                    raise TypeError(f"Not a task reference: {node!r}")
        except TaskFailed as exc:
            duration = time.monotonic() - start
            if named or isinstance(node, Task):
                results.append(TaskResult(label, False, duration, exc.error))
            if named:
                logger.error("'%s' errored after %.3fs: %s", label, duration, exc.error)
            raise

        duration = time.monotonic() - start
        if named or isinstance(node, Task):
            results.append(TaskResult(label, True, duration))
        if named:
            logger.info("Finished '%s' after %.3fs", label, duration)

    async def _run_leaf(self, task: Task, label: str) -> None:
        try:
            outcome = task.body()
            if inspect.isawaitable(outcome):
                await outcome
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise TaskFailed(label, exc) from exc

    async def _run_parallel(
        self, children: tuple[Node, ...], results: list[TaskResult]
    ) -> None:
        # every child is scheduled before any of them is awaited
        pending = [
            asyncio.ensure_future(self._run_node(child, None, results))
            for child in children
        ]
        # siblings of a failed child always run to completion
        first: Exception | None = None
        try:
            for fut in asyncio.as_completed(pending):
                try:
                    await fut
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    if first is None:
                        first = exc
        except asyncio.CancelledError:
            for fut in pending:
                fut.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise

        if first is not None:
            raise first
