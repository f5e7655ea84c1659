from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field
from pathlib import Path

import watchfiles

from taskrail.config.types import ConfigError
from taskrail.executor import Executor
from taskrail.globs import GlobError, compile_glob, matches
from taskrail.graph import Node, describe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchBinding:
    globs: tuple[str, ...]
    task: Node
    _patterns: tuple[re.Pattern[str], ...] = field(repr=False, compare=False)

    def matches(self, path: str) -> bool:
        return any(matches(p, path) for p in self._patterns)


@dataclass(eq=False)
class _Slot:
    binding: WatchBinding
    dirty: asyncio.Event = field(default_factory=asyncio.Event)
    idle: asyncio.Event = field(default_factory=asyncio.Event)
    runs: int = 0

    def __post_init__(self) -> None:
        self.idle.set()


class Watcher:
    """Re-runs bound tasks when files matching their globs change.

    Each binding has its own worker, so a slow rebuild never delays an
    unrelated one. Changes that arrive while a binding is waiting out its
    debounce window or running collapse into a single follow-up run.
    """

    def __init__(self, executor: Executor, root: str | Path = ".", *, debounce_s: float = 0.1):
        if debounce_s < 0:
            raise ValueError("debounce_s must be >= 0")
        self.executor = executor
        self.root = Path(root)
        self.debounce_s = debounce_s
        self._slots: list[_Slot] = []

    @property
    def bindings(self) -> list[WatchBinding]:
        return [s.binding for s in self._slots]

    def watch(self, globs: Iterable[str], task: Node) -> WatchBinding:
        if isinstance(globs, str):
            globs = [globs]
        globs = tuple(globs)
        if not globs:
            raise ConfigError("A watch binding needs at least one glob")
        try:
            patterns = tuple(compile_glob(g) for g in globs)
        except GlobError as exc:
            raise ConfigError(str(exc)) from exc

        self.executor.registry.validate(task)

        binding = WatchBinding(globs, task, patterns)
        self._slots.append(_Slot(binding))
        logger.debug("Watching %s -> %s", ", ".join(globs), describe(task))
        return binding

    def runs(self, binding: WatchBinding) -> int:
        for slot in self._slots:
            if slot.binding is binding:
                return slot.runs
        raise KeyError(binding)

    def notify(self, paths: Iterable[str]) -> int:
        paths = list(paths)
        triggered = 0
        for slot in self._slots:
            hit = next((p for p in paths if slot.binding.matches(p)), None)
            if hit is None:
                continue
            logger.info("'%s' changed, running %s", hit, describe(slot.binding.task))
            slot.idle.clear()
            slot.dirty.set()
            triggered += 1
        return triggered

    async def run(
        self,
        changes: AsyncIterator[Iterable[str]] | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Feed change batches to the bindings until the source ends.

        Without ``changes`` the file system under ``root`` is watched. When the
        source ends because ``stop_event`` was set, in-flight runs are
        cancelled; otherwise the watcher waits for every binding to go idle.
        """
        if changes is None:
            changes = self._fs_changes(stop_event)

        workers = [asyncio.create_task(self._worker(slot)) for slot in self._slots]
        try:
            async for batch in changes:
                self.notify(batch)
            if stop_event is None or not stop_event.is_set():
                await asyncio.gather(*(slot.idle.wait() for slot in self._slots))
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

    async def _fs_changes(self, stop_event: asyncio.Event | None) -> AsyncIterator[list[str]]:
        root = self.root.resolve()
        async for changes in watchfiles.awatch(root, stop_event=stop_event):
            batch = []
            for _, changed in changes:
                try:
                    batch.append(Path(changed).relative_to(root).as_posix())
                except ValueError:
                    continue
            yield batch

    async def _worker(self, slot: _Slot) -> None:
        binding = slot.binding
        while True:
            await slot.dirty.wait()
            if self.debounce_s > 0:
                await asyncio.sleep(self.debounce_s)
            slot.dirty.clear()

            try:
                result = await self.executor.run(binding.task)
            except Exception:
                logger.exception("Watch run failed for %s", describe(binding.task))
            else:
                if not result.ok:
                    logger.error(
                        "Watch run of %s failed in '%s': %s",
                        describe(binding.task),
                        result.task_id,
                        result.error,
                    )

            slot.runs += 1
            if not slot.dirty.is_set():
                slot.idle.set()
