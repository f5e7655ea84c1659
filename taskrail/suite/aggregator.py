from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from taskrail.config.types import SuiteConfig
from taskrail.globs import expand_braces
from taskrail.server import StaticServer

from .report import format_summary, print_record
from .runner import PageRunner, QUnitPageRunner
from .types import SuiteFailed, SuiteResult, TargetRecord

logger = logging.getLogger(__name__)

RecordCallback = Callable[[TargetRecord], None]


def discover_targets(root: str | Path, pattern: str) -> list[str]:
    root = Path(root)
    found: set[str] = set()
    for expanded in expand_braces(pattern):
        for path in root.glob(expanded):
            if path.is_file():
                found.add(path.relative_to(root).as_posix())
    return sorted(found)


async def run_suite(
    targets: Sequence[str],
    *,
    runner: PageRunner,
    server: StaticServer,
    timeout_s: float = 20.0,
    on_record: RecordCallback | None = None,
) -> SuiteResult:
    """Run every target concurrently against one shared server.

    The server and the runner are released on every exit path. A target that
    times out or crashes is recorded as failed and never holds up the others.
    Nothing is started when there are no targets.
    """
    if not targets:
        return SuiteResult(0, 0)

    records = [TargetRecord(target) for target in targets]

    async def run_target(record: TargetRecord) -> None:
        record.start()
        try:
            stats = await asyncio.wait_for(
                runner.run(server.url_for(record.target)), timeout_s
            )
        except asyncio.TimeoutError:
            record.fail(f"timed out after {timeout_s:g}s")
        except Exception as exc:
            logger.debug("%s crashed", record.target, exc_info=True)
            record.fail(f"{type(exc).__name__}: {exc}")
        else:
            record.finish(stats)

        if on_record is not None:
            try:
                on_record(record)
            except Exception:
                logger.exception("Reporting %s failed", record.target)

    async with contextlib.AsyncExitStack() as stack:
        stack.enter_context(server)
        await stack.enter_async_context(runner)
        # every target settles before the runner and the server are released
        async with asyncio.TaskGroup() as tg:
            for record in records:
                tg.create_task(run_target(record))

    return SuiteResult.from_records(records)


class SuiteTask:
    """Task body that runs the project's QUnit pages."""

    def __init__(
        self,
        config: SuiteConfig,
        root: str | Path = ".",
        *,
        runner_factory: Callable[[], PageRunner] | None = None,
        server_factory: Callable[[], StaticServer] | None = None,
        on_record: RecordCallback | None = print_record,
    ):
        self.config = config
        self.root = Path(root)
        self.runner_factory = runner_factory or (lambda: QUnitPageRunner(config.browser))
        self.server_factory = server_factory or (
            lambda: StaticServer(self.root, config.host, config.port)
        )
        self.on_record = on_record
        # one run at a time: every run binds the same configured port
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"SuiteTask({self.config.pattern!r})"

    async def __call__(self) -> SuiteResult:
        async with self._lock:
            targets = discover_targets(self.root, self.config.pattern)
            logger.info(
                "Discovered %d test page(s) matching %s", len(targets), self.config.pattern
            )

            result = await run_suite(
                targets,
                runner=self.runner_factory(),
                server=self.server_factory(),
                timeout_s=self.config.timeout_s,
                on_record=self.on_record,
            )
        if not result.ok:
            raise SuiteFailed(result)

        print(format_summary(result), flush=True)
        return result
