from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from taskrail.config import ConfigError, load_project
from taskrail.executor import Executor, RunResult
from taskrail.graph import GraphError, Task, describe, series
from taskrail.logging_setup import setup_logging
from taskrail.project import build_registry, build_watcher
from taskrail.server import ServerError, StaticServer
from taskrail.watch import Watcher

from .args import build_parser

DEFAULT_TASK = "default"


def run_cli(argv: list[str] | None = None, *, setup: bool = False) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        if setup:
            setup_logging(
                logging.DEBUG if args.verbose else None, log_file=args.log_file
            )

        match args.command:
            case "run":
                return cmd_run(args)
            case "list":
                return cmd_list(args)
            case "graph":
                return cmd_graph(args)
            case "serve":
                return cmd_serve(args)
            case _:
                return 2

    except (ConfigError, GraphError, KeyError) as exc:
        print(str(exc), file=sys.stderr)
        return 2

    except ServerError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        return 130


def main() -> None:
    raise SystemExit(run_cli(sys.argv[1:], setup=True))


def cmd_run(args: argparse.Namespace) -> int:
    rr = _run_with(args)
    _print_result(rr)
    if not rr.ok:
        print(f"Task '{rr.task_id}' failed: {rr.error}", file=sys.stderr)
        return 1
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    project = load_project(args.config)
    for tid in project.tasks_ids():
        print(tid)
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    project = load_project(args.config)
    registry = build_registry(project, args.root)
    for tid in registry.names():
        node = registry.get(tid)
        if isinstance(node, Task):
            print(f"{tid}: {node.body!r}")
        else:
            print(f"{tid}: {describe(node)}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    project = load_project(args.config)
    registry = build_registry(project, args.root)
    watcher = build_watcher(project, Executor(registry), args.root)
    port = args.port if args.port is not None else project.serve.port
    server = StaticServer(args.root, project.serve.host, port)
    asyncio.run(_serve(server, watcher))
    return 0


async def _serve(server: StaticServer, watcher: Watcher) -> None:
    with server:
        print(f"Serving {server.root} at {server.url}", flush=True)
        await watcher.run()


def _run_with(args: argparse.Namespace) -> RunResult:
    project = load_project(args.config)
    registry = build_registry(project, args.root)
    executor = Executor(registry)
    targets: list[str] = args.targets or [DEFAULT_TASK]

    if len(targets) == 1:
        return executor.run_sync(targets[0])
    return executor.run_sync(series(*targets))


def _print_result(rr: RunResult) -> None:
    for result in rr.results:
        if result.ok:
            print(f"OK {result.task_id}, {result.duration_s:.3f}s")
        else:
            print(f"FAIL {result.task_id}, {result.duration_s:.3f}s: {result.error}")
