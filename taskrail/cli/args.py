from __future__ import annotations

import argparse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskrail")

    parser.add_argument(
        "--config",
        default="taskrail.yml",
        help="Path to project file (.yml/.yaml, .toml, .json)",
    )
    parser.add_argument(
        "--root",
        default=".",
        help="Project root: working directory for commands and served directory",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port of the development server (default: serve.port, 8000)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output, including command output",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write full debug logs to this file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
    )

    # run
    run = subparsers.add_parser("run", help="Run tasks")
    run.add_argument(
        "targets",
        nargs="*",
        help="Task names, run one after another (default: 'default')",
    )

    # list
    subparsers.add_parser("list", help="List tasks")

    # graph
    subparsers.add_parser("graph", help="Show how tasks are composed")

    # serve
    subparsers.add_parser(
        "serve", help="Serve the root directory and re-run tasks on file changes"
    )

    return parser
