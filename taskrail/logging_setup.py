from __future__ import annotations

import logging
import os
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - taskrail logs pass at the handler level
    - third-party libraries (watchfiles, asyncio, playwright) only at WARNING+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "taskrail" or record.name.startswith("taskrail."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(
    level: int | str | None = None,
    *,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure the root logger with a filtered stderr handler and, optionally,
    a file handler that records everything at DEBUG.

    ``level`` falls back to TASKRAIL_LOG_LEVEL, then INFO.
    """
    if level is None:
        level = os.getenv("TASKRAIL_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_file), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    logging.captureWarnings(True)
