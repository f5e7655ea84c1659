from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from .types import CommandFailed

logger = logging.getLogger(__name__)


class ShellCommand:
    """Task body that runs an external tool through the shell."""

    def __init__(
        self,
        command: str,
        env: dict[str, str] | None = None,
        working_dir: str | Path | None = None,
    ):
        self.command = command
        self.env = dict(env or {})
        self.working_dir = working_dir

    def __repr__(self) -> str:
        return f"ShellCommand({self.command!r})"

    async def __call__(self) -> int:
        logger.debug("$ %s (cwd=%s)", self.command, self.working_dir or ".")
        proc = await asyncio.create_subprocess_shell(
            self.command,
            cwd=self.working_dir or None,
            env={**os.environ, **self.env},
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        out = stdout.decode(errors="replace")
        err = stderr.decode(errors="replace")
        if out.strip():
            logger.debug("%s stdout:\n%s", self.command, out.rstrip())
        if err.strip():
            logger.debug("%s stderr:\n%s", self.command, err.rstrip())

        if proc.returncode != 0:
            raise CommandFailed(self.command, proc.returncode, err)
        return proc.returncode
