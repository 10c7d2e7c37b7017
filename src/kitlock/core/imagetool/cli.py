"""Async subprocess runner shared by the command-line image tools."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from kitlock.exceptions import ImageToolError

logger = logging.getLogger(__name__)

# Receives the stdout of spawned tools, e.g. docker pull progress.
_STDERR_FILENO = 2


@dataclass(frozen=True)
class CommandLine:
    """A resolved image tool executable.

    Attributes:
        path: Absolute path of the executable.
    """

    path: Path

    async def output(self, args: list[str], error_msg: str) -> bytes:
        """Run the tool and return its stdout.

        Raises:
            ImageToolError: If the process cannot start or exits non-zero.
                The message includes ``error_msg``, the command, and stderr.
        """
        logger.debug("Running: %s %s", self.path, " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                str(self.path),
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except OSError as exc:
            raise ImageToolError(f"{error_msg}: failed to execute image tool: {exc}") from exc
        if proc.returncode != 0:
            raise ImageToolError(
                f"{error_msg}: {stderr.decode('utf-8', errors='replace').strip()}\n"
                f" command: {self.path} {' '.join(args)}"
            )
        return stdout

    async def spawn(self, args: list[str], error_msg: str) -> None:
        """Run the tool with its output sent to stderr and wait for it.

        Raises:
            ImageToolError: If the process cannot start or exits non-zero.
        """
        logger.debug("Running: %s %s", self.path, " ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                str(self.path), *args, stdout=_STDERR_FILENO
            )
            returncode = await proc.wait()
        except OSError as exc:
            raise ImageToolError(f"{error_msg}: failed to execute image tool: {exc}") from exc
        if returncode != 0:
            raise ImageToolError(
                f"{error_msg} (exit code {returncode})\n"
                f" command: {self.path} {' '.join(args)}"
            )
