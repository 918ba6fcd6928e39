"""Asynchronous execution of OS utilities."""

import asyncio
import logging
import subprocess
import sys
from dataclasses import dataclass
from typing import Optional, Sequence

from trust_assistant.exceptions import CommandSpawnError, CommandTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Exit code and decoded output of a finished process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr combined, for phrase matching."""
        return f"{self.stdout}\n{self.stderr}"


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


async def run_command(cmd: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
    """
    Run a command and capture its output without blocking the event loop.

    A non-zero exit code is not an error here; callers classify it.

    Args:
        cmd: Command and arguments
        timeout: Seconds to wait before killing the process (None = wait forever)

    Returns:
        CommandResult

    Raises:
        CommandSpawnError: If the process could not be started
        CommandTimeoutError: If the process exceeded the timeout
    """
    logger.debug(f"Running command: {' '.join(cmd)}")

    kwargs = {}
    if sys.platform == "win32":
        kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            **kwargs,
        )
    except OSError as e:
        logger.debug(f"Could not start {cmd[0]}: {e}")
        raise CommandSpawnError(f"{cmd[0]}: {e.strerror or e}", cmd) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandTimeoutError(f"{cmd[0]} timed out after {timeout}s", cmd)

    result = CommandResult(process.returncode, _decode(stdout), _decode(stderr))
    logger.debug(f"{cmd[0]} exit code: {result.returncode}")
    if result.stderr.strip():
        logger.debug(f"{cmd[0]} error output: {result.stderr.strip()}")
    return result
