"""Subprocess helpers for driving host tooling."""

import asyncio
import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from flotilla.errors import ToolingAbsent


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result from running a command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        """Combined stderr/stdout text, useful for error messages."""
        return (self.stderr.strip() or self.stdout.strip())


def require_tool(name: str) -> str:
    """Return the absolute path of an executable or raise ToolingAbsent."""
    path = shutil.which(name)
    if path is None:
        raise ToolingAbsent(f"{name} is not installed or not on PATH")
    return path


async def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    timeout: Optional[float] = None,
    **kwargs
) -> CommandResult:
    """Run a command asynchronously."""
    logger.debug(f"Running command: {' '.join(cmd)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE if capture_output else None,
            stderr=asyncio.subprocess.PIPE if capture_output else None,
            **kwargs
        )
    except FileNotFoundError as e:
        raise ToolingAbsent(f"{cmd[0]} is not installed or not on PATH") from e

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise subprocess.TimeoutExpired(cmd, timeout)
    except asyncio.CancelledError:
        # Interrupted run: do not leave the child behind
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    result = CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace") if stdout else "",
        stderr=stderr.decode(errors="replace") if stderr else "",
    )

    if check and process.returncode != 0:
        error = subprocess.CalledProcessError(
            process.returncode, cmd
        )
        error.stdout = result.stdout
        error.stderr = result.stderr
        raise error

    return result
