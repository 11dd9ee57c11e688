"""Platform command execution with timeouts and dry-run support."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from pvedsc.errors import CommandFailure, CommandTimeout


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result from running a command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""


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
    except OSError as e:
        raise CommandFailure(cmd, 127, message=str(e)) from e

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise CommandTimeout(cmd, timeout)

    result = CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace") if stdout else "",
        stderr=stderr.decode(errors="replace") if stderr else "",
    )

    if check and process.returncode != 0:
        raise CommandFailure(cmd, result.returncode, result.stdout, result.stderr)

    return result


Runner = Callable[..., Awaitable[CommandResult]]


class CommandExecutor:
    """Runs privileged lifecycle commands under a fixed timeout.

    Queries always run. Mutating commands are only logged in dry-run mode.
    """

    def __init__(
        self,
        dry_run: bool = False,
        timeout: float = 20,
        runner: Optional[Runner] = None,
    ):
        self.dry_run = dry_run
        self.timeout = timeout
        self.runner = runner or run_command

    async def query(self, cmd: List[str], check: bool = True) -> CommandResult:
        """Run a read-only command."""
        return await self.runner(cmd, check=check, timeout=self.timeout)

    async def mutate(self, cmd: List[str], timeout: Optional[float] = None) -> Optional[CommandResult]:
        """Run a state-changing command, or log it when in dry-run mode."""
        if self.dry_run:
            logger.info(f"DRY-RUN Would execute: {' '.join(cmd)}")
            return None

        logger.info(f"Executing: {' '.join(cmd)}")
        return await self.runner(cmd, check=True, timeout=timeout or self.timeout)
