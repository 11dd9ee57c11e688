"""Dry-run gate in front of live reconciliation.

A live run only happens after a dry run of the same manifest exits cleanly,
reports no foreign workloads, and logs no errors.
"""

import logging
import sys
from enum import Enum
from typing import List, Optional

from pvedsc.agent.config import ConfigManager
from pvedsc.engine.coordinator import RunCoordinator
from pvedsc.utils.commands import Runner, run_command


logger = logging.getLogger(__name__)

FOREIGN_MARKER = "FOREIGN"
ERROR_MARKER = "ERROR"


class GateVerdict(Enum):
    PROCEED = "proceed"
    CRITICAL = "critical"
    BLOCK_FOREIGN = "block_foreign"
    BLOCK_ERRORS = "block_errors"


def evaluate_dry_run(returncode: int, output: str) -> GateVerdict:
    """Decide whether a live run may follow a dry run."""
    if returncode != 0:
        return GateVerdict.CRITICAL
    if FOREIGN_MARKER in output:
        return GateVerdict.BLOCK_FOREIGN
    if ERROR_MARKER in output:
        return GateVerdict.BLOCK_ERRORS
    return GateVerdict.PROCEED


def dry_run_command(config_manager: ConfigManager) -> List[str]:
    return [
        sys.executable, "-m", "pvedsc", "run", "--dry-run",
        "--config", str(config_manager.config_path),
        "--manifest", str(config_manager.manifest_path),
    ]


class DryRunGate:
    """Runs the dry run in a child process, then the live run in this one."""

    def __init__(
        self,
        config_manager: ConfigManager,
        command_runner: Optional[Runner] = None,
        platform_runner: Optional[Runner] = None,
    ):
        self.config_manager = config_manager
        self.command_runner = command_runner or run_command
        self.platform_runner = platform_runner

    async def check(self) -> GateVerdict:
        result = await self.command_runner(dry_run_command(self.config_manager), check=False, timeout=None)
        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        verdict = evaluate_dry_run(result.returncode, output)

        if verdict == GateVerdict.CRITICAL:
            logger.critical(f"Dry run failed (exit code {result.returncode}), aborting")
            for line in output.splitlines():
                logger.info(f"dry-run: {line}")
        elif verdict == GateVerdict.BLOCK_FOREIGN:
            logger.warning("BLOCK: foreign workloads detected, not deploying")
            for line in output.splitlines():
                if FOREIGN_MARKER in line:
                    logger.warning(line)
        elif verdict == GateVerdict.BLOCK_ERRORS:
            logger.warning("BLOCK: dry run reported errors, not deploying")
        return verdict

    async def run(self) -> int:
        """Exit status: 1 when the dry run itself failed, else the live run's or 0 when blocked."""
        verdict = await self.check()
        if verdict == GateVerdict.CRITICAL:
            return 1
        if verdict != GateVerdict.PROCEED:
            return 0

        logger.info("Dry run clean, deploying")
        coordinator = RunCoordinator(self.config_manager, dry_run=False, runner=self.platform_runner)
        ctx = await coordinator.run()
        return ctx.exit_code
