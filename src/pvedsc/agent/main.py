"""Scheduling agent: periodic gated reconciliation."""

import asyncio
import logging
import signal
from pathlib import Path
from typing import List, Optional

from watchfiles import awatch

from pvedsc.agent.config import ConfigManager
from pvedsc.agent.gate import DryRunGate
from pvedsc.utils.logging import setup_logging


logger = logging.getLogger(__name__)


class PvedscAgent:
    """Runs the dry-run gate on an interval and whenever the manifest changes."""

    def __init__(self, config_manager: ConfigManager, gate: Optional[DryRunGate] = None):
        self.config_manager = config_manager
        self.gate = gate or DryRunGate(config_manager)
        self.shutdown_event = asyncio.Event()
        self.trigger = asyncio.Event()
        self._run_lock = asyncio.Lock()
        self._tasks: List[asyncio.Task] = []
        self.last_exit_code: Optional[int] = None

    async def run(self):
        """Run the agent until SIGTERM or SIGINT."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.shutdown)

        try:
            self._tasks.append(asyncio.create_task(self._reconciliation_loop()))
            if self.config_manager.config.agent.watch:
                self._tasks.append(asyncio.create_task(self._manifest_watch_loop()))

            logger.info("Agent started, waiting for shutdown signal")
            await self.shutdown_event.wait()
        finally:
            await self._cleanup()

    async def run_once(self) -> int:
        """One gated reconciliation; runs never overlap."""
        async with self._run_lock:
            try:
                self.config_manager.load()
                self.last_exit_code = await self.gate.run()
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}", exc_info=True)
                self.last_exit_code = 1
            return self.last_exit_code

    async def _reconciliation_loop(self):
        interval = self.config_manager.config.agent.interval

        while not self.shutdown_event.is_set():
            logger.debug("Starting reconciliation cycle")
            await self.run_once()
            logger.debug(f"Reconciliation cycle finished with exit code {self.last_exit_code}")

            self.trigger.clear()
            waiters = [
                asyncio.create_task(self.shutdown_event.wait()),
                asyncio.create_task(self.trigger.wait()),
            ]
            try:
                await asyncio.wait(waiters, timeout=interval, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for waiter in waiters:
                    waiter.cancel()

    async def _manifest_watch_loop(self):
        manifest = Path(self.config_manager.manifest_path)
        if not manifest.parent.is_dir():
            logger.warning(f"Manifest directory {manifest.parent} does not exist, not watching")
            return
        logger.info(f"Watching {manifest} for changes")
        async for changes in awatch(manifest.parent, stop_event=self.shutdown_event):
            if any(Path(path).name == manifest.name for _, path in changes):
                logger.info("Manifest changed, triggering reconciliation")
                self.trigger.set()

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self.shutdown_event.set()

    async def _cleanup(self):
        for task in self._tasks:
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("Agent stopped")


async def run_agent(config_path: Optional[Path] = None):
    """Load configuration, set up logging and run the agent."""
    config_manager = ConfigManager(config_path)
    config = config_manager.load()
    setup_logging(config.logging.level, config.logging.file)

    agent = PvedscAgent(config_manager)
    await agent.run()
