"""Host-wide execution lock."""

import asyncio
import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Optional

from pvedsc.errors import LockContention


logger = logging.getLogger(__name__)


class ExecutionLock:
    """Exclusive ``flock`` on a lock file with a bounded wait.

    Usable as an async context manager. The kernel drops the lock when the
    descriptor closes, so an abnormal process exit also releases it.
    """

    def __init__(self, path: Path, wait_timeout: float = 300, poll_interval: float = 1.0):
        self.path = Path(path)
        self.wait_timeout = wait_timeout
        self.poll_interval = poll_interval
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    async def acquire(self) -> None:
        """Acquire the lock, waiting at most ``wait_timeout`` seconds."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        start = time.monotonic()
        announced = False

        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                waited = time.monotonic() - start
                if waited >= self.wait_timeout:
                    os.close(fd)
                    raise LockContention(str(self.path), waited)
                if not announced:
                    logger.info(f"Another run holds {self.path}, waiting up to {self.wait_timeout}s")
                    announced = True
                await asyncio.sleep(min(self.poll_interval, self.wait_timeout - waited))

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        logger.debug(f"Acquired lock {self.path}")

    def release(self) -> None:
        """Release the lock if held."""
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug(f"Released lock {self.path}")

    async def __aenter__(self) -> "ExecutionLock":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
