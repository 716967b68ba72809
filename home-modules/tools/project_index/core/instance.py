"""Single interactive instance guard.

Only one pick-and-launch flow runs at a time. A second invocation exits 0
immediately instead of queueing behind the first.
"""

import fcntl
import logging
import sys
from pathlib import Path
from typing import IO, Optional

logger = logging.getLogger(__name__)


class InstanceLock:
    """Non-blocking exclusive lock held for the rest of the process lifetime."""

    def __init__(self, lock_file: Path):
        self.lock_file = Path(lock_file)
        self._lock_fd: Optional[IO[str]] = None

    def try_acquire(self) -> bool:
        """Attempt the lock without waiting.

        Returns:
            True if this process now holds the lock
        """
        if self._lock_fd is not None:
            return True

        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        lock_fd = open(self.lock_file, "w")
        try:
            fcntl.flock(lock_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            lock_fd.close()
            return False

        # Released by the kernel when the process exits
        self._lock_fd = lock_fd
        return True

    def acquire_or_exit(self) -> None:
        """Take the lock or exit the process with status 0."""
        if not self.try_acquire():
            logger.info("Another instance is already running. Exiting.")
            sys.exit(0)

    def is_held(self) -> bool:
        return self._lock_fd is not None

    def release(self) -> None:
        if self._lock_fd is None:
            return
        fcntl.flock(self._lock_fd.fileno(), fcntl.LOCK_UN)
        self._lock_fd.close()
        self._lock_fd = None
