"""Filesystem primitives shared by the cache store, recency tracker and watcher.

- atomic_write_lines: temp file in the target directory + fsync + rename
- file_lock: fcntl advisory lock held for the duration of a with-block
"""

import fcntl
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List

logger = logging.getLogger(__name__)


def atomic_write_lines(path: Path, lines: Iterable[str]) -> None:
    """Replace `path` with `lines` so readers never see a partial file.

    Args:
        path: Destination file
        lines: Lines without trailing newlines
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}-",
        suffix=".tmp",
    )

    try:
        with os.fdopen(fd, "w") as f:
            for line in lines:
                f.write(line)
                f.write("\n")
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename
        os.replace(temp_path, path)

    except Exception:
        # Clean up temp file on error
        if Path(temp_path).exists():
            os.unlink(temp_path)
        raise


def read_lines(path: Path) -> List[str]:
    """Read non-empty lines of a file; a missing file reads as empty."""
    try:
        with path.open("r") as f:
            return [line.rstrip("\n") for line in f if line.strip()]
    except FileNotFoundError:
        return []


@contextmanager
def file_lock(lock_path: Path) -> Iterator[None]:
    """Hold an exclusive advisory lock on `lock_path`, waiting until it is free.

    The lock file itself is left in place; the kernel drops the lock when the
    descriptor is closed or the process dies.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock_fd = open(lock_path, "w")

    try:
        fcntl.flock(lock_fd.fileno(), fcntl.LOCK_EX)
        logger.debug(f"Acquired lock: {lock_path}")
        try:
            yield
        finally:
            fcntl.flock(lock_fd.fileno(), fcntl.LOCK_UN)
    finally:
        lock_fd.close()
