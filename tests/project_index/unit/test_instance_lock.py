"""Unit tests for the single-instance guard."""

import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from project_index.core.instance import InstanceLock

HOLDER_SCRIPT = textwrap.dedent("""
    import fcntl, sys
    fd = open(sys.argv[1], "w")
    fcntl.flock(fd.fileno(), fcntl.LOCK_EX)
    print("locked", flush=True)
    sys.stdin.readline()
""")


@pytest.fixture
def held_lock(tmp_path: Path):
    """Hold the lock file from a separate process."""
    lock_file = tmp_path / "instance.lock"
    holder = subprocess.Popen(
        [sys.executable, "-c", HOLDER_SCRIPT, str(lock_file)],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        text=True,
    )
    assert holder.stdout.readline().strip() == "locked"
    yield lock_file
    holder.stdin.write("\n")
    holder.stdin.flush()
    holder.wait(timeout=5)


class TestInstanceLock:

    def test_acquire_free_lock(self, tmp_path: Path):
        lock = InstanceLock(tmp_path / "cache" / "instance.lock")
        assert lock.try_acquire()
        assert lock.is_held()
        assert (tmp_path / "cache" / "instance.lock").exists()
        lock.release()
        assert not lock.is_held()

    def test_reacquire_is_noop(self, tmp_path: Path):
        lock = InstanceLock(tmp_path / "instance.lock")
        assert lock.try_acquire()
        assert lock.try_acquire()
        lock.release()

    def test_contention_returns_false(self, held_lock: Path):
        lock = InstanceLock(held_lock)
        assert not lock.try_acquire()
        assert not lock.is_held()

    def test_contention_exits_zero(self, held_lock: Path):
        lock = InstanceLock(held_lock)
        with pytest.raises(SystemExit) as exc_info:
            lock.acquire_or_exit()
        assert exc_info.value.code == 0

    def test_second_lock_in_same_process_is_refused(self, tmp_path: Path):
        first = InstanceLock(tmp_path / "instance.lock")
        second = InstanceLock(tmp_path / "instance.lock")
        assert first.try_acquire()
        assert not second.try_acquire()
        first.release()
        assert second.try_acquire()
        second.release()
