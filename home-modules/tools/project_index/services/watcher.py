"""Background watcher that rebuilds the cache when descriptors change.

The watcher runs as a detached process (`project-index watch-daemon`) whose
PID is recorded in monitor.pid. Start/stop/status operate on that file and
self-heal stale entries.

Uses the watchdog library for recursive inotify monitoring; matching events
set a flag, and the loop debounces before rebuilding.
"""

import logging
import os
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import psutil
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..core.config import IndexConfig
from ..core.errors import WatcherError
from ..core.fileutil import atomic_write_lines, file_lock, read_lines
from .index_builder import IndexBuilder

logger = logging.getLogger(__name__)

WATCHED_EVENT_TYPES = {"created", "modified", "deleted", "moved"}


class WatchState(str, Enum):
    RUNNING = "running"
    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    STOPPED = "stopped"
    STALE = "stale"
    NOT_RUNNING = "not_running"


@dataclass(frozen=True)
class WatchStatus:
    state: WatchState
    pid: Optional[int] = None


class PidFile:
    """monitor.pid - single line holding the watcher's PID."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> Optional[int]:
        lines = read_lines(self.path)
        if not lines:
            return None
        try:
            return int(lines[0].strip())
        except ValueError:
            logger.warning(f"Ignoring unreadable PID file {self.path}")
            return None

    def write(self, pid: int) -> None:
        atomic_write_lines(self.path, [str(pid)])

    def remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    @staticmethod
    def is_alive(pid: int) -> bool:
        if pid <= 0 or not psutil.pid_exists(pid):
            return False
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            return True


class DescriptorEventHandler(FileSystemEventHandler):
    """Flag filesystem events that touch a descriptor file."""

    def __init__(self, descriptor_name: str, changed: threading.Event):
        super().__init__()
        self.descriptor_name = descriptor_name
        self.changed = changed

    def matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory or event.event_type not in WATCHED_EVENT_TYPES:
            return False
        paths = [event.src_path, getattr(event, "dest_path", "") or ""]
        return any(os.path.basename(p) == self.descriptor_name for p in paths if p)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if self.matches(event):
            logger.debug(f"Descriptor change: {event.event_type} {event.src_path}")
            self.changed.set()


def default_daemon_argv(config_file: Optional[Path] = None) -> List[str]:
    argv = [sys.executable, "-m", "project_index"]
    if config_file is not None:
        argv += ["--config", str(config_file)]
    argv.append("watch-daemon")
    return argv


def spawn_detached(argv: List[str]) -> subprocess.Popen:
    """Start `argv` in its own session, detached from the terminal."""
    logger.debug(f"Subprocess call: {' '.join(argv)}")
    return subprocess.Popen(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
        close_fds=True,
    )


class ProjectWatcher:
    """Manage the watcher daemon through its PID file."""

    def __init__(
        self,
        config: IndexConfig,
        daemon_argv: Optional[List[str]] = None,
        spawn: Callable[[List[str]], subprocess.Popen] = spawn_detached,
        startup_timeout: float = 1.0,
    ):
        self.config = config
        self.pid_file = PidFile(config.pid_file)
        self.start_lock_file = config.pid_file.with_name(f"{config.pid_file.name}.lock")
        self.daemon_argv = daemon_argv or default_daemon_argv()
        self._spawn = spawn
        self.startup_timeout = startup_timeout

    def status(self) -> WatchStatus:
        """Check liveness; deletes a stale PID file."""
        pid = self.pid_file.read()
        if pid is None:
            if self.pid_file.path.exists():
                self.pid_file.remove()
            return WatchStatus(WatchState.NOT_RUNNING)
        if PidFile.is_alive(pid):
            return WatchStatus(WatchState.RUNNING, pid)
        logger.info(f"Removing stale PID file (PID {pid} is not running)")
        self.pid_file.remove()
        return WatchStatus(WatchState.STALE, pid)

    def start(self) -> WatchStatus:
        """Start the daemon unless a live one is already recorded.

        Raises:
            WatcherError: If no project directory exists or the daemon fails to start
        """
        with file_lock(self.start_lock_file):
            return self._start_locked()

    def _start_locked(self) -> WatchStatus:
        current = self.status()
        if current.state == WatchState.RUNNING:
            logger.info(f"Monitoring is already running with PID {current.pid}")
            return WatchStatus(WatchState.ALREADY_RUNNING, current.pid)

        if not self.config.existing_project_dirs():
            raise WatcherError("No valid directories to monitor")

        self.config.ensure_cache_dir()
        process = self._spawn(self.daemon_argv)

        deadline = time.monotonic() + self.startup_timeout
        while time.monotonic() < deadline:
            pid = self.pid_file.read()
            if pid is not None and PidFile.is_alive(pid):
                logger.info(f"Monitoring started with PID {pid}")
                return WatchStatus(WatchState.STARTED, pid)
            if process.poll() is not None:
                raise WatcherError(f"Watcher exited with status {process.returncode}")
            time.sleep(0.05)

        raise WatcherError("Failed to start monitoring daemon")

    def stop(self) -> WatchStatus:
        """Terminate the recorded daemon and remove the PID file."""
        pid = self.pid_file.read()
        if pid is None:
            self.pid_file.remove()
            logger.info("No monitoring process found.")
            return WatchStatus(WatchState.NOT_RUNNING)

        if not PidFile.is_alive(pid):
            logger.info("No active monitoring process found. Removing stale PID file.")
            self.pid_file.remove()
            return WatchStatus(WatchState.STALE, pid)

        logger.info(f"Stopping monitoring process (PID: {pid})...")
        try:
            psutil.Process(pid).terminate()
        except psutil.NoSuchProcess:
            self.pid_file.remove()
            return WatchStatus(WatchState.STALE, pid)
        self.pid_file.remove()
        return WatchStatus(WatchState.STOPPED, pid)


def run_watch_loop(
    config: IndexConfig,
    builder: IndexBuilder,
    stop_event: Optional[threading.Event] = None,
    observer_factory: Callable[[], Observer] = Observer,
    install_signal_handlers: bool = True,
    poll_interval: float = 1.0,
) -> int:
    """Daemon body: build once, then rebuild after each descriptor change.

    Runs until SIGTERM/SIGINT (or `stop_event` is set).

    Returns:
        Exit code (1 if there is nothing to watch)
    """
    dirs = config.existing_project_dirs()
    if not dirs:
        logger.error("No valid directories to monitor")
        return 1

    pid_file = PidFile(config.pid_file)
    own_pid = os.getpid()
    pid_file.write(own_pid)

    stop = stop_event or threading.Event()
    if install_signal_handlers:
        def signal_handler(signum, frame) -> None:
            logger.info(f"Received {signal.Signals(signum).name}, stopping watcher")
            stop.set()

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

    logger.info(f"Starting file monitoring for {config.descriptor_name} changes...")
    builder.build(dirs)

    changed = threading.Event()
    handler = DescriptorEventHandler(config.descriptor_name, changed)
    observer = observer_factory()
    for directory in dirs:
        observer.schedule(handler, str(directory), recursive=True)
    observer.start()

    try:
        while not stop.is_set():
            if not changed.wait(timeout=poll_interval):
                continue
            # Debounce: coalesce bursts of events into one rebuild
            if stop.wait(config.debounce_seconds):
                break
            changed.clear()
            try:
                builder.build(dirs)
            except OSError as e:
                logger.error(f"Rebuild failed: {e}")
    finally:
        observer.stop()
        observer.join(timeout=5.0)
        if pid_file.read() == own_pid:
            pid_file.remove()
        logger.info("File monitoring stopped")

    return 0
