"""Compositor control planes.

A control plane switches workspaces and spawns windows. Every request is
fire-and-forget: nothing reads back whether a window appeared.

Backends:
- HyprlandControlPlane: `hyprctl dispatch ...`
- SwayControlPlane: sway/i3 IPC through i3ipc
- NullControlPlane: never available (headless, tests, `compositor: none`)
"""

import logging
import os
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

import i3ipc

from ..cli.logging_config import log_ipc_command, log_subprocess_call
from ..core.config import IndexConfig
from ..core.errors import ControlPlaneUnavailable

logger = logging.getLogger(__name__)

URL_OPENER = "xdg-open"


class ControlPlane(ABC):
    """Interface consumed by the environment launcher."""

    name = "abstract"

    @abstractmethod
    def is_available(self) -> bool:
        """Report whether the backend is reachable; never raises."""

    @abstractmethod
    def switch_workspace(self, workspace: str) -> None:
        """Ask the compositor to show `workspace`."""

    @abstractmethod
    def launch(self, argv: Sequence[str], cwd: Optional[Path] = None) -> None:
        """Spawn `argv` as a detached window process."""

    def open_url(self, url: str) -> None:
        self.launch([URL_OPENER, url])


class NullControlPlane(ControlPlane):
    name = "none"

    def is_available(self) -> bool:
        return False

    def switch_workspace(self, workspace: str) -> None:
        raise ControlPlaneUnavailable(self.name)

    def launch(self, argv: Sequence[str], cwd: Optional[Path] = None) -> None:
        raise ControlPlaneUnavailable(self.name)


def _exec_string(argv: Sequence[str], cwd: Optional[Path]) -> str:
    """Quote argv for a compositor `exec` line, entering `cwd` first."""
    command = shlex.join(str(a) for a in argv)
    if cwd is not None:
        command = f"cd {shlex.quote(str(cwd))} && exec {command}"
    return command


class HyprlandControlPlane(ControlPlane):
    """Dispatch through the `hyprctl` command."""

    name = "hyprland"

    def __init__(self, executable: str = "hyprctl", timeout: float = 5.0):
        self.executable = executable
        self.timeout = timeout

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        cmd = [self.executable] + args
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ControlPlaneUnavailable(self.name, str(e))
        log_subprocess_call(cmd, result, logger)
        return result

    def is_available(self) -> bool:
        if shutil.which(self.executable) is None:
            return False
        try:
            return self._run(["monitors"]).returncode == 0
        except ControlPlaneUnavailable as e:
            logger.debug(str(e))
            return False

    def _dispatch(self, *args: str) -> None:
        result = self._run(["dispatch", *args])
        if result.returncode != 0:
            raise ControlPlaneUnavailable(self.name, result.stderr.strip() or f"exit {result.returncode}")

    def switch_workspace(self, workspace: str) -> None:
        self._dispatch("workspace", str(workspace))

    def launch(self, argv: Sequence[str], cwd: Optional[Path] = None) -> None:
        self._dispatch("exec", "--", _exec_string(argv, cwd))


class SwayControlPlane(ControlPlane):
    """Dispatch over the sway/i3 IPC socket."""

    name = "sway"

    def __init__(self, socket_path: Optional[str] = None):
        self.socket_path = socket_path or os.environ.get("SWAYSOCK") or os.environ.get("I3SOCK")
        self._connection: Optional[i3ipc.Connection] = None

    def _connect(self) -> i3ipc.Connection:
        if self._connection is None:
            try:
                self._connection = i3ipc.Connection(socket_path=self.socket_path, auto_reconnect=False)
            except Exception as e:
                raise ControlPlaneUnavailable(self.name, str(e))
        return self._connection

    def is_available(self) -> bool:
        if not self.socket_path:
            return False
        try:
            self._connect().get_version()
        except Exception as e:
            logger.debug(f"Sway IPC connection check failed: {e}")
            self._connection = None
            return False
        return True

    def _command(self, command: str) -> None:
        try:
            replies = self._connect().command(command)
        except ControlPlaneUnavailable:
            raise
        except Exception as e:
            raise ControlPlaneUnavailable(self.name, str(e))
        log_ipc_command(command, replies, logger)
        failed = [r for r in replies if not r.success]
        if failed:
            raise ControlPlaneUnavailable(self.name, getattr(failed[0], "error", None) or command)

    def switch_workspace(self, workspace: str) -> None:
        self._command(f"workspace number {workspace}")

    def launch(self, argv: Sequence[str], cwd: Optional[Path] = None) -> None:
        self._command(f"exec {_exec_string(argv, cwd)}")


def detect_control_plane(config: IndexConfig) -> ControlPlane:
    """Pick the backend named by `config.compositor`.

    `auto` prefers Hyprland when its instance signature is set, then sway/i3,
    and falls back to NullControlPlane.
    """
    choice = config.compositor
    if choice == "hyprland":
        return HyprlandControlPlane()
    if choice == "sway":
        return SwayControlPlane()
    if choice == "none":
        return NullControlPlane()

    if os.environ.get("HYPRLAND_INSTANCE_SIGNATURE"):
        return HyprlandControlPlane()
    if os.environ.get("SWAYSOCK") or os.environ.get("I3SOCK"):
        return SwayControlPlane()
    logger.debug("No compositor detected; using null control plane")
    return NullControlPlane()
