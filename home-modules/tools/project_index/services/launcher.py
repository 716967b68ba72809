"""Open a project: switch workspace and spawn its environment windows."""

import logging
import shlex
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from ..core.cache_store import CacheStore
from ..core.config import IndexConfig
from ..core.errors import ControlPlaneUnavailable, EvaluationError
from ..core.parser import DescriptorParser
from ..core.recent import RecencyTracker
from ..models.environment import EnvironmentItem, ItemKind
from ..models.project_record import ProjectRecord
from .control_plane import ControlPlane

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerminalCommand:
    """Argv builder for windows opened in the configured terminal."""

    terminal: str
    shell: str
    directory: str

    def base(self) -> List[str]:
        return [self.terminal, "--working-directory", self.directory]

    def bare(self) -> List[str]:
        return self.base()

    def shell_command(self, command: str) -> List[str]:
        """Run `command` through the shell, then stay in an interactive shell."""
        if not command:
            return self.bare()
        return self.base() + ["-e", self.shell, "-c", f"{command}; exec {self.shell}"]

    def program(self, command: str, files: List[str]) -> List[str]:
        """Run `command` with `files` appended as separate arguments.

        Raises:
            ValueError: If `command` has unbalanced quotes
        """
        return self.base() + ["-e", *shlex.split(command), *files]


@dataclass
class LaunchOutcome:
    """What `EnvironmentLauncher.open` did."""

    record: ProjectRecord
    available: bool = False
    dispatched: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    fallback_terminal: bool = False
    advisory: Optional[str] = None


class EnvironmentLauncher:
    """Resolve a project name and ask the compositor to set it up."""

    def __init__(
        self,
        config: IndexConfig,
        store: CacheStore,
        recency: RecencyTracker,
        parser: DescriptorParser,
        control_plane: ControlPlane,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.store = store
        self.recency = recency
        self.parser = parser
        self.control_plane = control_plane
        self._sleep = sleep

    def open(self, name: str, interactive: bool = False) -> LaunchOutcome:
        """Open project `name`.

        Args:
            name: Project name as stored in the cache table
            interactive: Caller is a terminal that can act on a `cd` hint

        Returns:
            LaunchOutcome describing the requests that were made

        Raises:
            ProjectNotFoundError: If `name` is not in the cache
        """
        record = self.store.lookup(name)
        outcome = LaunchOutcome(record=record)

        try:
            self.recency.record_access(record.name)
        except OSError as e:
            logger.warning(f"Could not update recent projects: {e}")

        if not self.control_plane.is_available():
            if interactive:
                outcome.advisory = f'cd "{record.directory}"'
                logger.info(f"Compositor not available; suggesting {outcome.advisory}")
            else:
                logger.warning(
                    f"Compositor not available; not opening {record.name} ({record.directory})"
                )
            return outcome

        outcome.available = True
        logger.info(f"Opening project {record.name} on workspace {record.workspace}")
        try:
            self.control_plane.switch_workspace(record.workspace)
        except ControlPlaneUnavailable as e:
            logger.warning(f"Workspace switch failed: {e}")

        terminal = TerminalCommand(self.config.terminal, self.config.shell, record.directory)
        try:
            items = self.parser.parse_environment(Path(record.config_path))
        except EvaluationError as e:
            logger.warning(f"{e}; opening a terminal instead")
            items = []

        if not items:
            self._launch(terminal.bare(), record, outcome, "terminal")
            outcome.fallback_terminal = True
            return outcome

        for index, item in enumerate(items):
            if index > 0 and self.config.launch_delay:
                self._sleep(self.config.launch_delay)
            self._dispatch(item, terminal, record, outcome)

        return outcome

    def _dispatch(
        self,
        item: EnvironmentItem,
        terminal: TerminalCommand,
        record: ProjectRecord,
        outcome: LaunchOutcome,
    ) -> None:
        if item.kind == ItemKind.TERMINAL:
            self._launch(terminal.shell_command(item.command), record, outcome, "terminal")
        elif item.kind == ItemKind.EDITOR:
            if not item.command:
                logger.warning(f"Editor item without command in {record.config_path}, skipping")
                outcome.skipped.append(item.type_name)
                return
            try:
                argv = terminal.program(item.command, item.files)
            except ValueError as e:
                logger.warning(f"Cannot parse editor command {item.command!r}: {e}, skipping")
                outcome.skipped.append(item.type_name)
                return
            self._launch(argv, record, outcome, "editor")
        elif item.kind == ItemKind.BROWSER:
            if not item.url:
                logger.warning(f"Browser item without url in {record.config_path}, skipping")
                outcome.skipped.append(item.type_name)
                return
            try:
                self.control_plane.open_url(item.url)
                outcome.dispatched.append("browser")
            except ControlPlaneUnavailable as e:
                logger.warning(f"Failed to open {item.url}: {e}")
                outcome.skipped.append("browser")
        else:
            logger.warning(f"Unknown environment type: {item.type_name}")
            outcome.skipped.append(item.type_name)

    def _launch(
        self, argv: List[str], record: ProjectRecord, outcome: LaunchOutcome, label: str
    ) -> None:
        try:
            self.control_plane.launch(argv, cwd=Path(record.directory))
            outcome.dispatched.append(label)
        except ControlPlaneUnavailable as e:
            logger.warning(f"Failed to launch {label}: {e}")
            outcome.skipped.append(label)
