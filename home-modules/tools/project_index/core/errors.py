"""Exception hierarchy for project-index.

Lock contention has no exception here: the rebuild lock blocks and the
instance lock exits the process with status 0.
"""

from pathlib import Path
from typing import Optional


class ProjectIndexError(Exception):
    """Base exception for project-index operations."""
    pass


class ConfigError(ProjectIndexError):
    """Raised when the configuration file cannot be loaded or validated."""
    pass


class ProjectNotFoundError(ProjectIndexError):
    """Raised when a project name is not present in the cache table."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Project not found in cache: {name}")


class EvaluationError(ProjectIndexError):
    """Raised when the descriptor evaluator is missing or fails."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to evaluate {self.path}: {reason}")


class ControlPlaneUnavailable(ProjectIndexError):
    """Raised when the compositor control plane cannot be reached."""

    def __init__(self, backend: str, detail: Optional[str] = None):
        self.backend = backend
        self.detail = detail
        message = f"{backend} control plane is not reachable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class WatcherError(ProjectIndexError):
    """Raised when the background watcher cannot be started."""
    pass
