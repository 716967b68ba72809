"""
Services for project-index

Index building, the background watcher, environment launching and
interactive selection.
"""

from .control_plane import ControlPlane, detect_control_plane
from .index_builder import BuildResult, IndexBuilder
from .launcher import EnvironmentLauncher, LaunchOutcome
from .selector import FzfSelector, RofiSelector, Selector
from .watcher import ProjectWatcher, WatchState, WatchStatus

__all__ = [
    "ControlPlane",
    "detect_control_plane",
    "BuildResult",
    "IndexBuilder",
    "EnvironmentLauncher",
    "LaunchOutcome",
    "FzfSelector",
    "RofiSelector",
    "Selector",
    "ProjectWatcher",
    "WatchState",
    "WatchStatus",
]
