# Data models for the project cache and launch environment

from .environment import EnvironmentItem, ItemKind
from .project_record import ProjectRecord
from .recent_entry import RecentEntry

__all__ = [
    "EnvironmentItem",
    "ItemKind",
    "ProjectRecord",
    "RecentEntry",
]
