"""Most-recently-used project list (recent.cache)."""

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from ..models.recent_entry import RecentEntry
from .config import IndexConfig
from .fileutil import atomic_write_lines, file_lock, read_lines

logger = logging.getLogger(__name__)

MAX_RECENT = 5


class RecencyTracker:
    """Bounded, name-deduplicated access history, newest first."""

    def __init__(
        self,
        recent_file: Path,
        max_recent: int = MAX_RECENT,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.recent_file = Path(recent_file)
        self.lock_file = self.recent_file.with_name(f"{self.recent_file.name}.lock")
        self.max_recent = max_recent
        self._clock = clock or time.time

    @classmethod
    def from_config(cls, config: IndexConfig) -> "RecencyTracker":
        return cls(config.recent_file, max_recent=config.max_recent)

    def entries(self) -> List[RecentEntry]:
        entries: List[RecentEntry] = []
        for line in read_lines(self.recent_file):
            try:
                entries.append(RecentEntry.from_line(line))
            except ValueError as e:
                logger.debug(f"Ignoring recent entry: {e}")
        return entries

    def recent_names(self) -> List[str]:
        return [entry.name for entry in self.entries()]

    def record_access(self, name: str) -> RecentEntry:
        """Move `name` to the front with the current timestamp.

        Raises:
            OSError: If the recent file cannot be replaced
        """
        entry = RecentEntry(name=name, timestamp=int(self._clock()))
        with file_lock(self.lock_file):
            others = [e for e in self.entries() if e.name != name]
            kept = [entry] + others[: self.max_recent - 1]
            atomic_write_lines(self.recent_file, [e.to_line() for e in kept])
        logger.debug(f"Recorded access to {name!r} ({len(kept)} recent)")
        return entry
