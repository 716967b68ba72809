"""IndexBuilder - full rescan followed by schema repair."""

import logging
import time
from pathlib import Path
from typing import List, Optional

from ..cli.logging_config import log_timing
from ..core.cache_store import CacheStore
from ..core.config import IndexConfig

logger = logging.getLogger(__name__)


class BuildResult:
    """Result of a build operation."""

    def __init__(self):
        self.projects: int = 0
        self.repaired: int = 0
        self.missing_dirs: List[Path] = []
        self.duration_ms: int = 0

    @property
    def is_empty(self) -> bool:
        return self.projects == 0


class IndexBuilder:
    """Rebuild the project cache from the configured directories."""

    def __init__(self, config: IndexConfig, store: CacheStore):
        self.config = config
        self.store = store

    def build(self, directories: Optional[List[Path]] = None) -> BuildResult:
        """Rebuild the table, then upgrade any legacy rows.

        Args:
            directories: Override for config.project_dirs

        Returns:
            BuildResult with project count and timing
        """
        start_time = time.time()
        result = BuildResult()
        dirs = list(directories) if directories is not None else list(self.config.project_dirs)
        result.missing_dirs = [d for d in dirs if not d.is_dir()]

        with log_timing("Rebuild project index", logger):
            result.projects = self.store.rebuild(dirs)
            result.repaired = self.store.repair_schema()

        result.duration_ms = int((time.time() - start_time) * 1000)
        return result

    def ensure_built(self) -> bool:
        """Build once if the cache is missing or empty."""
        return self.store.ensure_built(self.config.project_dirs)
