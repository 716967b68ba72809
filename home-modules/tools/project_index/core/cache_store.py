"""Project cache table.

Owns ~/.cache/project-index/projects.cache: one canonical `|`-delimited row
per project, deduplicated and sorted. Writers serialize on an exclusive
advisory lock and replace the file atomically; readers take no lock.
"""

import logging
import os
import shutil
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from ..models.project_record import ProjectRecord, canonicalize_line
from .config import IndexConfig
from .errors import ProjectNotFoundError
from .fileutil import atomic_write_lines, file_lock, read_lines
from .parser import DescriptorParser

logger = logging.getLogger(__name__)


class CacheStore:
    """Build, repair and query the project cache table."""

    def __init__(
        self,
        cache_file: Path,
        lock_file: Path,
        parser: DescriptorParser,
        descriptor_name: str = ".project.nix",
    ):
        """Initialize cache store.

        Args:
            cache_file: Table file path
            lock_file: Companion rebuild lock path
            parser: Descriptor parser used during rebuild
            descriptor_name: Exact filename of descriptor files
        """
        self.cache_file = Path(cache_file)
        self.lock_file = Path(lock_file)
        self.parser = parser
        self.descriptor_name = descriptor_name

    @classmethod
    def from_config(cls, config: IndexConfig, parser: DescriptorParser) -> "CacheStore":
        return cls(
            cache_file=config.cache_file,
            lock_file=config.lock_file,
            parser=parser,
            descriptor_name=config.descriptor_name,
        )

    # Scanning

    def scan(self, directories: Iterable[Path]) -> List[Path]:
        """Find descriptor files below each directory.

        Missing directories are skipped with a warning.

        Returns:
            Sorted list of absolute descriptor paths
        """
        found: List[Path] = []
        for directory in directories:
            directory = Path(directory).expanduser()
            if not directory.is_dir():
                logger.warning(f"Project directory not found, skipping: {directory}")
                continue

            def on_error(err: OSError) -> None:
                logger.warning(f"Cannot scan {err.filename}: {err.strerror}")

            for root, _dirs, files in os.walk(directory, onerror=on_error):
                if self.descriptor_name in files:
                    found.append(Path(root).absolute() / self.descriptor_name)

        return sorted(found)

    # Writers

    def rebuild(self, directories: Iterable[Path]) -> int:
        """Rescan `directories` and atomically replace the table.

        Blocks until the rebuild lock is free.

        Returns:
            Number of rows written
        """
        with file_lock(self.lock_file):
            descriptors = self.scan(directories)
            lines = set()
            for descriptor in descriptors:
                record = self.parser.parse(descriptor)
                logger.debug(f"Indexed {record.name!r} from {descriptor}")
                lines.add(record.to_line())

            table = sorted(lines)
            self._warn_duplicates(table)
            atomic_write_lines(self.cache_file, table)

        if table:
            logger.info(f"Found {len(table)} projects")
        else:
            logger.info("No projects found")
        return len(table)

    def repair_schema(self) -> int:
        """Rewrite legacy-order rows into canonical order.

        Idempotent: a second run changes nothing.

        Returns:
            Number of rows rewritten
        """
        with file_lock(self.lock_file):
            lines = read_lines(self.cache_file)
            repaired = [canonicalize_line(line) for line in lines]
            changed = sum(1 for old, new in zip(lines, repaired) if old != new)
            if changed:
                atomic_write_lines(self.cache_file, sorted(set(repaired)))
                logger.info(f"Repaired {changed} legacy cache row(s)")
        return changed

    def backup(self) -> Optional[Path]:
        """Copy the table to projects.cache.backup-<timestamp>.

        Returns:
            Backup path, or None when there is no table
        """
        if not self.cache_file.exists():
            return None
        stamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = self.cache_file.with_name(f"{self.cache_file.name}.backup-{stamp}")
        shutil.copy2(self.cache_file, backup_path)
        logger.info(f"Backed up cache to {backup_path}")
        return backup_path

    def ensure_built(self, directories: Iterable[Path]) -> bool:
        """Rebuild once if the table is missing or empty.

        Returns:
            True if a rebuild happened
        """
        if self.is_empty():
            self.rebuild(directories)
            return True
        return False

    # Readers

    def is_empty(self) -> bool:
        try:
            return self.cache_file.stat().st_size == 0
        except FileNotFoundError:
            return True

    def records(self) -> List[ProjectRecord]:
        """Snapshot of all rows in file order; malformed rows are skipped."""
        records: List[ProjectRecord] = []
        for line in read_lines(self.cache_file):
            try:
                records.append(ProjectRecord.from_line(line))
            except ValueError as e:
                logger.warning(f"Skipping malformed cache row: {e}")
        return records

    def lookup(self, name: str) -> ProjectRecord:
        """Return the first row whose name field equals `name`.

        Raises:
            ProjectNotFoundError: If no row matches
        """
        for record in self.records():
            if record.name == name:
                return record
        raise ProjectNotFoundError(name)

    def _warn_duplicates(self, table: List[str]) -> None:
        names = Counter(line.split("|", 1)[0] for line in table)
        for name, count in sorted(names.items()):
            if count > 1:
                logger.warning(
                    f"Project name {name!r} appears {count} times; "
                    f"'open {name}' resolves to the first sorted row"
                )
