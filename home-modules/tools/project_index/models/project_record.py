"""ProjectRecord - one row of the project cache table.

Line format (canonical): name|workspace|tags|directory|configPath
Legacy format (upgraded on read and by repair): name|workspace|directory|configPath|tags
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

FIELD_SEPARATOR = "|"
TAG_SEPARATOR = ","
FIELD_COUNT = 5
DEFAULT_WORKSPACE = "1"


def _looks_absolute(value: str) -> bool:
    return value.startswith("/")


def split_line(line: str) -> List[str]:
    """Split a cache line into exactly five fields.

    Raises:
        ValueError: If the line does not have five `|`-separated fields
    """
    fields = line.rstrip("\n").split(FIELD_SEPARATOR)
    if len(fields) != FIELD_COUNT:
        raise ValueError(f"Expected {FIELD_COUNT} fields, got {len(fields)}: {line!r}")
    return fields


def is_legacy_line(line: str) -> bool:
    """Detect the legacy field order.

    A legacy row carries the directory in the 3rd field and the config path in
    the 4th, so both look absolute while the trailing tags field does not.
    Canonical rows always end with an absolute config path, which keeps the
    check stable after an upgrade.
    """
    try:
        fields = split_line(line)
    except ValueError:
        return False
    return (
        _looks_absolute(fields[2])
        and _looks_absolute(fields[3])
        and not _looks_absolute(fields[4])
    )


def canonicalize_line(line: str) -> str:
    """Return `line` in canonical order; canonical and malformed lines pass through."""
    if not is_legacy_line(line):
        return line.rstrip("\n")
    name, workspace, directory, config_path, tags = split_line(line)
    return FIELD_SEPARATOR.join([name, workspace, tags, directory, config_path])


def parse_tags(text: str) -> Tuple[str, ...]:
    return tuple(tag for tag in (t.strip() for t in text.split(TAG_SEPARATOR)) if tag)


@dataclass(frozen=True)
class ProjectRecord:
    """Normalized project entry built from one descriptor file."""

    name: str  # Display + lookup key (not guaranteed unique)
    workspace: str = DEFAULT_WORKSPACE
    tags: Tuple[str, ...] = field(default_factory=tuple)
    directory: str = ""  # Absolute project root (descriptor parent)
    config_path: str = ""  # Absolute descriptor path

    @classmethod
    def for_descriptor(
        cls,
        descriptor: Path,
        name: str = "",
        workspace: str = "",
        tags: Tuple[str, ...] = (),
    ) -> "ProjectRecord":
        """Build a record for `descriptor`, applying the documented defaults."""
        descriptor = Path(descriptor).absolute()
        directory = descriptor.parent
        return cls(
            name=name or directory.name,
            workspace=workspace or DEFAULT_WORKSPACE,
            tags=tuple(tags),
            directory=str(directory),
            config_path=str(descriptor),
        )

    @property
    def tags_text(self) -> str:
        return TAG_SEPARATOR.join(self.tags)

    def to_line(self) -> str:
        """Serialize in canonical field order."""
        return FIELD_SEPARATOR.join(
            [self.name, self.workspace, self.tags_text, self.directory, self.config_path]
        )

    @classmethod
    def from_line(cls, line: str) -> "ProjectRecord":
        """Parse a cache line, upgrading the legacy order transparently.

        Raises:
            ValueError: If the line is malformed
        """
        name, workspace, tags, directory, config_path = split_line(canonicalize_line(line))
        return cls(
            name=name,
            workspace=workspace or DEFAULT_WORKSPACE,
            tags=parse_tags(tags),
            directory=directory,
            config_path=config_path,
        )
