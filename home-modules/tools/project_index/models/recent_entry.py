"""RecentEntry - one line of the most-recently-used file (name|unixTimestamp)."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RecentEntry:
    """A project access with its unix timestamp."""

    name: str
    timestamp: int

    def to_line(self) -> str:
        return f"{self.name}|{self.timestamp}"

    @classmethod
    def from_line(cls, line: str) -> "RecentEntry":
        """Parse `name|timestamp`.

        Raises:
            ValueError: If the line is malformed
        """
        name, sep, stamp = line.rstrip("\n").rpartition("|")
        if not sep or not name:
            raise ValueError(f"Malformed recent entry: {line!r}")
        return cls(name=name, timestamp=int(stamp))

    @property
    def opened_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp)
