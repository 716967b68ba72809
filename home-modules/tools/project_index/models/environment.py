"""Environment items - the windows a project wants opened on launch.

Parsed fresh from the descriptor's `environment` list at launch time; never
stored in the cache table.
"""

from enum import Enum
from typing import Any, List, Mapping

from pydantic import BaseModel, Field, field_validator


class ItemKind(str, Enum):
    """Recognized environment item types."""
    TERMINAL = "terminal"
    EDITOR = "editor"
    BROWSER = "browser"
    UNKNOWN = "unknown"


class EnvironmentItem(BaseModel):
    """One desired window.

    Fields:
        kind: terminal, editor, browser or unknown
        type_name: Raw `type` value from the descriptor (for diagnostics)
        command: Optional command (shell text for terminals, argv text for editors)
        position: Placement hint, passed through only
        url: Target URL for browser items
        files: Paths relative to the project directory
    """
    kind: ItemKind = ItemKind.UNKNOWN
    type_name: str = "unknown"
    command: str = ""
    position: str = "center"
    url: str = ""
    files: List[str] = Field(default_factory=list)

    @field_validator("files", mode="before")
    @classmethod
    def split_files(cls, v: Any) -> List[str]:
        """Accept a list or the comma-joined transit form."""
        if v is None:
            return []
        if isinstance(v, str):
            return [f for f in v.split(",") if f]
        return [str(f) for f in v]

    @property
    def files_text(self) -> str:
        return ",".join(self.files)

    @classmethod
    def from_descriptor(cls, data: Any) -> "EnvironmentItem":
        """Map one evaluated `environment` entry to an item with defaults."""
        if not isinstance(data, Mapping):
            return cls()

        type_name = str(data.get("type") or "unknown")
        try:
            kind = ItemKind(type_name)
        except ValueError:
            kind = ItemKind.UNKNOWN

        return cls(
            kind=kind,
            type_name=type_name,
            command=str(data.get("command") or ""),
            position=str(data.get("position") or "center"),
            url=str(data.get("url") or ""),
            files=data.get("files") if isinstance(data.get("files"), (list, tuple, str)) else [],
        )
