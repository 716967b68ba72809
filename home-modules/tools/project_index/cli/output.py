"""Output formatting utilities for CLI commands.

Commands print human-readable text by default; `--json` switches the
listing and status commands to machine-readable output.
"""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.ranking import RankedProject
from ..models.recent_entry import RecentEntry
from ..services.watcher import WatchStatus


class OutputFormatter:
    """Format output as either colored text or JSON.

    Examples:
        >>> fmt = OutputFormatter(json_mode=True)
        >>> fmt.print_success("Found 3 projects")
        >>> fmt.output()
        {"status": "success", "message": "Found 3 projects"}
    """

    def __init__(self, json_mode: bool = False):
        self.json_mode = json_mode
        self._json_result: Dict[str, Any] = {}

    def set_result(self, **kwargs: Any) -> None:
        self._json_result.update(kwargs)

    def print_success(self, message: str) -> None:
        if self.json_mode:
            self.set_result(status="success", message=message)
        else:
            from .commands import print_success
            print_success(message)

    def print_error(self, message: str, remediation: Optional[str] = None) -> None:
        if self.json_mode:
            result = {"status": "error", "message": message}
            if remediation:
                result["remediation"] = remediation
            self.set_result(**result)
        elif remediation:
            from .commands import print_error_with_remediation
            print_error_with_remediation(message, remediation)
        else:
            from .commands import print_error
            print_error(message)

    def print_info(self, message: str) -> None:
        if not self.json_mode:
            from .commands import print_info
            print_info(message)

    def print_warning(self, message: str) -> None:
        if self.json_mode:
            self.set_result(status="warning", message=message)
        else:
            from .commands import print_warning
            print_warning(message)

    def output(self, data: Optional[Dict[str, Any]] = None, file=None) -> None:
        """Emit the accumulated JSON result (no-op in text mode)."""
        if self.json_mode:
            if file is None:
                file = sys.stdout
            if data:
                self._json_result.update(data)
            print(json.dumps(self._json_result, indent=2, cls=ProjectJSONEncoder), file=file)


class ProjectJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime and Path values."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def format_project_list_json(ranked: List[RankedProject]) -> Dict[str, Any]:
    return {
        "total": len(ranked),
        "projects": [
            {
                "name": entry.record.name,
                "workspace": entry.record.workspace,
                "tags": list(entry.record.tags),
                "directory": entry.record.directory,
                "config_path": entry.record.config_path,
                "recent": entry.is_recent,
            }
            for entry in ranked
        ],
    }


def format_recent_json(entries: List[RecentEntry]) -> Dict[str, Any]:
    return {
        "total": len(entries),
        "recent": [
            {"name": e.name, "timestamp": e.timestamp, "opened_at": e.opened_at}
            for e in entries
        ],
    }


def format_watch_status_json(status: WatchStatus) -> Dict[str, Any]:
    return {
        "state": status.state.value,
        "running": status.state.value in ("running", "started", "already_running"),
        "pid": status.pid,
    }
