"""Interactive project pickers (rofi, fzf).

The selector receives one display line per project and returns the picked
line; the line is mapped back to its project by exact lookup.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from ..core.ranking import RankedProject

logger = logging.getLogger(__name__)

RECENT_MARK = " ★"


def format_rofi_line(entry: RankedProject) -> str:
    """`name (ws:N) [tags] ★`"""
    record = entry.record
    line = f"{record.name} (ws:{record.workspace})"
    if record.tags:
        line += f" [{record.tags_text}]"
    if entry.is_recent:
        line += RECENT_MARK
    return line


def format_fzf_line(entry: RankedProject) -> str:
    """`name (ws:N) [tags] - dir ★`"""
    record = entry.record
    line = f"{record.name} (ws:{record.workspace})"
    if record.tags:
        line += f" [{record.tags_text}]"
    line += f" - {record.directory}"
    if entry.is_recent:
        line += RECENT_MARK
    return line


class Selector(ABC):
    """External picker over newline-delimited display lines."""

    name = "abstract"

    @abstractmethod
    def command(self) -> List[str]:
        ...

    @abstractmethod
    def format_line(self, entry: RankedProject) -> str:
        ...

    def run(self, lines: Sequence[str]) -> str:
        """Show `lines` and return the chosen one ("" on cancel)."""
        cmd = self.command()
        logger.debug(f"Subprocess call: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                input="\n".join(lines) + "\n",
                stdout=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError:
            logger.error(f"{cmd[0]} is not installed")
            return ""
        # rofi exits 1 and fzf exits 130 on cancel
        if result.returncode != 0:
            logger.debug(f"{self.name} exited with {result.returncode}")
            return ""
        return result.stdout.strip("\n")

    def select(self, ranked: Sequence[RankedProject]) -> Optional[RankedProject]:
        """Prompt for a project.

        Returns:
            The picked entry, or None when nothing was selected
        """
        by_line: Dict[str, RankedProject] = {}
        for entry in ranked:
            by_line.setdefault(self.format_line(entry), entry)

        picked = self.run(list(by_line))
        if not picked:
            return None
        entry = by_line.get(picked)
        if entry is None:
            logger.warning(f"Selection did not match any project: {picked!r}")
        return entry


class RofiSelector(Selector):
    name = "rofi"

    def command(self) -> List[str]:
        return ["rofi", "-dmenu", "-i", "-p", "Select Project"]

    def format_line(self, entry: RankedProject) -> str:
        return format_rofi_line(entry)


class FzfSelector(Selector):
    name = "fzf"

    def command(self) -> List[str]:
        return ["fzf", "--height", "40%", "--reverse", "--prompt", "Select Project > "]

    def format_line(self, entry: RankedProject) -> str:
        return format_fzf_line(entry)


SELECTORS = {
    "rofi": RofiSelector,
    "fzf": FzfSelector,
}
