"""Rich and plain-text formatters for project-index CLI output."""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.ranking import RankedProject
from ..models.environment import EnvironmentItem
from ..models.project_record import ProjectRecord
from ..models.recent_entry import RecentEntry
from ..services.selector import RECENT_MARK


# Global console instance
console = Console()


def format_list_line(entry: RankedProject) -> str:
    """`name (workspace: N) [tags] - dir ★`"""
    record = entry.record
    line = f"{record.name} (workspace: {record.workspace})"
    if record.tags:
        line += f" [{record.tags_text}]"
    line += f" - {record.directory}"
    if entry.is_recent:
        line += RECENT_MARK
    return line


def format_recent_line(entry: RecentEntry) -> str:
    return f"{entry.name} (last opened: {entry.opened_at.strftime('%Y-%m-%d %H:%M:%S')})"


def format_environment_table(items: List[EnvironmentItem]) -> Table:
    """Format parsed environment items as a Rich table."""
    table = Table(title="Environment", show_header=True, header_style="bold cyan")

    table.add_column("#", justify="right", style="dim")
    table.add_column("Type", style="bold green")
    table.add_column("Command / URL", style="white")
    table.add_column("Files", style="blue")
    table.add_column("Position", style="dim")

    for index, item in enumerate(items, start=1):
        target = item.url if item.kind == "browser" else item.command
        table.add_row(
            str(index),
            escape(item.type_name),
            escape(target) if target else "[dim]-[/dim]",
            escape(" ".join(item.files)) if item.files else "[dim]-[/dim]",
            escape(item.position),
        )

    return table


def format_project_debug(
    record: ProjectRecord,
    raw_line: str,
    evaluator_available: bool,
    control_plane: str,
    control_plane_available: bool,
    environment_error: Optional[str] = None,
) -> Panel:
    """Format everything known about one project as a Rich panel."""
    def yes_no(value: bool) -> str:
        return "[green]yes[/green]" if value else "[red]no[/red]"

    lines = [
        f"[bold cyan]Cache row:[/bold cyan] {escape(raw_line)}",
        f"[bold cyan]Name:[/bold cyan] {escape(record.name)}",
        f"[bold cyan]Workspace:[/bold cyan] {record.workspace}",
        f"[bold cyan]Tags:[/bold cyan] {escape(record.tags_text) or '[dim]none[/dim]'}",
        f"[bold cyan]Directory:[/bold cyan] {escape(record.directory)}",
        f"[bold cyan]Descriptor:[/bold cyan] {escape(record.config_path)}",
        "",
        f"[bold cyan]Evaluator available:[/bold cyan] {yes_no(evaluator_available)}",
        f"[bold cyan]Control plane:[/bold cyan] {control_plane} ({yes_no(control_plane_available)})",
    ]
    if environment_error:
        lines.append(f"[bold red]Environment:[/bold red] {escape(environment_error)}")

    return Panel("\n".join(lines), title=f"Project: {escape(record.name)}", border_style="cyan")
