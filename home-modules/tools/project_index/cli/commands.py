"""CLI command handlers for project-index.

Implements the project switcher commands: cache maintenance, the background
watcher, listing and interactive selection, and opening projects.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .. import __version__
from ..core.cache_store import CacheStore
from ..core.config import IndexConfig, load_config
from ..core.errors import (
    ConfigError,
    EvaluationError,
    ProjectIndexError,
    ProjectNotFoundError,
    WatcherError,
)
from ..core.evaluator import default_evaluator
from ..core.instance import InstanceLock
from ..core.parser import DescriptorParser
from ..core.ranking import rank_projects
from ..core.recent import RecencyTracker
from ..services.control_plane import ControlPlane, detect_control_plane
from ..services.index_builder import IndexBuilder
from ..services.launcher import EnvironmentLauncher
from ..services.selector import SELECTORS
from ..services.watcher import ProjectWatcher, WatchState, default_daemon_argv, run_watch_loop
from .logging_config import setup_logging

if TYPE_CHECKING:
    from .output import OutputFormatter

logger = logging.getLogger(__name__)


# ANSI color codes for output
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BLUE = "\033[34m"
    GRAY = "\033[90m"


def print_success(message: str) -> None:
    """Print success message in green."""
    print(f"{Colors.GREEN}✓{Colors.RESET} {message}")


def print_error(message: str) -> None:
    """Print error message in red."""
    print(f"{Colors.RED}✗{Colors.RESET} {message}", file=sys.stderr)


def print_info(message: str) -> None:
    """Print info message in blue."""
    print(f"{Colors.BLUE}ℹ{Colors.RESET} {message}")


def print_warning(message: str) -> None:
    """Print warning message in yellow."""
    print(f"{Colors.YELLOW}⚠{Colors.RESET} {message}")


def print_error_with_remediation(error: str, remediation: str) -> None:
    """Print error with remediation steps.

    Format: "Error: <issue>. Remediation: <steps>"

    Examples:
        >>> print_error_with_remediation(
        ...     "Project not found in cache: api",
        ...     "Run 'project-index list' to see available projects"
        ... )
    """
    print(f"{Colors.RED}✗ Error:{Colors.RESET} {error}", file=sys.stderr)
    print(f"{Colors.BLUE}  Remediation:{Colors.RESET} {remediation}", file=sys.stderr)


class CommandContext:
    """Components shared by command handlers, built from one IndexConfig."""

    def __init__(self, config: IndexConfig, config_file: Optional[Path] = None):
        self.config = config
        self.config_file = config_file
        self.parser = DescriptorParser(default_evaluator())
        self.store = CacheStore.from_config(config, self.parser)
        self.recency = RecencyTracker.from_config(config)
        self.builder = IndexBuilder(config, self.store)
        self._control_plane: Optional[ControlPlane] = None
        self.instance_lock = InstanceLock(config.instance_lock_file)

    @property
    def control_plane(self) -> ControlPlane:
        if self._control_plane is None:
            self._control_plane = detect_control_plane(self.config)
        return self._control_plane

    def watcher(self) -> ProjectWatcher:
        return ProjectWatcher(self.config, daemon_argv=default_daemon_argv(self.config_file))

    def launcher(self) -> EnvironmentLauncher:
        return EnvironmentLauncher(
            self.config,
            self.store,
            self.recency,
            self.parser,
            self.control_plane,
        )


# ============================================================================
# Cache Commands
# ============================================================================


def cmd_build(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Scan directories and rebuild the project cache."""
    from .output import OutputFormatter

    fmt = OutputFormatter(json_mode=getattr(args, "json", False))
    _build(ctx, fmt)
    fmt.output()
    return 0


def _build(ctx: CommandContext, fmt: "OutputFormatter") -> None:
    result = ctx.builder.build()
    for directory in result.missing_dirs:
        fmt.print_warning(f"Directory not found: {directory}")
    if result.is_empty:
        fmt.print_info("No projects found. Cache is empty.")
        fmt.set_result(status="success", message="No projects found")
    else:
        fmt.print_success(f"Found {result.projects} projects ({result.duration_ms}ms)")
    if result.repaired:
        fmt.print_info(f"Repaired {result.repaired} legacy cache row(s)")
    fmt.set_result(
        projects=result.projects,
        repaired=result.repaired,
        missing_dirs=result.missing_dirs,
        duration_ms=result.duration_ms,
    )


def cmd_fix_cache(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Back up the cache table and rewrite legacy rows in canonical order."""
    from .output import OutputFormatter

    fmt = OutputFormatter(json_mode=getattr(args, "json", False))
    backup = ctx.store.backup()
    fmt.set_result(backup=backup)
    if backup is None:
        fmt.print_info("No cache file found; building a fresh one")
        _build(ctx, fmt)
        fmt.output()
        return 0

    fmt.print_info(f"Backed up existing cache to {backup}")
    repaired = ctx.store.repair_schema()
    if repaired:
        fmt.print_success(f"Repaired {repaired} cache row(s)")
    else:
        fmt.print_success("Cache already uses the current format")
    fmt.output({"repaired": repaired})
    return 0


# ============================================================================
# Watcher Commands
# ============================================================================


def cmd_monitor(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Start the background watcher."""
    from .output import OutputFormatter, format_watch_status_json

    fmt = OutputFormatter(json_mode=getattr(args, "json", False))
    try:
        status = ctx.watcher().start()
    except WatcherError as e:
        fmt.print_error(
            str(e),
            "Check project_dirs in your config or PROJECT_INDEX_DIRS, then see "
            f"{ctx.config.log_file}",
        )
        fmt.output(file=sys.stderr)
        return 1

    if status.state == WatchState.ALREADY_RUNNING:
        fmt.print_info(f"Monitoring is already running with PID {status.pid}")
        fmt.set_result(status="success", message="Monitoring is already running")
    else:
        fmt.print_success(f"Monitoring started with PID {status.pid}")
    fmt.output(format_watch_status_json(status))
    return 0


def cmd_stop_monitor(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Stop the background watcher."""
    from .output import OutputFormatter, format_watch_status_json

    fmt = OutputFormatter(json_mode=getattr(args, "json", False))
    status = ctx.watcher().stop()
    if status.state == WatchState.STOPPED:
        fmt.print_success(f"Stopped monitoring process (PID: {status.pid})")
    elif status.state == WatchState.STALE:
        fmt.print_warning("No active monitoring process found. Removed stale PID file.")
    else:
        fmt.print_info("No monitoring process found.")
        fmt.set_result(status="success", message="No monitoring process found")
    fmt.output(format_watch_status_json(status))
    return 0


def cmd_monitor_status(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Report whether the background watcher is alive."""
    from .output import OutputFormatter, format_watch_status_json

    fmt = OutputFormatter(json_mode=getattr(args, "json", False))
    status = ctx.watcher().status()

    if status.state == WatchState.RUNNING:
        fmt.print_info(f"Monitoring is running with PID {status.pid}")
    elif status.state == WatchState.STALE:
        fmt.print_info("Monitoring process is not running but PID file exists. Removed stale PID file.")
    else:
        fmt.print_info("Monitoring is not running.")

    fmt.output(format_watch_status_json(status))
    return 0


def cmd_watch_daemon(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Internal: body of the detached watcher process."""
    return run_watch_loop(ctx.config, ctx.builder)


# ============================================================================
# Listing Commands
# ============================================================================


def cmd_list(args: argparse.Namespace, ctx: CommandContext) -> int:
    """List all projects, recently opened first."""
    from .formatters import format_list_line
    from .output import OutputFormatter, format_project_list_json

    fmt = OutputFormatter(json_mode=getattr(args, "json", False))
    ctx.builder.ensure_built()
    ranked = rank_projects(ctx.store.records(), ctx.recency.recent_names())

    if not ranked:
        fmt.print_info("No projects found")
    elif not fmt.json_mode:
        for entry in ranked:
            print(format_list_line(entry))

    fmt.output(format_project_list_json(ranked))
    return 0


def cmd_list_recent(args: argparse.Namespace, ctx: CommandContext) -> int:
    """List recently opened projects, newest first."""
    from .formatters import format_recent_line
    from .output import OutputFormatter, format_recent_json

    fmt = OutputFormatter(json_mode=getattr(args, "json", False))
    entries = ctx.recency.entries()

    if not entries:
        fmt.print_info("No recent projects found")
    elif not fmt.json_mode:
        for entry in entries:
            print(format_recent_line(entry))

    fmt.output(format_recent_json(entries))
    return 0


def cmd_debug(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Show the cache row, parsed fields and environment of one project."""
    from .formatters import console, format_environment_table, format_project_debug

    try:
        record = ctx.store.lookup(args.name)
    except ProjectNotFoundError as e:
        print_error_with_remediation(str(e), "Run 'project-index list' to see available projects")
        return 1

    items = []
    environment_error = None
    try:
        items = ctx.parser.parse_environment(Path(record.config_path))
    except EvaluationError as e:
        environment_error = str(e)

    console.print(format_project_debug(
        record,
        raw_line=record.to_line(),
        evaluator_available=ctx.parser.evaluator.is_available(),
        control_plane=ctx.control_plane.name,
        control_plane_available=ctx.control_plane.is_available(),
        environment_error=environment_error,
    ))
    if items:
        console.print(format_environment_table(items))
    elif environment_error is None:
        print_info("No environment items; opening launches a terminal")
    return 0


# ============================================================================
# Open Commands
# ============================================================================


def _open_project(name: str, ctx: CommandContext) -> int:
    try:
        outcome = ctx.launcher().open(name, interactive=sys.stdin.isatty())
    except ProjectNotFoundError as e:
        logger.error(str(e))
        print_error_with_remediation(str(e), "Run 'project-index build' to refresh the cache")
        return 1

    if outcome.advisory:
        print(f"Project directory: {outcome.record.directory}")
        print(f"Run: {outcome.advisory}")
    elif outcome.available:
        logger.info(f"Opened {outcome.record.name}: {', '.join(outcome.dispatched) or 'nothing'}")
    return 0


def cmd_open(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Open a project by name."""
    if not args.name:
        print("Usage: project-index open <project_name>", file=sys.stderr)
        return 1
    ctx.instance_lock.acquire_or_exit()
    return _open_project(args.name, ctx)


def cmd_select(args: argparse.Namespace, ctx: CommandContext) -> int:
    """Pick a project with rofi or fzf, then open it."""
    ctx.instance_lock.acquire_or_exit()

    selector = SELECTORS[args.command]()
    logger.info(f"Starting {selector.name} selection")
    ctx.builder.ensure_built()
    ranked = rank_projects(ctx.store.records(), ctx.recency.recent_names())

    picked = selector.select(ranked)
    if picked is None:
        logger.info("No project selected")
        return 0

    logger.info(f"Selected project: {picked.record.name}")
    return _open_project(picked.record.name, ctx)


class CLIArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit status 1."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = CLIArgumentParser(
        prog="project-index",
        description="Project Indexer - Quickly switch between development environments",
    )

    parser.add_argument("--version", action="version", version=f"project-index {__version__}")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging (INFO level)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (DEBUG level, includes verbose)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.json (default: ~/.config/project-index/config.json)"
    )

    subparsers = parser.add_subparsers(dest="command", parser_class=CLIArgumentParser)

    parser_build = subparsers.add_parser("build", help="Scan directories and build project cache")
    parser_build.add_argument("--json", action="store_true", help="Output in JSON format")
    parser_monitor = subparsers.add_parser("monitor", help="Start file monitoring for project changes")
    parser_monitor.add_argument("--json", action="store_true", help="Output in JSON format")
    parser_stop = subparsers.add_parser("stop-monitor", help="Stop the monitoring process")
    parser_stop.add_argument("--json", action="store_true", help="Output in JSON format")
    parser_status = subparsers.add_parser("monitor-status", help="Check if monitoring is running")
    parser_status.add_argument("--json", action="store_true", help="Output in JSON format")

    subparsers.add_parser("rofi", help="Select a project using rofi")
    subparsers.add_parser("fzf", help="Select a project using fzf")

    parser_list = subparsers.add_parser("list", help="List all projects")
    parser_list.add_argument("--json", action="store_true", help="Output in JSON format")
    parser_recent = subparsers.add_parser("list-recent", help="List recently opened projects")
    parser_recent.add_argument("--json", action="store_true", help="Output in JSON format")

    parser_open = subparsers.add_parser("open", help="Directly open a project by name")
    parser_open.add_argument("name", nargs="?", help="Project name")

    parser_debug = subparsers.add_parser("debug", help="Show cache and descriptor details for a project")
    parser_debug.add_argument("name", help="Project name")

    parser_fix = subparsers.add_parser("fix-cache", help="Back up the cache and repair legacy rows")
    parser_fix.add_argument("--json", action="store_true", help="Output in JSON format")
    subparsers.add_parser("help", help="Show this help message")
    subparsers.add_parser("watch-daemon")

    return parser


COMMAND_HANDLERS = {
    "build": cmd_build,
    "fix-cache": cmd_fix_cache,
    "monitor": cmd_monitor,
    "stop-monitor": cmd_stop_monitor,
    "monitor-status": cmd_monitor_status,
    "watch-daemon": cmd_watch_daemon,
    "list": cmd_list,
    "list-recent": cmd_list_recent,
    "debug": cmd_debug,
    "open": cmd_open,
    "rofi": cmd_select,
    "fzf": cmd_select,
}


def cli_main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "help":
        parser.print_help()
        return 0
    # No command = rofi selection
    if not args.command:
        args.command = "rofi"

    try:
        config = load_config(args.config)
    except ConfigError as e:
        setup_logging(verbose=args.verbose, debug=args.debug)
        print_error_with_remediation(str(e), "Fix or remove the configuration file")
        return 1

    setup_logging(verbose=args.verbose, debug=args.debug, log_file=config.log_file)
    logger.debug(f"Command: {args.command}")

    ctx = CommandContext(config, config_file=args.config)
    handler = COMMAND_HANDLERS[args.command]
    try:
        return handler(args, ctx)
    except ProjectIndexError as e:
        print_error(str(e))
        return 1
    except OSError as e:
        logger.error(f"{args.command} failed: {e}")
        print_error(f"{args.command} failed: {e}")
        return 1
    finally:
        ctx.instance_lock.release()


if __name__ == "__main__":
    sys.exit(cli_main())
