"""Logging configuration for project-index.

Provides:
- Configurable console log levels (WARNING, INFO, DEBUG)
- Persistent log file in the cache directory
- Subprocess and compositor IPC call logging
- Performance timing logs
"""

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional


LOGGER_NAME = "project_index"

DEFAULT_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEBUG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
FILE_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        # Copy so the file handler keeps the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    verbose: bool = False,
    debug: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure the project_index logger.

    Args:
        verbose: Enable verbose console logging (INFO level)
        debug: Enable debug console logging (DEBUG level)
        log_file: Append INFO and above to this file as well

    Returns:
        Configured logger instance

    Examples:
        >>> logger = setup_logging(verbose=True)
        >>> logger.info("Building project index...")
        2026-03-02 10:30:45 [INFO] project_index: Building project index...
    """
    logger = logging.getLogger(LOGGER_NAME)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if debug:
        console_level = logging.DEBUG
        log_format = DEBUG_FORMAT
    elif verbose:
        console_level = logging.INFO
        log_format = VERBOSE_FORMAT
    else:
        console_level = logging.WARNING
        log_format = DEFAULT_FORMAT

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    if sys.stderr.isatty():
        console.setFormatter(ColoredFormatter(log_format))
    else:
        console.setFormatter(logging.Formatter(log_format))
    logger.addHandler(console)

    file_level = logging.DEBUG if debug else logging.INFO
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except OSError as e:
            logger.warning(f"Cannot open log file {log_file}: {e}")
        else:
            file_handler.setLevel(file_level)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
            logger.addHandler(file_handler)

    logger.setLevel(min(console_level, file_level) if log_file is not None else console_level)
    return logger


def log_subprocess_call(cmd: list, result: Any, logger: logging.Logger) -> None:
    """Log subprocess call with result.

    Args:
        cmd: Command list
        result: subprocess.CompletedProcess result
        logger: Logger instance
    """
    logger.debug(f"Subprocess call: {' '.join(str(c) for c in cmd)}")
    logger.debug(f"  Return code: {result.returncode}")

    if getattr(result, 'stdout', None):
        stdout = result.stdout if isinstance(result.stdout, str) else result.stdout.decode()
        logger.debug(f"  stdout: {stdout[:200]}...")

    if getattr(result, 'stderr', None):
        stderr = result.stderr if isinstance(result.stderr, str) else result.stderr.decode()
        logger.debug(f"  stderr: {stderr[:200]}...")


def log_ipc_command(command: str, replies: Any, logger: logging.Logger) -> None:
    """Log a compositor IPC command and its replies."""
    logger.debug(f"IPC command: {command}")
    logger.debug(f"  Replies: {str(replies)[:500]}")


@contextmanager
def log_timing(operation: str, logger: logging.Logger):
    """Context manager for logging operation timing.

    Examples:
        >>> with log_timing("Rebuild cache", logger):
        ...     store.rebuild(dirs)
        INFO: Rebuild cache completed in 15.32ms
    """
    start = time.perf_counter()
    logger.debug(f"Starting: {operation}")

    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{operation} completed in {elapsed_ms:.2f}ms")
