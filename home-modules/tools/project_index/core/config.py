"""Configuration for project-index.

A single immutable `IndexConfig` is built at process start and handed to
every component constructor. Values come from
~/.config/project-index/config.json (optional) and environment overrides.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".config/project-index/config.json"
DEFAULT_CACHE_DIR = Path.home() / ".cache/project-index"
DEFAULT_PROJECT_DIRS = [Path.home() / "projects"]

ENV_PROJECT_DIRS = "PROJECT_INDEX_DIRS"
ENV_CACHE_DIR = "PROJECT_INDEX_CACHE_DIR"


class IndexConfig(BaseModel):
    """Immutable runtime configuration.

    Fields:
        project_dirs: Roots scanned recursively for descriptor files
        cache_dir: Directory holding the cache table, locks, PID and log files
        descriptor_name: Exact filename of a project descriptor
        max_recent: Capacity of the most-recently-used list
        terminal: Terminal emulator used for terminal/editor windows
        shell: Shell used to run descriptor commands inside the terminal
        compositor: Control plane selection (auto, hyprland, sway, none)
        launch_delay: Seconds between environment item dispatches
        debounce_seconds: Delay between a descriptor change and the rebuild
    """

    model_config = ConfigDict(frozen=True)

    project_dirs: List[Path] = Field(default_factory=lambda: list(DEFAULT_PROJECT_DIRS))
    cache_dir: Path = Field(default=DEFAULT_CACHE_DIR)
    descriptor_name: str = Field(default=".project.nix", min_length=1)
    max_recent: int = Field(default=5, ge=1)
    terminal: str = Field(default="alacritty", min_length=1)
    shell: str = Field(default="bash", min_length=1)
    compositor: Literal["auto", "hyprland", "sway", "none"] = "auto"
    launch_delay: float = Field(default=0.5, ge=0.0)
    debounce_seconds: float = Field(default=1.0, ge=0.0)

    @field_validator("project_dirs", mode="before")
    @classmethod
    def expand_project_dirs(cls, v):
        if isinstance(v, (str, Path)):
            v = [v]
        return [Path(p).expanduser() for p in v]

    @field_validator("cache_dir", mode="before")
    @classmethod
    def expand_cache_dir(cls, v):
        return Path(v).expanduser()

    @field_validator("descriptor_name")
    @classmethod
    def validate_descriptor_name(cls, v: str) -> str:
        if "/" in v:
            raise ValueError("descriptor_name must be a bare filename")
        return v

    @property
    def cache_file(self) -> Path:
        return self.cache_dir / "projects.cache"

    @property
    def recent_file(self) -> Path:
        return self.cache_dir / "recent.cache"

    @property
    def lock_file(self) -> Path:
        return self.cache_dir / "index.lock"

    @property
    def pid_file(self) -> Path:
        return self.cache_dir / "monitor.pid"

    @property
    def log_file(self) -> Path:
        return self.cache_dir / "project-index.log"

    @property
    def instance_lock_file(self) -> Path:
        return self.cache_dir / "instance.lock"

    def existing_project_dirs(self) -> List[Path]:
        """Return the configured project roots that exist as directories."""
        return [d for d in self.project_dirs if d.is_dir()]

    def ensure_cache_dir(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)


def load_config(config_file: Optional[Path] = None, environ: Optional[dict] = None) -> IndexConfig:
    """Load configuration from disk and environment.

    Args:
        config_file: Path to config.json (default: ~/.config/project-index/config.json)
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated, frozen IndexConfig

    Raises:
        ConfigError: If the file is unreadable, not JSON, or fails validation
    """
    if environ is None:
        environ = os.environ
    explicit = config_file is not None
    if config_file is None:
        config_file = DEFAULT_CONFIG_FILE

    data: dict = {}
    if config_file.exists():
        try:
            with config_file.open("r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigError(f"Failed to load config {config_file}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config {config_file} must contain a JSON object")
        logger.debug(f"Loaded config from {config_file}")
    elif explicit:
        raise ConfigError(f"Config file not found: {config_file}")

    dirs_override = environ.get(ENV_PROJECT_DIRS)
    if dirs_override:
        data["project_dirs"] = [d for d in dirs_override.split(":") if d]
    cache_override = environ.get(ENV_CACHE_DIR)
    if cache_override:
        data["cache_dir"] = cache_override

    try:
        return IndexConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")
