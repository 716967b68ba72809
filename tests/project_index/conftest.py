"""Pytest configuration and shared fixtures for project_index tests."""

import json
import logging
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from project_index.core.config import IndexConfig
from project_index.core.evaluator import DescriptorEvaluator
from project_index.core.errors import ControlPlaneUnavailable, EvaluationError
from project_index.core.parser import DescriptorParser
from project_index.core.cache_store import CacheStore
from project_index.core.recent import RecencyTracker
from project_index.services.control_plane import ControlPlane


class FakeEvaluator(DescriptorEvaluator):
    """Evaluator returning canned data keyed by descriptor path.

    Paths without canned data raise EvaluationError so the parser's textual
    fallback is exercised.
    """

    def __init__(self, data: Optional[Dict[Path, Dict[str, Any]]] = None):
        self.data: Dict[Path, Dict[str, Any]] = {Path(k): v for k, v in (data or {}).items()}
        self.calls: List[Tuple[str, Path]] = []

    def set(self, path: Path, value: Dict[str, Any]) -> None:
        self.data[Path(path)] = value

    def _lookup(self, path: Path) -> Dict[str, Any]:
        path = Path(path)
        if path not in self.data:
            raise EvaluationError(path, "no canned data")
        return self.data[path]

    def eval_record(self, path: Path) -> Dict[str, Any]:
        self.calls.append(("record", Path(path)))
        data = self._lookup(path)
        return {k: data[k] for k in ("projectName", "workspace", "tags") if k in data}

    def eval_environment(self, path: Path) -> List[Any]:
        self.calls.append(("environment", Path(path)))
        return list(self._lookup(path).get("environment", []))


class FakeControlPlane(ControlPlane):
    """Control plane that records every request."""

    name = "fake"

    def __init__(self, available: bool = True, failing: Sequence[str] = ()):
        self.available = available
        self.failing = set(failing)
        self.calls: List[Tuple[str, Any]] = []

    def is_available(self) -> bool:
        self.calls.append(("is_available", None))
        return self.available

    def switch_workspace(self, workspace: str) -> None:
        self.calls.append(("switch_workspace", workspace))
        if "switch_workspace" in self.failing:
            raise ControlPlaneUnavailable(self.name, "switch failed")

    def launch(self, argv, cwd=None) -> None:
        self.calls.append(("launch", (list(argv), cwd)))
        if "launch" in self.failing:
            raise ControlPlaneUnavailable(self.name, "launch failed")

    def open_url(self, url: str) -> None:
        self.calls.append(("open_url", url))

    @property
    def dispatches(self) -> List[Tuple[str, Any]]:
        return [c for c in self.calls if c[0] != "is_available"]


def write_descriptor(
    directory: Path,
    name: Optional[str] = None,
    workspace: Optional[int] = None,
    tags: Sequence[str] = (),
    body: str = "",
    filename: str = ".project.nix",
) -> Path:
    """Write a Nix-style descriptor that the regex fallback can read."""
    directory.mkdir(parents=True, exist_ok=True)
    lines = ["{"]
    if name is not None:
        lines.append(f'  projectName = "{name}";')
    if workspace is not None:
        lines.append(f"  workspace = {workspace};")
    if tags:
        quoted = " ".join(f'"{t}"' for t in tags)
        lines.append(f"  tags = [ {quoted} ];")
    if body:
        lines.append(textwrap.indent(textwrap.dedent(body).strip("\n"), "  "))
    lines.append("}")
    path = directory / filename
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def projects_root(tmp_path: Path) -> Path:
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, projects_root: Path) -> IndexConfig:
    return IndexConfig(
        project_dirs=[projects_root],
        cache_dir=tmp_path / "cache",
        compositor="none",
        launch_delay=0.0,
        debounce_seconds=0.0,
    )


@pytest.fixture
def config_file(tmp_path: Path, projects_root: Path) -> Path:
    """config.json pointing every path at tmp_path."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "project_dirs": [str(projects_root)],
        "cache_dir": str(tmp_path / "cache"),
        "compositor": "none",
        "launch_delay": 0,
    }, indent=2))
    return path


@pytest.fixture
def evaluator() -> FakeEvaluator:
    return FakeEvaluator()


@pytest.fixture
def parser(evaluator: FakeEvaluator) -> DescriptorParser:
    return DescriptorParser(evaluator)


@pytest.fixture
def store(config: IndexConfig, parser: DescriptorParser) -> CacheStore:
    return CacheStore.from_config(config, parser)


@pytest.fixture
def clock():
    """Deterministic clock advancing one second per call."""
    state = {"now": 1_700_000_000}

    def tick() -> float:
        state["now"] += 1
        return state["now"]

    return tick


@pytest.fixture
def recency(config: IndexConfig, clock) -> RecencyTracker:
    return RecencyTracker(config.recent_file, max_recent=config.max_recent, clock=clock)


@pytest.fixture
def control_plane() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture
def descriptor():
    """Factory fixture writing descriptor files (see write_descriptor)."""
    return write_descriptor


@pytest.fixture
def make_control_plane():
    """Factory fixture for FakeControlPlane instances."""
    return FakeControlPlane


@pytest.fixture(autouse=True)
def reset_project_logger():
    """Drop handlers installed by setup_logging so they don't outlive capture."""
    yield
    logger = logging.getLogger("project_index")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Ignore PROJECT_INDEX_* overrides from the developer's shell."""
    for var in ("PROJECT_INDEX_DIRS", "PROJECT_INDEX_CACHE_DIR"):
        monkeypatch.delenv(var, raising=False)
