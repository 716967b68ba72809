"""Descriptor parsing into normalized ProjectRecord / EnvironmentItem values.

`parse` never raises: evaluator failures fall back to pattern scraping of the
raw file, and missing fields take their defaults. `parse_environment` has no
textual fallback and raises EvaluationError.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..models.environment import EnvironmentItem
from ..models.project_record import DEFAULT_WORKSPACE, TAG_SEPARATOR, ProjectRecord
from .evaluator import DescriptorEvaluator, default_evaluator
from .errors import EvaluationError

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r'projectName\s*=\s*"([^"]*)"')
WORKSPACE_PATTERN = re.compile(r'workspace\s*=\s*([0-9]+)')
TAGS_PATTERN = re.compile(r'tags\s*=\s*\[(.*?)\]', re.DOTALL)
QUOTED_PATTERN = re.compile(r'"([^"]*)"')
UNSAFE_FIELD_PATTERN = re.compile(r"[\r\n|]+")
UNSAFE_TAG_PATTERN = re.compile(r"[\r\n|,]+")


def normalize_workspace(value: Any) -> str:
    """Return a workspace identifier, or the default when unparseable."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_WORKSPACE
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    if text.isdigit():
        return str(int(text))
    return DEFAULT_WORKSPACE


def clean_field(text: str, pattern: "re.Pattern[str]" = UNSAFE_FIELD_PATTERN) -> str:
    """Replace row and field separators with spaces so one record stays one line."""
    return pattern.sub(" ", text).strip()


def normalize_tags(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(TAG_SEPARATOR)
    if isinstance(value, (list, tuple)):
        cleaned = (clean_field(str(tag), UNSAFE_TAG_PATTERN) for tag in value)
        return tuple(tag for tag in cleaned if tag)
    return ()


def scrape_fields(text: str) -> Dict[str, Any]:
    """Extract projectName / workspace / tags with regular expressions."""
    fields: Dict[str, Any] = {}

    name_match = NAME_PATTERN.search(text)
    if name_match:
        fields["projectName"] = name_match.group(1)

    workspace_match = WORKSPACE_PATTERN.search(text)
    if workspace_match:
        fields["workspace"] = workspace_match.group(1)

    tags_match = TAGS_PATTERN.search(text)
    if tags_match:
        fields["tags"] = QUOTED_PATTERN.findall(tags_match.group(1))

    return fields


class DescriptorParser:
    """Parse descriptor files using an injected evaluator."""

    def __init__(self, evaluator: Optional[DescriptorEvaluator] = None):
        self.evaluator = evaluator or default_evaluator()

    def _record_fields(self, path: Path) -> Dict[str, Any]:
        try:
            fields = self.evaluator.eval_record(path)
            if isinstance(fields, dict):
                return fields
            logger.debug(f"Evaluator returned {type(fields).__name__} for {path}, scraping instead")
        except EvaluationError as e:
            logger.debug(f"{e}; falling back to pattern extraction")

        try:
            return scrape_fields(path.read_text(errors="replace"))
        except OSError as e:
            logger.warning(f"Cannot read descriptor {path}: {e}")
            return {}

    def parse(self, path: Path) -> ProjectRecord:
        """Parse one descriptor into a ProjectRecord (best effort, never raises)."""
        path = Path(path).absolute()
        fields = self._record_fields(path)

        name = fields.get("projectName")
        name = clean_field(str(name)) if isinstance(name, (str, int, float)) else ""

        return ProjectRecord.for_descriptor(
            path,
            name=name,
            workspace=normalize_workspace(fields.get("workspace")),
            tags=normalize_tags(fields.get("tags")),
        )

    def parse_environment(self, path: Path) -> List[EnvironmentItem]:
        """Parse the descriptor's environment list.

        Raises:
            EvaluationError: If the evaluator fails or is absent
        """
        raw_items = self.evaluator.eval_environment(Path(path))
        items = [EnvironmentItem.from_descriptor(item) for item in raw_items]
        logger.debug(f"Parsed {len(items)} environment item(s) from {path}")
        return items
