"""Descriptor evaluation.

Descriptors are Nix attribute sets. Evaluation is delegated to an injected
`DescriptorEvaluator`; production code shells out to nix-instantiate, tests
supply canned data.
"""

import json
import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..cli.logging_config import log_subprocess_call
from .errors import EvaluationError

logger = logging.getLogger(__name__)

RECORD_FIELDS = ("projectName", "workspace", "tags")


class DescriptorEvaluator(ABC):
    """Turns a descriptor file into structured fields."""

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def eval_record(self, path: Path) -> Dict[str, Any]:
        """Return the subset of {projectName, workspace, tags} present in the file.

        Raises:
            EvaluationError: If evaluation fails or the evaluator is absent
        """

    @abstractmethod
    def eval_environment(self, path: Path) -> List[Any]:
        """Return the raw `environment` list (empty if the field is absent).

        Raises:
            EvaluationError: If evaluation fails or the evaluator is absent
        """


class NixEvaluator(DescriptorEvaluator):
    """Evaluate descriptors with `nix-instantiate --eval --strict --json`."""

    def __init__(self, executable: str = "nix-instantiate", timeout: float = 10.0):
        self.executable = executable
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def _evaluate(self, path: Path) -> Dict[str, Any]:
        if not self.is_available():
            raise EvaluationError(path, f"{self.executable} not found")

        cmd = [self.executable, "--eval", "--strict", "--json", str(path)]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise EvaluationError(path, str(e))

        log_subprocess_call(cmd, result, logger)
        if result.returncode != 0:
            raise EvaluationError(path, result.stderr.strip() or f"exit status {result.returncode}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise EvaluationError(path, f"invalid JSON output: {e}")

        if not isinstance(data, dict):
            raise EvaluationError(path, "descriptor does not evaluate to an attribute set")
        return data

    def eval_record(self, path: Path) -> Dict[str, Any]:
        data = self._evaluate(path)
        return {key: data[key] for key in RECORD_FIELDS if key in data}

    def eval_environment(self, path: Path) -> List[Any]:
        data = self._evaluate(path)
        environment = data.get("environment")
        if not isinstance(environment, list):
            return []
        return environment


def default_evaluator(executable: Optional[str] = None) -> DescriptorEvaluator:
    return NixEvaluator(executable or "nix-instantiate")
