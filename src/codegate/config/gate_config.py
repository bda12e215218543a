"""Quality gate and maintainability configuration files.

PATTERN: Configuration loading with YAML/JSON support
CRITICAL: Precedence: project gate > default gate
GOTCHA: Invalid entries fail fast with ConfigError

Example (YAML):

    default_gate:
      name: Default
      conditions:
        - {metric: blocker_issues, operator: GT, threshold: 0}
        - {metric: coverage, operator: LT, threshold: 80}
        - {metric: coverage, operator: LT, threshold: 0, scope: NEW}
    projects:
      payments:
        name: Payments strict
        conditions:
          - {metric: critical_issues, operator: GT, threshold: 0}
    maintainability:
      rating_thresholds: {A: 5, B: 10, C: 20, D: 50}
      remediation_minutes: {INFO: 5, MINOR: 10, MAJOR: 20, CRITICAL: 60, BLOCKER: 120}
"""

import json
import logging
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from ..exceptions import ConfigError
from ..models.analysis_models import Severity
from ..models.quality_models import QualityGate
from ..quality.technical_debt import TechnicalDebtCalculator

logger = logging.getLogger(__name__)


class GateConfigLoader:
    """Loads quality gates and debt settings from a configuration file."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize loader.

        Args:
            config_path: YAML or JSON file; empty configuration when omitted
        """
        self.logger = logger
        self.config_path = Path(config_path) if config_path else None
        self.default_gate: Optional[QualityGate] = None
        self.project_gates: Dict[str, QualityGate] = {}
        self.rating_thresholds: Optional[Dict[str, float]] = None
        self.remediation_minutes: Optional[Dict[Severity, int]] = None

        if self.config_path:
            self.load(self.config_path)

    def load(self, config_path: Union[str, Path]) -> None:
        """
        Load configuration from a file.

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Gate configuration not found: {path}")

        try:
            with open(path, "r") as f:
                if path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                elif path.suffix == ".json":
                    data = json.load(f)
                else:
                    raise ConfigError(f"Unsupported config format: {path.suffix}")
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse gate configuration {path}: {e}") from e

        self.load_dict(data or {})
        self.logger.info(
            f"Loaded gate configuration from {path}: "
            f"default={'yes' if self.default_gate else 'no'}, "
            f"{len(self.project_gates)} project gates"
        )

    def load_dict(self, data: Dict[str, Any]) -> None:
        """Load configuration from an already-decoded mapping."""
        if not isinstance(data, dict):
            raise ConfigError("Gate configuration must be a mapping")

        if data.get("default_gate") is not None:
            self.default_gate = self._build_gate(data["default_gate"], "default", None)

        projects = data.get("projects") or {}
        if not isinstance(projects, dict):
            raise ConfigError("'projects' must map project ids to gates")
        for project_id, gate_data in projects.items():
            self.project_gates[str(project_id)] = self._build_gate(
                gate_data, f"project-{project_id}", str(project_id)
            )

        maintainability = data.get("maintainability") or {}
        if not isinstance(maintainability, dict):
            raise ConfigError("'maintainability' must be a mapping")
        self._load_maintainability(maintainability)

    def _build_gate(
        self, gate_data: Any, default_id: str, project_id: Optional[str]
    ) -> QualityGate:
        if not isinstance(gate_data, dict):
            raise ConfigError(f"Gate '{default_id}' must be a mapping")

        payload = {
            "id": gate_data.get("id", default_id),
            "name": gate_data.get("name", default_id),
            "project_id": project_id,
            "conditions": gate_data.get("conditions") or [],
        }
        try:
            return QualityGate.model_validate(payload)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid gate '{default_id}': {e.errors()[0]['msg']}",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e

    def _load_maintainability(self, data: Dict[str, Any]) -> None:
        thresholds = data.get("rating_thresholds")
        if thresholds is not None:
            try:
                self.rating_thresholds = {str(k): float(v) for k, v in thresholds.items()}
            except (AttributeError, TypeError, ValueError) as e:
                raise ConfigError(f"Invalid rating thresholds: {e}") from e

        minutes = data.get("remediation_minutes")
        if minutes is not None:
            try:
                self.remediation_minutes = {
                    Severity(str(k).upper()): int(v) for k, v in minutes.items()
                }
            except (AttributeError, TypeError, ValueError) as e:
                raise ConfigError(f"Invalid remediation minutes: {e}") from e

        # Validates monotonic thresholds and non-negative minutes
        self.debt_calculator()

    def gate_for(self, project_id: str) -> Optional[QualityGate]:
        """Configured gate of a project, else the default gate."""
        return self.project_gates.get(project_id) or self.default_gate

    def debt_calculator(self) -> TechnicalDebtCalculator:
        return TechnicalDebtCalculator(
            remediation_minutes=self.remediation_minutes,
            rating_thresholds=self.rating_thresholds,
        )
