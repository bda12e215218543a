"""Data models for quality gates and their evaluation.

This module contains the Pydantic models for gate conditions, evaluation
results and technical debt.
"""

from enum import Enum
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class Operator(str, Enum):
    """Comparison operators. A condition FAILS when the comparison holds."""

    GT = "GT"
    LT = "LT"
    EQ = "EQ"


class MetricScope(str, Enum):
    """Which metric set a condition reads."""

    ALL = "ALL"
    NEW = "NEW"


class GateStatus(str, Enum):
    """Gate verdict."""

    PASS = "PASS"
    FAIL = "FAIL"


class QualityGateCondition(BaseModel):
    """A single rule on one metric."""

    metric: str = Field(description="Metric key, e.g. coverage or blocker_issues")
    operator: Operator
    threshold: float
    scope: MetricScope = Field(default=MetricScope.ALL)


class QualityGate(BaseModel):
    """Named set of conditions for a project."""

    id: str
    name: str
    project_id: Optional[str] = Field(default=None, description="None for default gates")
    conditions: List[QualityGateCondition] = Field(default_factory=list)


class ConditionResult(BaseModel):
    """Outcome of one condition."""

    metric: str
    operator: Operator
    threshold: float
    scope: MetricScope
    value: Optional[float] = Field(default=None, description="None when metric absent")
    passed: bool
    evaluated: bool = Field(
        default=True,
        description="False when the metric was not measured",
    )


class GateEvaluation(BaseModel):
    """Verdict of a gate against one analysis's metrics."""

    status: GateStatus
    gate_id: Optional[str] = Field(default=None)
    gate_name: Optional[str] = Field(default=None)
    conditions: List[ConditionResult] = Field(default_factory=list)
    evaluated_at: datetime = Field(default_factory=datetime.now)

    @property
    def failed_conditions(self) -> List[ConditionResult]:
        return [c for c in self.conditions if not c.passed]


class TechnicalDebtResult(BaseModel):
    """Technical debt of an analysis."""

    remediation_cost: int = Field(ge=0, description="Minutes")
    development_cost: float = Field(ge=0, description="Minutes")
    debt_ratio: float = Field(ge=0, description="Percent")
    maintainability_rating: str = Field(description="A to E")
    formatted_remediation_time: str
