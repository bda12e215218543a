"""Quality gate evaluation.

PATTERN: Pure evaluation of independent conditions
CRITICAL: A condition FAILS when its comparison holds (GT fails when value > threshold)
GOTCHA: A metric that was never measured passes and is flagged not evaluated
"""

import logging
from typing import Dict, Optional

from ..models.quality_models import (
    ConditionResult,
    GateEvaluation,
    GateStatus,
    MetricScope,
    Operator,
    QualityGate,
    QualityGateCondition,
)

logger = logging.getLogger(__name__)

Metrics = Dict[str, float]


def violates(operator: Operator, value: float, threshold: float) -> bool:
    """True when the value breaks the condition."""
    if operator == Operator.GT:
        return value > threshold
    if operator == Operator.LT:
        return value < threshold
    if operator == Operator.EQ:
        return value == threshold
    raise ValueError(f"Unknown operator: {operator}")


class QualityGateEvaluator:
    """Evaluates a quality gate against the metric sets of one analysis."""

    def __init__(self):
        self.logger = logger

    def evaluate_condition(
        self,
        condition: QualityGateCondition,
        metrics: Metrics,
        metrics_new: Optional[Metrics] = None,
    ) -> ConditionResult:
        """
        Evaluate one condition.

        Args:
            condition: Condition to check
            metrics: ALL-scope metrics
            metrics_new: NEW-scope metrics

        Returns:
            Condition outcome
        """
        source = metrics if condition.scope == MetricScope.ALL else (metrics_new or {})
        value = source.get(condition.metric)

        if value is None:
            return ConditionResult(
                metric=condition.metric,
                operator=condition.operator,
                threshold=condition.threshold,
                scope=condition.scope,
                value=None,
                passed=True,
                evaluated=False,
            )

        value = float(value)
        return ConditionResult(
            metric=condition.metric,
            operator=condition.operator,
            threshold=condition.threshold,
            scope=condition.scope,
            value=value,
            passed=not violates(condition.operator, value, condition.threshold),
            evaluated=True,
        )

    def evaluate(
        self,
        gate: QualityGate,
        metrics: Metrics,
        metrics_new: Optional[Metrics] = None,
    ) -> GateEvaluation:
        """
        Evaluate every condition of a gate.

        Args:
            gate: Gate to apply
            metrics: ALL-scope metrics
            metrics_new: NEW-scope metrics

        Returns:
            FAIL if any condition fails, PASS otherwise
        """
        results = [
            self.evaluate_condition(condition, metrics, metrics_new)
            for condition in gate.conditions
        ]
        status = GateStatus.PASS if all(r.passed for r in results) else GateStatus.FAIL

        skipped = [r.metric for r in results if not r.evaluated]
        if skipped:
            self.logger.debug(f"Gate {gate.name}: unmeasured metrics {skipped}")

        return GateEvaluation(
            status=status,
            gate_id=gate.id,
            gate_name=gate.name,
            conditions=results,
        )
