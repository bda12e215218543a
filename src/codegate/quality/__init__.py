"""Quality gate evaluation, issue metrics and technical debt."""

from .gate_engine import QualityGateEvaluator, violates
from .metrics_builder import ISSUE_METRIC_KEYS, MetricsBuilder
from .technical_debt import TechnicalDebtCalculator, format_time, rating_value

__all__ = [
    "QualityGateEvaluator",
    "violates",
    "ISSUE_METRIC_KEYS",
    "MetricsBuilder",
    "TechnicalDebtCalculator",
    "format_time",
    "rating_value",
]
