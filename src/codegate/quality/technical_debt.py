"""Technical debt and maintainability rating.

Debt ratio = remediation cost / development cost * 100, where development
cost assumes 0.576 minutes per line of code (30 days of 8h per 25000 lines).
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..coverage.base import round_half_up
from ..exceptions import ConfigError
from ..models.analysis_models import Issue, IssueStatus, Severity
from ..models.quality_models import TechnicalDebtResult

logger = logging.getLogger(__name__)

DEFAULT_REMEDIATION_MINUTES: Dict[Severity, int] = {
    Severity.INFO: 5,
    Severity.MINOR: 10,
    Severity.MAJOR: 20,
    Severity.CRITICAL: 60,
    Severity.BLOCKER: 120,
}

DEVELOPMENT_COST_PER_LINE = 0.576

# Upper bound of the debt ratio for each rating; anything above D is E
DEFAULT_RATING_THRESHOLDS: Dict[str, float] = {"A": 5.0, "B": 10.0, "C": 20.0, "D": 50.0}

RATINGS = ["A", "B", "C", "D", "E"]

MINUTES_PER_DAY = 8 * 60


def rating_value(rating: str) -> int:
    """Numeric form of a rating, A=1 to E=5."""
    return RATINGS.index(rating) + 1


def format_time(minutes: int) -> str:
    """
    Human readable remediation time with 8h days.

    Examples: "0min", "45min", "2h 30min", "1d 2h 30min"
    """
    if minutes <= 0:
        return "0min"

    days, remainder = divmod(int(minutes), MINUTES_PER_DAY)
    hours, mins = divmod(remainder, 60)

    parts: List[str] = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if mins:
        parts.append(f"{mins}min")
    return " ".join(parts)


class TechnicalDebtCalculator:
    """
    Computes remediation cost, debt ratio and maintainability rating.

    GOTCHA: Rating thresholds must be strictly increasing from A to D
    """

    def __init__(
        self,
        remediation_minutes: Optional[Dict[Severity, int]] = None,
        rating_thresholds: Optional[Dict[str, float]] = None,
    ):
        """
        Initialize calculator.

        Args:
            remediation_minutes: Minutes to fix one issue per severity
            rating_thresholds: Maximum debt ratio for ratings A to D

        Raises:
            ConfigError: If thresholds are missing or not increasing
        """
        self.remediation_minutes = dict(DEFAULT_REMEDIATION_MINUTES)
        if remediation_minutes:
            self.remediation_minutes.update(remediation_minutes)
        if any(v < 0 for v in self.remediation_minutes.values()):
            raise ConfigError("Remediation minutes must not be negative")

        self.rating_thresholds = self._validate_thresholds(
            rating_thresholds or DEFAULT_RATING_THRESHOLDS
        )

    def _validate_thresholds(self, thresholds: Dict[str, float]) -> List[Tuple[str, float]]:
        missing = [r for r in RATINGS[:-1] if r not in thresholds]
        if missing:
            raise ConfigError(
                "Rating thresholds incomplete", details={"missing": missing}
            )

        ordered = [(r, float(thresholds[r])) for r in RATINGS[:-1]]
        for (_, lower), (rating, upper) in zip(ordered, ordered[1:]):
            if upper <= lower:
                raise ConfigError(
                    "Rating thresholds must increase from A to D",
                    details={"rating": rating, "threshold": upper},
                )
        if ordered[0][1] < 0:
            raise ConfigError("Rating thresholds must not be negative")
        return ordered

    def rating(self, debt_ratio: float) -> str:
        for rating, upper in self.rating_thresholds:
            if debt_ratio <= upper:
                return rating
        return "E"

    def remediation_cost(self, issues: Iterable[Issue]) -> int:
        return sum(
            self.remediation_minutes[issue.severity]
            for issue in issues
            if issue.status == IssueStatus.OPEN
        )

    def calculate(self, issues: Iterable[Issue], lines_of_code: int) -> TechnicalDebtResult:
        """
        Calculate technical debt of a set of issues.

        Args:
            issues: Issues to price; only OPEN ones count
            lines_of_code: Size of the analyzed code base

        Returns:
            Technical debt result
        """
        remediation = self.remediation_cost(issues)
        development = max(lines_of_code, 0) * DEVELOPMENT_COST_PER_LINE
        ratio = remediation / development * 100 if development > 0 else 0.0
        ratio = round_half_up(ratio)

        return TechnicalDebtResult(
            remediation_cost=remediation,
            development_cost=round(development),
            debt_ratio=ratio,
            maintainability_rating=self.rating(ratio),
            formatted_remediation_time=format_time(remediation),
        )

    def metrics(self, result: TechnicalDebtResult) -> Dict[str, float]:
        """Metric map stored for an analysis."""
        return {
            "debt_ratio": result.debt_ratio,
            "remediation_cost": float(result.remediation_cost),
            "maintainability_rating": float(rating_value(result.maintainability_rating)),
        }
