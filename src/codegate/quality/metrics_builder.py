"""Issue count metrics per scope."""

from typing import Dict, Iterable, Mapping, Tuple

from ..models.analysis_models import Issue, IssueStatus, IssueType, Severity

SEVERITY_METRICS = {
    Severity.BLOCKER: "blocker_issues",
    Severity.CRITICAL: "critical_issues",
    Severity.MAJOR: "major_issues",
    Severity.MINOR: "minor_issues",
    Severity.INFO: "info_issues",
}

TYPE_METRICS = {
    IssueType.BUG: "bugs",
    IssueType.CODE_SMELL: "code_smells",
    IssueType.VULNERABILITY: "vulnerabilities",
}

ISSUE_METRIC_KEYS = (
    ["issues_total"] + list(SEVERITY_METRICS.values()) + list(TYPE_METRICS.values())
)

# Code base size measures; merged by maximum across analyzer reports
SIZE_MEASURES = ("ncloc", "lines_of_code", "loc")


class MetricsBuilder:
    """Builds ALL and NEW metric maps from issues and analyzer measures."""

    def _empty(self) -> Dict[str, float]:
        return {key: 0.0 for key in ISSUE_METRIC_KEYS}

    def _add(self, target: Dict[str, float], issue: Issue) -> None:
        target["issues_total"] += 1
        target[SEVERITY_METRICS[issue.severity]] += 1
        target[TYPE_METRICS[issue.type]] += 1

    def issue_metrics(
        self, issues: Iterable[Issue]
    ) -> Tuple[Dict[str, float], Dict[str, float]]:
        """
        Count OPEN issues by severity and type.

        Args:
            issues: Classified issues of one analysis

        Returns:
            (ALL metrics, NEW metrics); NEW counts issues with is_new set
        """
        metrics_all = self._empty()
        metrics_new = self._empty()

        for issue in issues:
            if issue.status != IssueStatus.OPEN:
                continue
            self._add(metrics_all, issue)
            if issue.is_new:
                self._add(metrics_new, issue)

        return metrics_all, metrics_new

    def merge_measures(self, reports_measures: Iterable[Mapping[str, float]]) -> Dict[str, float]:
        """
        Combine the numeric measures of several analyzer reports.

        Size measures keep the largest reported value; other measures are
        summed across reports.

        Args:
            reports_measures: Measures of each analyzer report

        Returns:
            Merged measures
        """
        merged: Dict[str, float] = {}
        for measures in reports_measures:
            for key, value in measures.items():
                value = float(value)
                if key in SIZE_MEASURES:
                    merged[key] = max(merged.get(key, 0.0), value)
                else:
                    merged[key] = merged.get(key, 0.0) + value
        return merged
