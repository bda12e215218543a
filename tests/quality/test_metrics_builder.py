"""Tests for issue metrics."""

from codegate.models.analysis_models import IssueStatus, IssueType, Severity
from codegate.quality.metrics_builder import ISSUE_METRIC_KEYS, MetricsBuilder


class TestMetricsBuilder:
    """Test issue counts per scope."""

    def setup_method(self):
        self.builder = MetricsBuilder()

    def test_counts_by_severity_and_type(self, issue_factory):
        issues = [
            issue_factory("i1", severity=Severity.BLOCKER, type=IssueType.BUG, is_new=True),
            issue_factory("i2", severity=Severity.MAJOR, type=IssueType.CODE_SMELL),
            issue_factory("i3", severity=Severity.MAJOR, type=IssueType.VULNERABILITY, is_new=True),
        ]

        metrics_all, metrics_new = self.builder.issue_metrics(issues)

        assert metrics_all["issues_total"] == 3
        assert metrics_all["blocker_issues"] == 1
        assert metrics_all["major_issues"] == 2
        assert metrics_all["bugs"] == 1
        assert metrics_all["vulnerabilities"] == 1
        assert metrics_new["issues_total"] == 2
        assert metrics_new["blocker_issues"] == 1
        assert metrics_new["code_smells"] == 0

    def test_only_open_issues_counted(self, issue_factory):
        issues = [
            issue_factory("i1", severity=Severity.BLOCKER, status=IssueStatus.FALSE_POSITIVE),
            issue_factory("i2", severity=Severity.BLOCKER, status=IssueStatus.ACCEPTED_RISK),
        ]

        metrics_all, _ = self.builder.issue_metrics(issues)

        assert metrics_all["blocker_issues"] == 0

    def test_all_keys_present_when_empty(self):
        """Test zero counts are measured, not absent."""
        metrics_all, metrics_new = self.builder.issue_metrics([])
        assert set(metrics_all) == set(ISSUE_METRIC_KEYS)
        assert all(v == 0.0 for v in metrics_new.values())

    def test_merge_measures(self):
        merged = self.builder.merge_measures(
            [{"ncloc": 100, "duplicated_blocks": 4}, {"ncloc": 50, "duplicated_blocks": 1}]
        )
        assert merged == {"ncloc": 100.0, "duplicated_blocks": 5.0}

    def test_size_measures_not_summed(self):
        """Test two analyzers reporting one snapshot's size count it once."""
        merged = self.builder.merge_measures(
            [{"ncloc": 1000, "loc": 1200}, {"ncloc": 1000, "lines_of_code": 900}]
        )
        assert merged == {"ncloc": 1000.0, "loc": 1200.0, "lines_of_code": 900.0}
