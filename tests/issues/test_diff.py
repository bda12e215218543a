"""Tests for new issue classification."""

from codegate.issues.diff import IssueDiffer
from codegate.models.analysis_models import IssueStatus


class TestIssueDiffer:
    """Test diff against baseline fingerprints."""

    def setup_method(self):
        self.differ = IssueDiffer()

    def test_no_baseline_everything_new(self, issue_factory):
        current = [issue_factory("i1"), issue_factory("i2", rule_key="no-undef")]

        result = self.differ.diff(current, None)

        assert all(issue.is_new for issue in result)

    def test_empty_baseline_everything_new(self, issue_factory):
        result = self.differ.diff([issue_factory("i1")], [])
        assert result[0].is_new

    def test_matching_fingerprint_not_new(self, issue_factory):
        """Test an issue present in the baseline is pre-existing."""
        baseline = [issue_factory("b1", analysis_id="base")]
        current = [
            issue_factory("i1", analysis_id="head"),
            issue_factory("i2", analysis_id="head", rule_key="no-undef"),
        ]

        result = self.differ.diff(current, baseline)

        assert [issue.is_new for issue in result] == [False, True]

    def test_moved_within_bucket_not_new(self, issue_factory):
        baseline = [issue_factory("b1", line=12)]
        result = self.differ.diff([issue_factory("i1", line=15)], baseline)
        assert not result[0].is_new

    def test_resolved_baseline_issue_does_not_count(self, issue_factory):
        """Test only OPEN baseline issues suppress new classification."""
        baseline = [issue_factory("b1", status=IssueStatus.RESOLVED)]
        result = self.differ.diff([issue_factory("i1")], baseline)
        assert result[0].is_new

    def test_idempotent(self, issue_factory):
        baseline = [issue_factory("b1")]
        current = [issue_factory("i1"), issue_factory("i2", file_path="src/b.py")]

        first = self.differ.diff(current, baseline)
        second = self.differ.diff(first, baseline)

        assert [i.is_new for i in first] == [i.is_new for i in second]

    def test_inputs_not_mutated(self, issue_factory):
        current = [issue_factory("i1")]
        self.differ.diff(current, None)
        assert current[0].is_new is False
