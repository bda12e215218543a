"""New versus pre-existing issue classification."""

from typing import Iterable, List, Optional, Set

from ..models.analysis_models import Issue, IssueStatus


class IssueDiffer:
    """
    Marks issues new when their fingerprint is absent from the baseline.

    PATTERN: Pure function over two issue sets
    GOTCHA: Only OPEN baseline issues count; a resolved issue that comes back is new
    """

    def baseline_fingerprints(self, baseline: Iterable[Issue]) -> Set[str]:
        return {issue.fingerprint for issue in baseline if issue.status == IssueStatus.OPEN}

    def diff(self, current: List[Issue], baseline: Optional[List[Issue]]) -> List[Issue]:
        """
        Classify current issues against a baseline.

        Args:
            current: Issues of the analysis being classified
            baseline: Issues of the baseline analysis, None when there is none

        Returns:
            Copies of current with is_new set
        """
        if baseline is None:
            return [issue.model_copy(update={"is_new": True}) for issue in current]

        known = self.baseline_fingerprints(baseline)
        return [
            issue.model_copy(update={"is_new": issue.fingerprint not in known})
            for issue in current
        ]
