"""Baseline analysis selection for new-issue detection."""

import logging
from datetime import datetime
from typing import List, Optional

from ..models.analysis_models import (
    Analysis,
    AnalysisStatus,
    LeakPeriodType,
    ProjectSettings,
)
from ..persistence.base import AnalysisStore

logger = logging.getLogger(__name__)


def parse_cutoff(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime; None when missing or invalid."""
    if not value:
        return None
    try:
        cutoff = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if cutoff.tzinfo is not None:
        cutoff = cutoff.astimezone().replace(tzinfo=None)
    return cutoff


class BaselineResolver:
    """
    Chooses the analysis new issues are compared against.

    PATTERN: Leak period strategy selected by project settings
    CRITICAL: Only SUCCESS analyses submitted no later than the current one
    GOTCHA: Missing baselines degrade to None, never to an error
    """

    def __init__(self, store: AnalysisStore):
        self.store = store

    async def resolve(
        self, analysis: Analysis, settings: Optional[ProjectSettings] = None
    ) -> Optional[Analysis]:
        """
        Resolve the baseline of an analysis.

        Args:
            analysis: Analysis being classified
            settings: Leak period settings; LAST_ANALYSIS when omitted

        Returns:
            Baseline analysis, or None when no candidate exists
        """
        leak_type = settings.leak_period_type if settings else LeakPeriodType.LAST_ANALYSIS
        leak_value = settings.leak_period_value if settings else None

        if leak_type == LeakPeriodType.BASE_BRANCH:
            if not leak_value:
                logger.debug(f"No base branch configured for project {analysis.project_id}")
                return None
            return self._latest(await self._candidates(analysis, leak_value.strip()))

        branch = self._reference_branch(analysis)
        if branch is None:
            return None
        candidates = await self._candidates(analysis, branch)

        if leak_type == LeakPeriodType.DATE:
            cutoff = parse_cutoff(leak_value)
            if cutoff is None:
                logger.warning(
                    f"Invalid leak period date {leak_value!r} for project {analysis.project_id}"
                )
                return None
            candidates = [
                c for c in candidates if c.finished_at is not None and c.finished_at <= cutoff
            ]

        return self._latest(candidates)

    def _reference_branch(self, analysis: Analysis) -> Optional[str]:
        if analysis.pull_request is not None:
            return analysis.pull_request.target_branch
        return analysis.branch

    async def _candidates(self, analysis: Analysis, branch: str) -> List[Analysis]:
        analyses = await self.store.list_analyses(
            analysis.project_id, status=AnalysisStatus.SUCCESS, branch=branch
        )
        return [
            a
            for a in analyses
            if a.id != analysis.id
            and a.pull_request is None
            and a.submitted_at <= analysis.submitted_at
        ]

    def _latest(self, candidates: List[Analysis]) -> Optional[Analysis]:
        if not candidates:
            return None
        return max(
            candidates,
            key=lambda a: (a.finished_at or datetime.min, a.submitted_at),
        )
