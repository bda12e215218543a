"""Analysis lifecycle transitions."""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Set

from ..exceptions import InvalidTransitionError, NotFoundError
from ..models.analysis_models import Analysis, AnalysisStatus
from ..persistence.base import AnalysisStore

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[AnalysisStatus, Set[AnalysisStatus]] = {
    AnalysisStatus.PENDING: {AnalysisStatus.RUNNING},
    AnalysisStatus.RUNNING: {AnalysisStatus.SUCCESS, AnalysisStatus.FAILED},
    AnalysisStatus.SUCCESS: set(),
    AnalysisStatus.FAILED: set(),
}


class AnalysisStateMachine:
    """
    Applies PENDING -> RUNNING -> {SUCCESS, FAILED} and nothing else.

    CRITICAL: started_at is set on RUNNING, finished_at on terminal states
    """

    def __init__(self, store: AnalysisStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._clock = clock or datetime.now

    @staticmethod
    def can_transition(current: AnalysisStatus, target: AnalysisStatus) -> bool:
        return target in TRANSITIONS[current]

    def apply(self, analysis: Analysis, target: AnalysisStatus, **fields) -> Analysis:
        """
        Return a copy of the analysis in the target state.

        Args:
            analysis: Current analysis
            target: Desired state
            **fields: Extra fields recorded with the transition

        Raises:
            InvalidTransitionError: If the lifecycle forbids the move
        """
        if not self.can_transition(analysis.status, target):
            raise InvalidTransitionError(
                f"Analysis {analysis.id} cannot move from "
                f"{analysis.status.value} to {target.value}",
                details={"analysis_id": analysis.id},
            )

        updates = dict(fields)
        updates["status"] = target
        now = self._clock()
        if target == AnalysisStatus.RUNNING:
            updates["started_at"] = now
        if target.is_terminal:
            updates["finished_at"] = now
        return analysis.model_copy(update=updates)

    async def transition(
        self, analysis_id: str, target: AnalysisStatus, **fields
    ) -> Analysis:
        """
        Load, transition and save an analysis.

        Raises:
            NotFoundError: If the analysis does not exist
            InvalidTransitionError: If the lifecycle forbids the move
        """
        analysis = await self.store.get_analysis(analysis_id)
        if analysis is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")

        updated = self.apply(analysis, target, **fields)
        await self.store.update_analysis(updated)
        logger.info(
            f"Analysis {analysis_id}: {analysis.status.value} -> {target.value}"
        )
        return updated

    async def fail(self, analysis_id: str, reason: str) -> Analysis:
        """
        Move an analysis to FAILED, passing through RUNNING if it never started.

        Terminal analyses are returned unchanged.
        """
        analysis = await self.store.get_analysis(analysis_id)
        if analysis is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")
        if analysis.status.is_terminal:
            logger.warning(
                f"Analysis {analysis_id} already {analysis.status.value}; not marking FAILED"
            )
            return analysis

        if analysis.status == AnalysisStatus.PENDING:
            analysis = self.apply(analysis, AnalysisStatus.RUNNING)
        updated = self.apply(analysis, AnalysisStatus.FAILED, failure_reason=reason)
        await self.store.update_analysis(updated)
        logger.info(f"Analysis {analysis_id} FAILED: {reason}")
        return updated
