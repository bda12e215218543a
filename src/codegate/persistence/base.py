"""Abstract base class for the analysis system of record."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..models.analysis_models import (
    Analysis,
    AnalysisStatus,
    Issue,
    IssueResolution,
    IssueStatus,
    ProjectSettings,
)
from ..models.coverage_models import CoverageReport
from ..models.quality_models import MetricScope, QualityGate


class AnalysisStore(ABC):
    """
    Persistence interface for analyses, issues, coverage, metrics and gates.

    PATTERN: Async interface, backend chooses how to block
    CRITICAL: Coverage reports are write-once per analysis
    GOTCHA: Returned models are copies; mutate and save, never share
    """

    # Analyses

    @abstractmethod
    async def create_analysis(self, analysis: Analysis) -> Analysis:
        pass

    @abstractmethod
    async def get_analysis(self, analysis_id: str) -> Optional[Analysis]:
        pass

    @abstractmethod
    async def update_analysis(self, analysis: Analysis) -> Analysis:
        """
        Replace a stored analysis.

        Raises:
            NotFoundError: If the analysis does not exist
        """
        pass

    @abstractmethod
    async def list_analyses(
        self,
        project_id: str,
        status: Optional[AnalysisStatus] = None,
        branch: Optional[str] = None,
    ) -> List[Analysis]:
        """
        List analyses of a project, newest submission first.

        Args:
            project_id: Project identifier
            status: Only analyses in this state
            branch: Only analyses whose effective branch matches
        """
        pass

    @abstractmethod
    async def count_analyses(self, status: AnalysisStatus) -> int:
        pass

    # Project settings and gates

    @abstractmethod
    async def get_project_settings(self, project_id: str) -> Optional[ProjectSettings]:
        pass

    @abstractmethod
    async def save_project_settings(self, settings: ProjectSettings) -> None:
        pass

    @abstractmethod
    async def get_quality_gate(self, project_id: str) -> Optional[QualityGate]:
        pass

    @abstractmethod
    async def save_quality_gate(self, gate: QualityGate) -> None:
        pass

    # Issues

    @abstractmethod
    async def save_issues(self, issues: List[Issue]) -> None:
        pass

    @abstractmethod
    async def list_issues(
        self,
        analysis_id: str,
        status: Optional[IssueStatus] = None,
        only_new: bool = False,
    ) -> List[Issue]:
        pass

    @abstractmethod
    async def get_issue(self, issue_id: str) -> Optional[Issue]:
        pass

    @abstractmethod
    async def update_issue_status(self, issue_id: str, status: IssueStatus) -> Issue:
        """
        Change an issue's status. is_new is never touched.

        Raises:
            NotFoundError: If the issue does not exist
        """
        pass

    @abstractmethod
    async def add_resolution(self, resolution: IssueResolution) -> None:
        pass

    @abstractmethod
    async def list_resolutions(self, issue_id: str) -> List[IssueResolution]:
        pass

    # Coverage and metrics

    @abstractmethod
    async def save_coverage_report(self, report: CoverageReport) -> CoverageReport:
        """
        Store the coverage report of an analysis.

        Raises:
            ConflictError: If the analysis already has a report
        """
        pass

    @abstractmethod
    async def get_coverage_report(self, analysis_id: str) -> Optional[CoverageReport]:
        pass

    @abstractmethod
    async def save_metrics(
        self, analysis_id: str, scope: MetricScope, metrics: Dict[str, float]
    ) -> None:
        """Upsert metric values; keys not given keep their stored value."""
        pass

    @abstractmethod
    async def get_metrics(self, analysis_id: str, scope: MetricScope) -> Dict[str, float]:
        pass

    async def close(self) -> None:
        pass
