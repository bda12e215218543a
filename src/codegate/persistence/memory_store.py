"""In-memory system of record for development and tests."""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from ..exceptions import ConflictError, InputError, NotFoundError
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
from .base import AnalysisStore

logger = logging.getLogger(__name__)


class InMemoryAnalysisStore(AnalysisStore):
    """Dictionary-backed store. Everything is copied in and out."""

    def __init__(self):
        self._analyses: Dict[str, Analysis] = {}
        self._issues: Dict[str, Issue] = {}
        self._resolutions: Dict[str, List[IssueResolution]] = defaultdict(list)
        self._coverage: Dict[str, CoverageReport] = {}
        self._metrics: Dict[Tuple[str, MetricScope], Dict[str, float]] = defaultdict(dict)
        self._settings: Dict[str, ProjectSettings] = {}
        self._gates: Dict[str, QualityGate] = {}

    async def create_analysis(self, analysis: Analysis) -> Analysis:
        if analysis.id in self._analyses:
            raise ConflictError(f"Analysis {analysis.id} already exists")
        self._analyses[analysis.id] = analysis.model_copy(deep=True)
        return analysis

    async def get_analysis(self, analysis_id: str) -> Optional[Analysis]:
        analysis = self._analyses.get(analysis_id)
        return analysis.model_copy(deep=True) if analysis else None

    async def update_analysis(self, analysis: Analysis) -> Analysis:
        if analysis.id not in self._analyses:
            raise NotFoundError(f"Analysis {analysis.id} not found")
        self._analyses[analysis.id] = analysis.model_copy(deep=True)
        return analysis

    async def list_analyses(
        self,
        project_id: str,
        status: Optional[AnalysisStatus] = None,
        branch: Optional[str] = None,
    ) -> List[Analysis]:
        results = [
            a.model_copy(deep=True)
            for a in self._analyses.values()
            if a.project_id == project_id
            and (status is None or a.status == status)
            and (branch is None or a.effective_branch == branch)
        ]
        results.sort(key=lambda a: a.submitted_at, reverse=True)
        return results

    async def count_analyses(self, status: AnalysisStatus) -> int:
        return sum(1 for a in self._analyses.values() if a.status == status)

    async def get_project_settings(self, project_id: str) -> Optional[ProjectSettings]:
        settings = self._settings.get(project_id)
        return settings.model_copy() if settings else None

    async def save_project_settings(self, settings: ProjectSettings) -> None:
        self._settings[settings.project_id] = settings.model_copy()

    async def get_quality_gate(self, project_id: str) -> Optional[QualityGate]:
        gate = self._gates.get(project_id)
        return gate.model_copy(deep=True) if gate else None

    async def save_quality_gate(self, gate: QualityGate) -> None:
        if gate.project_id is None:
            raise InputError("Only project gates are stored; default gates come from config")
        self._gates[gate.project_id] = gate.model_copy(deep=True)

    async def save_issues(self, issues: List[Issue]) -> None:
        for issue in issues:
            self._issues[issue.id] = issue.model_copy()

    async def list_issues(
        self,
        analysis_id: str,
        status: Optional[IssueStatus] = None,
        only_new: bool = False,
    ) -> List[Issue]:
        return [
            i.model_copy()
            for i in self._issues.values()
            if i.analysis_id == analysis_id
            and (status is None or i.status == status)
            and (not only_new or i.is_new)
        ]

    async def get_issue(self, issue_id: str) -> Optional[Issue]:
        issue = self._issues.get(issue_id)
        return issue.model_copy() if issue else None

    async def update_issue_status(self, issue_id: str, status: IssueStatus) -> Issue:
        issue = self._issues.get(issue_id)
        if issue is None:
            raise NotFoundError(f"Issue {issue_id} not found")
        updated = issue.model_copy(update={"status": status})
        self._issues[issue_id] = updated
        return updated.model_copy()

    async def add_resolution(self, resolution: IssueResolution) -> None:
        self._resolutions[resolution.issue_id].append(resolution.model_copy())

    async def list_resolutions(self, issue_id: str) -> List[IssueResolution]:
        return [r.model_copy() for r in self._resolutions.get(issue_id, [])]

    async def save_coverage_report(self, report: CoverageReport) -> CoverageReport:
        if report.analysis_id in self._coverage:
            raise ConflictError(
                f"Coverage report already exists for analysis {report.analysis_id}"
            )
        self._coverage[report.analysis_id] = report.model_copy(deep=True)
        return report

    async def get_coverage_report(self, analysis_id: str) -> Optional[CoverageReport]:
        report = self._coverage.get(analysis_id)
        return report.model_copy(deep=True) if report else None

    async def save_metrics(
        self, analysis_id: str, scope: MetricScope, metrics: Dict[str, float]
    ) -> None:
        self._metrics[(analysis_id, scope)].update(
            {k: float(v) for k, v in metrics.items()}
        )

    async def get_metrics(self, analysis_id: str, scope: MetricScope) -> Dict[str, float]:
        return dict(self._metrics.get((analysis_id, scope), {}))
