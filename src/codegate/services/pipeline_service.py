"""Pipeline service facade exposed to API layers.

PATTERN: Facade over orchestrator, ingestion, store and gate evaluation
CRITICAL: Errors surface as PipelineError subclasses carrying http_status
GOTCHA: Gate results reflect issue resolutions made after the analysis ran
"""

import logging
from typing import Any, Dict, List, Optional, Union

from ..config.gate_config import GateConfigLoader
from ..config.pipeline_config import PipelineConfig
from ..coverage.base import RawReport
from ..coverage.ingestion import CoverageIngestionService
from ..exceptions import NotFoundError
from ..models.analysis_models import (
    Analysis,
    AnalysisSubmission,
    Issue,
    IssueResolution,
    IssueStatus,
    IssueType,
    ProjectSettings,
    Severity,
    SubmissionReceipt,
)
from ..models.coverage_models import CoverageFormat, CoverageReport
from ..models.job_models import JobHandle, JobKind
from ..models.quality_models import MetricScope, QualityGate
from ..monitoring.metrics import PipelineMetrics
from ..persistence.base import AnalysisStore
from ..quality.gate_engine import QualityGateEvaluator
from ..quality.metrics_builder import MetricsBuilder
from ..quality.technical_debt import TechnicalDebtCalculator
from ..queue.base import BaseJobQueue
from ..storage.base import ObjectStorage
from .gate_resolver import GateResolver
from .job_handlers import LINES_OF_CODE_MEASURES
from .orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)


class PipelineService:
    """Entry points for submission, coverage upload, gates, issues and metrics."""

    def __init__(
        self,
        config: PipelineConfig,
        store: AnalysisStore,
        storage: ObjectStorage,
        queue: BaseJobQueue,
        gate_config: Optional[GateConfigLoader] = None,
        metrics: Optional[PipelineMetrics] = None,
    ):
        """
        Initialize service.

        Args:
            config: Pipeline configuration
            store: System of record
            storage: Object storage
            queue: Job queue
            gate_config: Configured default and project gates
            metrics: Operational metrics; disabled metrics when omitted
        """
        self.logger = logger
        self.config = config
        self.store = store
        self.queue = queue
        self.metrics = metrics or PipelineMetrics(enabled=config.metrics_enabled)
        self.gate_config = gate_config
        self.gates = GateResolver(store, gate_config)
        self.debt_calculator = (
            gate_config.debt_calculator() if gate_config else TechnicalDebtCalculator()
        )
        self.orchestrator = PipelineOrchestrator(
            config, store, storage, queue, metrics=self.metrics
        )
        self.coverage = CoverageIngestionService(store)
        self.evaluator = QualityGateEvaluator()
        self.builder = MetricsBuilder()

    # Submission and status

    async def submit_analysis(self, submission: AnalysisSubmission) -> SubmissionReceipt:
        return await self.orchestrator.submit(submission)

    async def get_analysis(self, analysis_id: str) -> Analysis:
        analysis = await self.store.get_analysis(analysis_id)
        if analysis is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")
        return analysis

    async def configure_project(self, settings: ProjectSettings) -> None:
        await self.store.save_project_settings(settings)

    async def set_quality_gate(self, gate: QualityGate) -> None:
        await self.store.save_quality_gate(gate)

    # Coverage

    async def upload_coverage(
        self,
        analysis_id: str,
        format: Union[CoverageFormat, str],
        raw: RawReport,
    ) -> CoverageReport:
        """
        Ingest a coverage report for an analysis.

        Raises:
            NotFoundError, UnsupportedFormatError, CoverageParseError, ConflictError
        """
        report = await self.coverage.ingest(analysis_id, format, raw)
        self.metrics.increment("coverage_reports_total", labels={"format": report.format.value})
        return report

    async def get_coverage(self, analysis_id: str) -> CoverageReport:
        return await self.coverage.get_report(analysis_id)

    async def get_file_coverage(self, analysis_id: str, file_path: str) -> Dict[str, Any]:
        return await self.coverage.get_file_coverage(analysis_id, file_path)

    async def get_coverage_trend(
        self, project_id: str, branch: Optional[str] = None, limit: int = 20
    ) -> List[Dict[str, Any]]:
        return await self.coverage.get_trend(project_id, branch, limit)

    # Quality gate

    async def _current_metrics(self, analysis_id: str):
        issues = await self.store.list_issues(analysis_id)
        live_all, live_new = self.builder.issue_metrics(issues)
        metrics = await self.store.get_metrics(analysis_id, MetricScope.ALL)
        metrics_new = await self.store.get_metrics(analysis_id, MetricScope.NEW)
        metrics.update(live_all)
        metrics_new.update(live_new)
        return metrics, metrics_new

    async def get_quality_gate(self, analysis_id: str) -> Dict[str, Any]:
        """
        Evaluate the project's gate against an analysis.

        Returns:
            {status, gate, conditions, metrics, metricsNew, analysisStatus}

        Raises:
            NotFoundError: If the analysis or a gate is missing
        """
        analysis = await self.get_analysis(analysis_id)
        gate = await self.gates.resolve(analysis.project_id)
        if gate is None:
            raise NotFoundError(f"No quality gate configured for project {analysis.project_id}")

        metrics, metrics_new = await self._current_metrics(analysis_id)
        evaluation = self.evaluator.evaluate(gate, metrics, metrics_new)

        return {
            "status": evaluation.status.value,
            "analysisStatus": analysis.status.value,
            "gate": {"id": gate.id, "name": gate.name},
            "conditions": [c.model_dump(mode="json") for c in evaluation.conditions],
            "metrics": metrics,
            "metricsNew": metrics_new,
        }

    # Issues

    async def list_issues(
        self,
        analysis_id: str,
        only_new: bool = False,
        severity: Optional[Severity] = None,
        type: Optional[IssueType] = None,
        status: Optional[IssueStatus] = None,
    ) -> List[Issue]:
        """List issues of an analysis, most severe first."""
        await self.get_analysis(analysis_id)
        issues = await self.store.list_issues(analysis_id, status=status, only_new=only_new)
        issues = [
            i
            for i in issues
            if (severity is None or i.severity == severity) and (type is None or i.type == type)
        ]
        issues.sort(key=lambda i: (-i.severity.rank, i.file_path, i.line or 0))
        return issues

    async def resolve_issue(
        self,
        issue_id: str,
        status: IssueStatus,
        comment: Optional[str] = None,
        author: Optional[str] = None,
    ) -> Issue:
        """
        Record a human resolution. Only the status changes, never is_new.

        Raises:
            NotFoundError: If the issue does not exist
        """
        issue = await self.store.update_issue_status(issue_id, status)
        await self.store.add_resolution(
            IssueResolution(issue_id=issue_id, status=status, comment=comment, author=author)
        )
        self.logger.info(f"Issue {issue_id} marked {status.value} by {author or 'unknown'}")
        return issue

    async def get_issue_resolutions(self, issue_id: str) -> List[IssueResolution]:
        return await self.store.list_resolutions(issue_id)

    async def request_issue_fix(
        self, issue_id: str, requested_by: Optional[str] = None
    ) -> JobHandle:
        """Queue an automated fix for an issue."""
        issue = await self.store.get_issue(issue_id)
        if issue is None:
            raise NotFoundError(f"Issue {issue_id} not found")
        return await self.queue.enqueue(
            JobKind.RESOLVE_ISSUE,
            {
                "issue_id": issue_id,
                "analysis_id": issue.analysis_id,
                "requested_by": requested_by,
            },
        )

    # Technical debt

    async def get_technical_debt(self, analysis_id: str) -> Dict[str, Any]:
        """Technical debt over the analysis's currently OPEN issues."""
        await self.get_analysis(analysis_id)
        issues = await self.store.list_issues(analysis_id)
        measures = await self.store.get_metrics(analysis_id, MetricScope.ALL)

        lines_of_code = self.config.default_lines_of_code
        for key in LINES_OF_CODE_MEASURES:
            if measures.get(key):
                lines_of_code = int(measures[key])
                break

        debt = self.debt_calculator.calculate(issues, lines_of_code)
        new_debt = self.debt_calculator.calculate(
            [i for i in issues if i.is_new], lines_of_code
        )
        return {
            **debt.model_dump(),
            "lines_of_code": lines_of_code,
            "new": new_debt.model_dump(),
        }

    # Operational metrics

    def get_operational_metrics(self) -> Dict[str, Any]:
        return self.metrics.snapshot()

    def render_metrics(self) -> str:
        return self.metrics.render()
