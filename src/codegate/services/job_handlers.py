"""Handlers for analysis and issue remediation jobs.

PATTERN: One handler per job kind, registered in the worker's lookup table
CRITICAL: Any failure propagates so the queue retries the job
GOTCHA: Jobs may be delivered twice; issues are written once per analysis
"""

import asyncio
import logging
import time
import uuid
from typing import List, Optional

from ..config.pipeline_config import PipelineConfig
from ..exceptions import AnalyzerExecutionError, InvalidSubmissionError, NotFoundError
from ..analyzers.base import AnalyzerRunner, IssueRemediator
from ..issues.diff import IssueDiffer
from ..issues.fingerprint import compute_fingerprint
from ..issues.report import AnalyzerReport, parse_report
from ..models.analysis_models import (
    Analysis,
    AnalysisStatus,
    AnalyzerSpec,
    Issue,
    IssueResolution,
    IssueStatus,
)
from ..models.job_models import Job
from ..models.quality_models import MetricScope
from ..monitoring.metrics import PipelineMetrics
from ..persistence.base import AnalysisStore
from ..quality.gate_engine import QualityGateEvaluator
from ..quality.metrics_builder import SIZE_MEASURES, MetricsBuilder
from ..quality.technical_debt import TechnicalDebtCalculator
from ..queue.worker import JobHandler
from ..storage.base import ObjectStorage
from .gate_resolver import GateResolver
from .state_machine import AnalysisStateMachine

logger = logging.getLogger(__name__)

# Size measures read as the code base size, in order of preference
LINES_OF_CODE_MEASURES = SIZE_MEASURES


class AnalysisJobHandler(JobHandler):
    """
    Runs an analysis job end to end.

    Steps: RUNNING, collect reports, fingerprint, diff against the baseline,
    persist issues, save metrics and debt, evaluate the gate, SUCCESS.
    """

    def __init__(
        self,
        config: PipelineConfig,
        store: AnalysisStore,
        storage: ObjectStorage,
        gates: GateResolver,
        runner: Optional[AnalyzerRunner] = None,
        debt_calculator: Optional[TechnicalDebtCalculator] = None,
        metrics: Optional[PipelineMetrics] = None,
    ):
        """
        Initialize handler.

        Args:
            config: Pipeline configuration
            store: System of record
            storage: Object storage holding snapshots and reports
            gates: Quality gate lookup
            runner: Analyzer runner; required for snapshot submissions
            debt_calculator: Technical debt settings
            metrics: Optional metrics sink
        """
        self.logger = logger
        self.config = config
        self.store = store
        self.storage = storage
        self.gates = gates
        self.runner = runner
        self.debt_calculator = debt_calculator or TechnicalDebtCalculator()
        self.metrics = metrics
        self.state_machine = AnalysisStateMachine(store)
        self.differ = IssueDiffer()
        self.builder = MetricsBuilder()
        self.evaluator = QualityGateEvaluator()

    async def handle(self, job: Job) -> None:
        analysis_id = job.payload.get("analysis_id")
        if not analysis_id:
            raise InvalidSubmissionError("Analysis job without analysis_id", details={"job": job.id})

        analysis = await self.store.get_analysis(analysis_id)
        if analysis is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")
        if analysis.status.is_terminal:
            self.logger.warning(
                f"Analysis {analysis_id} already {analysis.status.value}; skipping job {job.id}"
            )
            return

        if analysis.status == AnalysisStatus.PENDING:
            analysis = await self.state_machine.transition(analysis_id, AnalysisStatus.RUNNING)

        started = time.monotonic()
        reports = await self._collect_reports(job, analysis)
        issues = await self._persist_issues(analysis, reports)

        metrics_all, metrics_new = self.builder.issue_metrics(issues)
        measures = self.builder.merge_measures(r.measures for r in reports)
        lines_of_code = self._lines_of_code(measures)

        debt = self.debt_calculator.calculate(issues, lines_of_code)
        new_debt = self.debt_calculator.calculate([i for i in issues if i.is_new], lines_of_code)

        await self.store.save_metrics(
            analysis_id,
            MetricScope.ALL,
            {**measures, **metrics_all, **self.debt_calculator.metrics(debt)},
        )
        await self.store.save_metrics(
            analysis_id,
            MetricScope.NEW,
            {**metrics_new, **self.debt_calculator.metrics(new_debt)},
        )

        gate_status = await self._evaluate_gate(analysis)

        await self.state_machine.transition(
            analysis_id,
            AnalysisStatus.SUCCESS,
            gate_status=gate_status,
            debt_ratio=debt.debt_ratio,
            remediation_cost=debt.remediation_cost,
            maintainability_rating=debt.maintainability_rating,
        )

        if self.metrics:
            self.metrics.observe("analysis_duration_seconds", time.monotonic() - started)
            self.metrics.increment("analyses_finished_total", labels={"status": "SUCCESS"})

        self.logger.info(
            f"Analysis {analysis_id} finished: {len(issues)} issues "
            f"({int(metrics_new['issues_total'])} new), gate {gate_status or 'n/a'}"
        )

    async def on_exhausted(self, job: Job, error: Exception) -> None:
        analysis_id = job.payload.get("analysis_id")
        if not analysis_id:
            return
        try:
            await self.state_machine.fail(analysis_id, f"{type(error).__name__}: {error}")
        except NotFoundError:
            self.logger.error(f"Analysis {analysis_id} vanished before it could be failed")
            return

        if self.metrics:
            self.metrics.increment("analyses_finished_total", labels={"status": "FAILED"})

    async def _collect_reports(self, job: Job, analysis: Analysis) -> List[AnalyzerReport]:
        report_key = job.payload.get("report_key")
        if report_key:
            raw = await self.storage.get(self.config.reports_bucket, report_key)
            return [parse_report(raw)]

        source_key = job.payload.get("source_key")
        if not source_key:
            raise InvalidSubmissionError(
                "Analysis job carries neither a snapshot nor a report",
                details={"job": job.id},
            )
        if self.runner is None:
            raise AnalyzerExecutionError("No analyzer runner configured")

        snapshot = await self.storage.get(self.config.sources_bucket, source_key)
        analyzers = [AnalyzerSpec.model_validate(a) for a in job.payload.get("analyzers", [])]

        reports = []
        for analyzer in analyzers:
            try:
                raw = await asyncio.wait_for(
                    self.runner.run(analyzer, snapshot, analysis),
                    timeout=self.config.analyzer_timeout,
                )
            except asyncio.TimeoutError as e:
                raise AnalyzerExecutionError(
                    f"Analyzer {analyzer.key} timed out after {self.config.analyzer_timeout}s"
                ) from e
            reports.append(parse_report(raw))
        return reports

    def _build_issues(self, analysis: Analysis, reports: List[AnalyzerReport]) -> List[Issue]:
        issues = []
        for report in reports:
            for reported in report.issues:
                issues.append(
                    Issue(
                        id=str(uuid.uuid4()),
                        analysis_id=analysis.id,
                        analyzer_key=report.analyzer_key,
                        rule_key=reported.rule_key,
                        rule_name=reported.rule_name,
                        severity=reported.severity,
                        type=reported.type,
                        file_path=reported.file_path,
                        line=reported.line,
                        end_line=reported.end_line,
                        message=reported.message,
                        fingerprint=compute_fingerprint(
                            report.analyzer_key,
                            reported.rule_key,
                            reported.file_path,
                            reported.line,
                            reported.message,
                            self.config.fingerprint_line_bucket,
                        ),
                    )
                )
        return issues

    async def _persist_issues(
        self, analysis: Analysis, reports: List[AnalyzerReport]
    ) -> List[Issue]:
        existing = await self.store.list_issues(analysis.id)
        if existing:
            # Redelivered job: keep the issues and is_new flags already written
            self.logger.info(f"Analysis {analysis.id} already has {len(existing)} issues")
            return existing

        baseline: Optional[List[Issue]] = None
        if analysis.baseline_analysis_id:
            baseline = await self.store.list_issues(analysis.baseline_analysis_id)

        issues = self.differ.diff(self._build_issues(analysis, reports), baseline)
        await self.store.save_issues(issues)
        return issues

    def _lines_of_code(self, measures: dict) -> int:
        for key in LINES_OF_CODE_MEASURES:
            if measures.get(key):
                return int(measures[key])
        return self.config.default_lines_of_code

    async def _evaluate_gate(self, analysis: Analysis) -> Optional[str]:
        gate = await self.gates.resolve(analysis.project_id)
        if gate is None:
            return None
        evaluation = self.evaluator.evaluate(
            gate,
            await self.store.get_metrics(analysis.id, MetricScope.ALL),
            await self.store.get_metrics(analysis.id, MetricScope.NEW),
        )
        return evaluation.status.value


class RemediationJobHandler(JobHandler):
    """Asks the remediator to fix an issue and records the resolution."""

    def __init__(self, store: AnalysisStore, remediator: IssueRemediator):
        self.logger = logger
        self.store = store
        self.remediator = remediator

    async def handle(self, job: Job) -> None:
        issue_id = job.payload.get("issue_id")
        if not issue_id:
            raise InvalidSubmissionError("Remediation job without issue_id", details={"job": job.id})

        issue = await self.store.get_issue(issue_id)
        if issue is None:
            raise NotFoundError(f"Issue {issue_id} not found")
        if issue.status != IssueStatus.OPEN:
            self.logger.info(f"Issue {issue_id} is {issue.status.value}; nothing to fix")
            return

        result = await self.remediator.remediate(issue, dict(job.payload))
        if not result.fixed:
            self.logger.info(f"Remediator could not fix issue {issue_id}")
            return

        await self.store.update_issue_status(issue_id, IssueStatus.RESOLVED)
        await self.store.add_resolution(
            IssueResolution(
                issue_id=issue_id,
                status=IssueStatus.RESOLVED,
                comment=result.comment or "Resolved automatically",
                author=job.payload.get("requested_by") or "remediator",
            )
        )
        self.logger.info(f"Issue {issue_id} resolved by remediator")

    async def on_exhausted(self, job: Job, error: Exception) -> None:
        self.logger.warning(
            f"Remediation of issue {job.payload.get('issue_id')} gave up: {error}"
        )
