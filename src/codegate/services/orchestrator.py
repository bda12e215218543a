"""Analysis submission.

PATTERN: Create record, resolve baseline, store artifacts, enqueue
CRITICAL: Submission returns immediately; the worker does the analysis
GOTCHA: No dedup: two submissions for one commit are two analyses
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from ..config.pipeline_config import PipelineConfig
from ..exceptions import InvalidSubmissionError, PipelineError
from ..issues.baseline import BaselineResolver
from ..issues.report import parse_report
from ..models.analysis_models import (
    Analysis,
    AnalysisSubmission,
    SubmissionReceipt,
)
from ..models.job_models import JobHandle, JobKind
from ..monitoring.metrics import PipelineMetrics
from ..persistence.base import AnalysisStore
from ..queue.base import BaseJobQueue
from ..storage.base import ObjectStorage
from .state_machine import AnalysisStateMachine

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Accepts submissions and schedules analysis jobs."""

    def __init__(
        self,
        config: PipelineConfig,
        store: AnalysisStore,
        storage: ObjectStorage,
        queue: BaseJobQueue,
        metrics: Optional[PipelineMetrics] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Pipeline configuration
            store: System of record
            storage: Object storage for snapshots and reports
            queue: Job queue
            metrics: Optional metrics sink
            clock: Time source for submission timestamps
        """
        self.logger = logger
        self.config = config
        self.store = store
        self.storage = storage
        self.queue = queue
        self.metrics = metrics
        self._clock = clock or datetime.now
        self.baselines = BaselineResolver(store)
        self.state_machine = AnalysisStateMachine(store, clock=self._clock)

    def _validate(self, submission: AnalysisSubmission) -> None:
        if not submission.project_id.strip():
            raise InvalidSubmissionError("project_id is required")
        if not submission.commit_sha.strip():
            raise InvalidSubmissionError("commit_sha is required")
        if submission.branch is None and submission.pull_request is None:
            raise InvalidSubmissionError("A branch or a pull request is required")

        has_snapshot = submission.source_snapshot is not None
        has_report = submission.report is not None
        if has_snapshot == has_report:
            raise InvalidSubmissionError(
                "Exactly one of source snapshot or pre-computed report is required"
            )
        if has_snapshot and not submission.analyzers:
            raise InvalidSubmissionError("No analyzers configured for source snapshot")
        if has_report:
            # Input errors surface now rather than as a failed job
            parse_report(submission.report)

    def status_url(self, analysis_id: str) -> str:
        return f"{self.config.public_base_url.rstrip('/')}/analyses/{analysis_id}"

    def quality_gate_url(self, analysis_id: str) -> str:
        return f"{self.status_url(analysis_id)}/quality-gate"

    async def _schedule(self, analysis: Analysis, submission: AnalysisSubmission) -> JobHandle:
        """Store the submitted artifact and enqueue the analysis job."""
        payload = {
            "analysis_id": analysis.id,
            "analyzers": [a.model_dump() for a in submission.analyzers],
        }
        if submission.source_snapshot is not None:
            key = f"{analysis.project_id}/{analysis.id}.zip"
            await self.storage.put(self.config.sources_bucket, key, submission.source_snapshot)
            payload["source_key"] = key
        else:
            key = f"{analysis.project_id}/{analysis.id}.json"
            await self.storage.put(
                self.config.reports_bucket, key, json.dumps(submission.report).encode("utf-8")
            )
            payload["report_key"] = key

        return await self.queue.enqueue(JobKind.ANALYSIS, payload)

    async def submit(self, submission: AnalysisSubmission) -> SubmissionReceipt:
        """
        Submit a branch or pull request for analysis.

        Args:
            submission: Submission request

        Returns:
            Receipt with the PENDING analysis and polling URLs

        Raises:
            InvalidSubmissionError: If the request lacks a target or payload
            InvalidReportError: If a pre-computed report is malformed
            QueueUnavailableError: If the job could not be enqueued
            StoreUnavailableError: If the artifact could not be stored
        """
        self._validate(submission)

        analysis = Analysis(
            id=str(uuid.uuid4()),
            project_id=submission.project_id,
            branch=submission.branch,
            pull_request=submission.pull_request,
            commit_sha=submission.commit_sha,
            submitted_at=self._clock(),
        )

        settings = await self.store.get_project_settings(analysis.project_id)
        baseline = await self.baselines.resolve(analysis, settings)
        if baseline is not None:
            analysis.baseline_analysis_id = baseline.id

        await self.store.create_analysis(analysis)

        try:
            handle = await self._schedule(analysis, submission)
        except PipelineError as e:
            # No job exists, so nothing else will ever finish this analysis
            await self.state_machine.fail(
                analysis.id, f"Could not schedule analysis: {type(e).__name__}: {e}"
            )
            raise

        if self.metrics:
            self.metrics.increment("analyses_submitted_total")

        self.logger.info(
            f"Submitted analysis {analysis.id} for project {analysis.project_id} "
            f"(job {handle.job_id}, baseline {analysis.baseline_analysis_id})"
        )
        return SubmissionReceipt(
            analysis_id=analysis.id,
            status=analysis.status,
            status_url=self.status_url(analysis.id),
            quality_gate_url=self.quality_gate_url(analysis.id),
            baseline_analysis_id=analysis.baseline_analysis_id,
        )
