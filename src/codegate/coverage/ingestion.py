"""Coverage ingestion service.

PATTERN: Parse once, persist once, derive metrics from the stored report
CRITICAL: coverage_percent computed at parse time is authoritative downstream
GOTCHA: A second upload for the same analysis is a conflict, not an overwrite
"""

import logging
from typing import Any, Dict, List, Optional, Union

from ..exceptions import NotFoundError
from ..models.coverage_models import CoverageFormat, CoverageReport, FileCoverage
from ..models.quality_models import MetricScope
from ..persistence.base import AnalysisStore
from .base import RawReport, round_half_up, round_percent
from .registry import CoverageParserRegistry, resolve_format

logger = logging.getLogger(__name__)


class CoverageIngestionService:
    """Turns uploaded coverage reports into stored reports and metrics."""

    def __init__(
        self,
        store: AnalysisStore,
        registry: Optional[CoverageParserRegistry] = None,
    ):
        """
        Initialize ingestion service.

        Args:
            store: System of record
            registry: Parser lookup table; defaults to all built-in parsers
        """
        self.logger = logger
        self.store = store
        self.registry = registry or CoverageParserRegistry()

    async def ingest(
        self,
        analysis_id: str,
        format: Union[CoverageFormat, str],
        raw: RawReport,
    ) -> CoverageReport:
        """
        Parse and store the coverage report of an analysis.

        Args:
            analysis_id: Analysis the report belongs to
            format: Report format
            raw: Report content

        Returns:
            Stored coverage report

        Raises:
            NotFoundError: If the analysis does not exist
            UnsupportedFormatError: If the format has no parser
            CoverageParseError: If the report is malformed
            ConflictError: If the analysis already has a report
        """
        analysis = await self.store.get_analysis(analysis_id)
        if analysis is None:
            raise NotFoundError(f"Analysis {analysis_id} not found")

        coverage_format = resolve_format(format)
        parsed = self.registry.parse(coverage_format, raw)

        report = CoverageReport(
            analysis_id=analysis_id,
            format=coverage_format,
            **parsed.model_dump(),
        )
        await self.store.save_coverage_report(report)

        await self._save_metrics(report, analysis.baseline_analysis_id)

        self.logger.info(
            f"Coverage ingested for analysis {analysis_id}: "
            f"{report.coverage_percent}% over {len(report.files)} files"
        )
        return report

    async def _save_metrics(
        self, report: CoverageReport, baseline_analysis_id: Optional[str]
    ) -> None:
        metrics = {
            "coverage": report.coverage_percent,
            "coverage_lines": report.coverage_percent,
            "coverage_branches": round_percent(report.covered_branches, report.total_branches),
            "lines_to_cover": float(report.total_lines),
            "uncovered_lines": float(report.total_lines - report.covered_lines),
        }
        new_metrics: Dict[str, float] = {}

        if baseline_analysis_id:
            baseline = await self.store.get_coverage_report(baseline_analysis_id)
            if baseline is not None:
                delta = round_half_up(report.coverage_percent - baseline.coverage_percent)
                new_metrics["coverage"] = delta
                metrics["new_coverage"] = delta

        await self.store.save_metrics(report.analysis_id, MetricScope.ALL, metrics)
        if new_metrics:
            await self.store.save_metrics(report.analysis_id, MetricScope.NEW, new_metrics)

    async def get_report(self, analysis_id: str) -> CoverageReport:
        report = await self.store.get_coverage_report(analysis_id)
        if report is None:
            raise NotFoundError(f"Coverage report for analysis {analysis_id} not found")
        report.files.sort(key=lambda f: f.file_path)
        return report

    async def get_file_coverage(self, analysis_id: str, file_path: str) -> Dict[str, Any]:
        """
        Coverage of one file of an analysis.

        Raises:
            NotFoundError: If the report or the file is missing
        """
        report = await self.get_report(analysis_id)
        match: Optional[FileCoverage] = next(
            (f for f in report.files if f.file_path == file_path), None
        )
        if match is None:
            raise NotFoundError(f"File coverage for {file_path} not found")

        result = match.model_dump()
        result["coverage_percent"] = round_percent(match.covered_lines, match.lines)
        return result

    async def get_trend(
        self, project_id: str, branch: Optional[str] = None, limit: int = 20
    ) -> List[Dict[str, Any]]:
        """
        Coverage of the most recent analyses with a report, oldest first.

        Args:
            project_id: Project identifier
            branch: Restrict to one branch
            limit: Maximum number of points
        """
        points: List[Dict[str, Any]] = []
        for analysis in await self.store.list_analyses(project_id, branch=branch):
            if len(points) >= limit:
                break
            report = await self.store.get_coverage_report(analysis.id)
            if report is None:
                continue
            points.append(
                {
                    "analysis_id": analysis.id,
                    "commit_sha": analysis.commit_sha,
                    "submitted_at": analysis.submitted_at,
                    "coverage_percent": report.coverage_percent,
                }
            )
        points.reverse()
        return points
