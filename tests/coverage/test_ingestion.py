"""Tests for coverage ingestion."""

import pytest
from datetime import datetime

from codegate.coverage.ingestion import CoverageIngestionService
from codegate.exceptions import (
    ConflictError,
    CoverageParseError,
    NotFoundError,
    UnsupportedFormatError,
)
from codegate.models.coverage_models import CoverageFormat
from codegate.models.quality_models import MetricScope

LCOV_75 = "SF:src/a.js\nDA:1,1\nDA:2,1\nDA:3,1\nDA:4,0\nBRF:2\nBRH:1\nend_of_record\n"
LCOV_50 = "SF:src/a.js\nDA:1,1\nDA:2,0\nend_of_record\n"


@pytest.mark.asyncio
class TestCoverageIngestion:
    """Test ingest, conflicts and derived metrics."""

    async def test_ingest_stores_report_and_metrics(self, store, analysis_factory):
        await store.create_analysis(analysis_factory("a1"))
        service = CoverageIngestionService(store)

        report = await service.ingest("a1", "LCOV", LCOV_75)

        assert report.analysis_id == "a1"
        assert report.format == CoverageFormat.LCOV
        assert report.coverage_percent == 75.0
        assert (await store.get_coverage_report("a1")).coverage_percent == 75.0

        metrics = await store.get_metrics("a1", MetricScope.ALL)
        assert metrics["coverage"] == 75.0
        assert metrics["coverage_lines"] == 75.0
        assert metrics["coverage_branches"] == 50.0
        assert metrics["lines_to_cover"] == 4.0
        assert metrics["uncovered_lines"] == 1.0
        assert "new_coverage" not in metrics

    async def test_second_upload_conflicts(self, store, analysis_factory):
        """Test a report is never overwritten."""
        await store.create_analysis(analysis_factory("a1"))
        service = CoverageIngestionService(store)
        await service.ingest("a1", "LCOV", LCOV_75)

        with pytest.raises(ConflictError):
            await service.ingest("a1", "LCOV", LCOV_50)

        assert (await store.get_coverage_report("a1")).coverage_percent == 75.0

    async def test_unknown_analysis(self, store):
        service = CoverageIngestionService(store)
        with pytest.raises(NotFoundError):
            await service.ingest("missing", "LCOV", LCOV_75)

    async def test_bad_input_stores_nothing(self, store, analysis_factory):
        await store.create_analysis(analysis_factory("a1"))
        service = CoverageIngestionService(store)

        with pytest.raises(UnsupportedFormatError):
            await service.ingest("a1", "CLOVER", LCOV_75)
        with pytest.raises(CoverageParseError):
            await service.ingest("a1", "LCOV", "")

        assert await store.get_coverage_report("a1") is None
        assert await store.get_metrics("a1", MetricScope.ALL) == {}

    async def test_new_coverage_delta_from_baseline(self, store, analysis_factory):
        """Test new coverage is the change against the baseline report."""
        await store.create_analysis(analysis_factory("base"))
        await store.create_analysis(
            analysis_factory(
                "head",
                submitted_at=datetime(2024, 1, 2),
                baseline_analysis_id="base",
            )
        )
        service = CoverageIngestionService(store)
        await service.ingest("base", "LCOV", LCOV_50)

        await service.ingest("head", "LCOV", LCOV_75)

        assert (await store.get_metrics("head", MetricScope.NEW)) == {"coverage": 25.0}
        assert (await store.get_metrics("head", MetricScope.ALL))["new_coverage"] == 25.0

    async def test_get_file_coverage(self, store, analysis_factory):
        await store.create_analysis(analysis_factory("a1"))
        service = CoverageIngestionService(store)
        await service.ingest("a1", "LCOV", LCOV_75)

        file_coverage = await service.get_file_coverage("a1", "src/a.js")

        assert file_coverage["coverage_percent"] == 75.0
        assert file_coverage["line_hits"]["4"] == 0
        with pytest.raises(NotFoundError):
            await service.get_file_coverage("a1", "src/other.js")

    async def test_get_report_missing(self, store):
        with pytest.raises(NotFoundError):
            await CoverageIngestionService(store).get_report("a1")

    async def test_trend_oldest_first(self, store, analysis_factory):
        for day, analysis_id in enumerate(["a1", "a2", "a3"], start=1):
            await store.create_analysis(
                analysis_factory(analysis_id, submitted_at=datetime(2024, 1, day))
            )
        service = CoverageIngestionService(store)
        await service.ingest("a1", "LCOV", LCOV_50)
        await service.ingest("a3", "LCOV", LCOV_75)

        trend = await service.get_trend("proj")

        assert [p["analysis_id"] for p in trend] == ["a1", "a3"]
        assert [p["coverage_percent"] for p in trend] == [50.0, 75.0]
        assert len(await service.get_trend("proj", limit=1)) == 1
