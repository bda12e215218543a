"""Tests for baseline resolution."""

import pytest
from datetime import datetime

from codegate.issues.baseline import BaselineResolver, parse_cutoff
from codegate.models.analysis_models import (
    AnalysisStatus,
    LeakPeriodType,
    ProjectSettings,
    PullRequestRef,
)


def pull_request(target: str = "main") -> PullRequestRef:
    return PullRequestRef(
        provider="github",
        repo="acme/app",
        number=7,
        source_branch="feature/x",
        target_branch=target,
    )


@pytest.mark.asyncio
class TestBaselineResolver:
    """Test leak period strategies."""

    async def test_last_analysis_same_branch(self, store, analysis_factory):
        await store.create_analysis(analysis_factory("a1", submitted_at=datetime(2024, 1, 1)))
        await store.create_analysis(analysis_factory("a2", submitted_at=datetime(2024, 1, 2)))
        await store.create_analysis(
            analysis_factory("dev", branch="develop", submitted_at=datetime(2024, 1, 3))
        )
        current = analysis_factory(
            "a3", status=AnalysisStatus.PENDING, submitted_at=datetime(2024, 1, 4)
        )
        await store.create_analysis(current)

        baseline = await BaselineResolver(store).resolve(current)

        assert baseline.id == "a2"

    async def test_latest_finished_wins_over_latest_submitted(self, store, analysis_factory):
        """Test an older submission that finished last is the baseline."""
        await store.create_analysis(
            analysis_factory(
                "a1",
                submitted_at=datetime(2024, 1, 1, 10, 1),
                finished_at=datetime(2024, 1, 1, 10, 5),
            )
        )
        await store.create_analysis(
            analysis_factory(
                "a2",
                submitted_at=datetime(2024, 1, 1, 10, 2),
                finished_at=datetime(2024, 1, 1, 10, 3),
            )
        )
        current = analysis_factory(
            "a3", status=AnalysisStatus.PENDING, submitted_at=datetime(2024, 1, 1, 10, 6)
        )

        baseline = await BaselineResolver(store).resolve(current)

        assert baseline.id == "a1"

    async def test_skips_failed_and_later_analyses(self, store, analysis_factory):
        await store.create_analysis(analysis_factory("ok", submitted_at=datetime(2024, 1, 1)))
        await store.create_analysis(
            analysis_factory(
                "failed", status=AnalysisStatus.FAILED, submitted_at=datetime(2024, 1, 2)
            )
        )
        await store.create_analysis(analysis_factory("later", submitted_at=datetime(2024, 2, 1)))
        current = analysis_factory(
            "cur", status=AnalysisStatus.PENDING, submitted_at=datetime(2024, 1, 3)
        )

        baseline = await BaselineResolver(store).resolve(current)

        assert baseline.id == "ok"

    async def test_first_analysis_has_no_baseline(self, store, analysis_factory):
        current = analysis_factory("a1", status=AnalysisStatus.PENDING)
        await store.create_analysis(current)
        assert await BaselineResolver(store).resolve(current) is None

    async def test_pull_request_uses_target_branch(self, store, analysis_factory):
        """Test a PR compares against the latest analysis of its target."""
        await store.create_analysis(analysis_factory("main1", submitted_at=datetime(2024, 1, 1)))
        await store.create_analysis(
            analysis_factory(
                "pr-old",
                branch=None,
                pull_request=pull_request(),
                submitted_at=datetime(2024, 1, 2),
            )
        )
        current = analysis_factory(
            "pr-new",
            branch=None,
            status=AnalysisStatus.PENDING,
            pull_request=pull_request(),
            submitted_at=datetime(2024, 1, 3),
        )

        baseline = await BaselineResolver(store).resolve(current)

        assert baseline.id == "main1"

    async def test_base_branch_strategy(self, store, analysis_factory):
        await store.create_analysis(analysis_factory("main1", submitted_at=datetime(2024, 1, 1)))
        await store.create_analysis(
            analysis_factory("rel", branch="release", submitted_at=datetime(2024, 1, 2))
        )
        current = analysis_factory(
            "feat", branch="feature", status=AnalysisStatus.PENDING,
            submitted_at=datetime(2024, 1, 3),
        )
        settings = ProjectSettings(
            project_id="proj",
            leak_period_type=LeakPeriodType.BASE_BRANCH,
            leak_period_value="release",
        )

        baseline = await BaselineResolver(store).resolve(current, settings)

        assert baseline.id == "rel"

    async def test_base_branch_without_value(self, store, analysis_factory):
        await store.create_analysis(analysis_factory("main1"))
        settings = ProjectSettings(
            project_id="proj", leak_period_type=LeakPeriodType.BASE_BRANCH
        )
        current = analysis_factory("cur", status=AnalysisStatus.PENDING)
        assert await BaselineResolver(store).resolve(current, settings) is None

    async def test_date_strategy(self, store, analysis_factory):
        """Test the latest analysis finished before the cutoff is chosen."""
        await store.create_analysis(analysis_factory("jan", submitted_at=datetime(2024, 1, 10)))
        await store.create_analysis(analysis_factory("feb", submitted_at=datetime(2024, 2, 10)))
        current = analysis_factory(
            "cur", status=AnalysisStatus.PENDING, submitted_at=datetime(2024, 3, 1)
        )
        settings = ProjectSettings(
            project_id="proj",
            leak_period_type=LeakPeriodType.DATE,
            leak_period_value="2024-02-01",
        )

        baseline = await BaselineResolver(store).resolve(current, settings)

        assert baseline.id == "jan"

    async def test_invalid_date(self, store, analysis_factory):
        await store.create_analysis(analysis_factory("jan"))
        settings = ProjectSettings(
            project_id="proj",
            leak_period_type=LeakPeriodType.DATE,
            leak_period_value="last tuesday",
        )
        current = analysis_factory("cur", status=AnalysisStatus.PENDING)
        assert await BaselineResolver(store).resolve(current, settings) is None


class TestParseCutoff:
    """Test leak period date parsing."""

    def test_date_only(self):
        assert parse_cutoff("2024-02-01") == datetime(2024, 2, 1)

    def test_naive_datetime(self):
        assert parse_cutoff("2024-02-01T10:30:00") == datetime(2024, 2, 1, 10, 30)

    def test_utc_suffix_becomes_naive(self):
        assert parse_cutoff("2024-02-01T10:30:00Z").tzinfo is None

    def test_invalid(self):
        assert parse_cutoff("soon") is None
        assert parse_cutoff(None) is None
