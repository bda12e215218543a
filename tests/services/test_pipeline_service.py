"""Tests for the pipeline service facade."""

import pytest

from codegate.config.gate_config import GateConfigLoader
from codegate.exceptions import NotFoundError
from codegate.models.analysis_models import (
    IssueStatus,
    IssueType,
    LeakPeriodType,
    ProjectSettings,
    Severity,
)
from codegate.models.job_models import JobKind
from codegate.models.quality_models import MetricScope, Operator, QualityGate, QualityGateCondition
from codegate.monitoring.metrics import PipelineMetrics
from codegate.queue.local_queue import LocalJobQueue
from codegate.services.pipeline_service import PipelineService
from codegate.storage.local import LocalObjectStorage


@pytest.fixture
def queue(clock):
    return LocalJobQueue(clock=clock)


@pytest.fixture
def service(config, store, queue):
    gate_config = GateConfigLoader()
    gate_config.load_dict(
        {
            "default_gate": {
                "name": "Default",
                "conditions": [{"metric": "bugs", "operator": "GT", "threshold": 0}],
            }
        }
    )
    return PipelineService(
        config,
        store,
        LocalObjectStorage(config.storage_root),
        queue,
        gate_config=gate_config,
        metrics=PipelineMetrics(),
    )


@pytest.mark.asyncio
class TestIssueOperations:
    """Test issue listing and resolution."""

    async def test_list_sorted_and_filtered(self, service, store, analysis_factory, issue_factory):
        await store.create_analysis(analysis_factory("a1"))
        await store.save_issues(
            [
                issue_factory("minor", severity=Severity.MINOR, file_path="b.py"),
                issue_factory("blocker", severity=Severity.BLOCKER, type=IssueType.BUG),
                issue_factory("major-b", severity=Severity.MAJOR, file_path="b.py", is_new=True),
                issue_factory("major-a", severity=Severity.MAJOR, file_path="a.py"),
            ]
        )

        ordered = [i.id for i in await service.list_issues("a1")]
        majors = await service.list_issues("a1", severity=Severity.MAJOR)
        bugs = await service.list_issues("a1", type=IssueType.BUG)
        new = await service.list_issues("a1", only_new=True)

        assert ordered == ["blocker", "major-a", "major-b", "minor"]
        assert [i.id for i in majors] == ["major-a", "major-b"]
        assert [i.id for i in bugs] == ["blocker"]
        assert [i.id for i in new] == ["major-b"]

    async def test_list_unknown_analysis(self, service):
        with pytest.raises(NotFoundError):
            await service.list_issues("ghost")

    async def test_resolve_records_audit_trail(self, service, store, issue_factory):
        await store.save_issues([issue_factory("i1", is_new=True)])

        updated = await service.resolve_issue(
            "i1", IssueStatus.ACCEPTED_RISK, comment="legacy module", author="dana"
        )
        await service.resolve_issue("i1", IssueStatus.OPEN, comment="reopened")

        assert updated.status == IssueStatus.ACCEPTED_RISK
        assert updated.is_new is True
        trail = await service.get_issue_resolutions("i1")
        assert [(r.status, r.author) for r in trail] == [
            (IssueStatus.ACCEPTED_RISK, "dana"),
            (IssueStatus.OPEN, None),
        ]

    async def test_resolve_unknown_issue(self, service):
        with pytest.raises(NotFoundError):
            await service.resolve_issue("ghost", IssueStatus.RESOLVED)

    async def test_request_issue_fix(self, service, store, queue, issue_factory):
        await store.save_issues([issue_factory("i1")])

        handle = await service.request_issue_fix("i1", requested_by="dana")

        assert handle.kind == JobKind.RESOLVE_ISSUE
        job = await queue.reserve(timeout=0)
        assert job.payload == {"issue_id": "i1", "analysis_id": "a1", "requested_by": "dana"}

    async def test_request_fix_unknown_issue(self, service):
        with pytest.raises(NotFoundError):
            await service.request_issue_fix("ghost")


@pytest.mark.asyncio
class TestGateAndDebt:
    """Test gate lookup and technical debt."""

    async def test_default_gate_applies(self, service, store, analysis_factory, issue_factory):
        await store.create_analysis(analysis_factory("a1"))
        await store.save_issues([issue_factory("i1", type=IssueType.BUG)])

        result = await service.get_quality_gate("a1")

        assert result["status"] == "FAIL"
        assert result["gate"] == {"id": "default", "name": "Default"}
        assert result["analysisStatus"] == "SUCCESS"
        assert result["conditions"][0]["operator"] == "GT"

    async def test_stored_project_gate_wins(self, service, store, analysis_factory, issue_factory):
        await store.create_analysis(analysis_factory("a1"))
        await store.save_issues([issue_factory("i1", type=IssueType.BUG)])
        await service.set_quality_gate(
            QualityGate(
                id="lenient",
                name="Lenient",
                project_id="proj",
                conditions=[QualityGateCondition(metric="bugs", operator=Operator.GT, threshold=5)],
            )
        )

        result = await service.get_quality_gate("a1")

        assert result["status"] == "PASS"
        assert result["gate"]["id"] == "lenient"

    async def test_no_gate_configured(self, config, store, queue, analysis_factory):
        service = PipelineService(config, store, LocalObjectStorage(config.storage_root), queue)
        await store.create_analysis(analysis_factory("a1"))

        with pytest.raises(NotFoundError):
            await service.get_quality_gate("a1")

    async def test_technical_debt(self, service, store, analysis_factory, issue_factory):
        await store.create_analysis(analysis_factory("a1"))
        await store.save_issues(
            [
                issue_factory("i1", severity=Severity.CRITICAL, is_new=True),
                issue_factory("i2", severity=Severity.MAJOR),
                issue_factory("i3", severity=Severity.BLOCKER, status=IssueStatus.RESOLVED),
            ]
        )
        await store.save_metrics("a1", MetricScope.ALL, {"ncloc": 1000})

        debt = await service.get_technical_debt("a1")

        assert debt["remediation_cost"] == 80
        assert debt["lines_of_code"] == 1000
        assert debt["formatted_remediation_time"] == "1h 20min"
        assert debt["new"]["remediation_cost"] == 60

    async def test_debt_defaults_lines_of_code(self, service, store, analysis_factory):
        await store.create_analysis(analysis_factory("a1"))
        debt = await service.get_technical_debt("a1")
        assert debt["lines_of_code"] == 10000
        assert debt["maintainability_rating"] == "A"


@pytest.mark.asyncio
class TestProjectAndMetrics:
    """Test project settings and operational metrics."""

    async def test_configure_project(self, service, store):
        settings = ProjectSettings(
            project_id="proj",
            leak_period_type=LeakPeriodType.BASE_BRANCH,
            leak_period_value="main",
        )
        await service.configure_project(settings)
        assert await store.get_project_settings("proj") == settings

    async def test_coverage_metrics_counted(self, service, store, analysis_factory):
        await store.create_analysis(analysis_factory("a1"))

        await service.upload_coverage("a1", "lcov", "SF:a.js\nDA:1,1\nend_of_record\n")

        assert (await service.get_coverage("a1")).coverage_percent == 100.0
        assert service.get_operational_metrics()["counters"]["coverage_reports_total"] == [
            {"labels": {"format": "LCOV"}, "value": 1.0}
        ]
        assert 'coverage_reports_total{format="LCOV"} 1.0' in service.render_metrics()

    async def test_get_unknown_analysis(self, service):
        with pytest.raises(NotFoundError):
            await service.get_analysis("ghost")
