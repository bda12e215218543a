"""Shared fixtures for codegate tests."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from datetime import datetime, timedelta

from codegate.config.pipeline_config import PipelineConfig
from codegate.issues.fingerprint import compute_fingerprint
from codegate.models.analysis_models import (
    Analysis,
    AnalysisStatus,
    Issue,
    IssueStatus,
    IssueType,
    Severity,
)
from codegate.persistence.memory_store import InMemoryAnalysisStore


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0, milliseconds: float = 0) -> None:
        self.current += timedelta(seconds=seconds, milliseconds=milliseconds)


@pytest.fixture
def clock():
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    """Create pipeline config isolated from the environment."""
    return PipelineConfig(
        redis_url="redis://localhost:6379/0",
        queue_backend="local",
        queue_name="analysis-queue",
        job_attempts=2,
        backoff_ms=5000,
        worker_poll_timeout=0.01,
        database_path=str(tmp_path / "codegate.db"),
        storage_root=str(tmp_path / "storage"),
        public_base_url="https://codegate.test/api",
        analyzer_timeout=5,
        fingerprint_line_bucket=10,
        default_lines_of_code=10000,
        gate_config_path=None,
        metrics_enabled=True,
    )


@pytest.fixture
def store():
    """Create in-memory store."""
    return InMemoryAnalysisStore()


def make_analysis(
    analysis_id: str,
    project_id: str = "proj",
    branch: str = "main",
    status: AnalysisStatus = AnalysisStatus.SUCCESS,
    submitted_at: datetime = datetime(2024, 1, 1, 10, 0, 0),
    finished_at=None,
    **kwargs,
) -> Analysis:
    """Build an analysis; terminal ones finish a minute after submission."""
    if finished_at is None and status.is_terminal:
        finished_at = submitted_at + timedelta(minutes=1)
    return Analysis(
        id=analysis_id,
        project_id=project_id,
        branch=branch,
        commit_sha=f"sha-{analysis_id}",
        status=status,
        submitted_at=submitted_at,
        finished_at=finished_at,
        **kwargs,
    )


def make_issue(
    issue_id: str,
    analysis_id: str = "a1",
    rule_key: str = "no-unused-vars",
    file_path: str = "src/app.py",
    line: int = 12,
    message: str = "Unused variable 'x'",
    severity: Severity = Severity.MAJOR,
    type: IssueType = IssueType.CODE_SMELL,
    status: IssueStatus = IssueStatus.OPEN,
    is_new: bool = False,
    analyzer_key: str = "pylint",
) -> Issue:
    """Build an issue with its real fingerprint."""
    return Issue(
        id=issue_id,
        analysis_id=analysis_id,
        analyzer_key=analyzer_key,
        rule_key=rule_key,
        severity=severity,
        type=type,
        file_path=file_path,
        line=line,
        message=message,
        fingerprint=compute_fingerprint(analyzer_key, rule_key, file_path, line, message),
        status=status,
        is_new=is_new,
    )


@pytest.fixture
def analysis_factory():
    """Factory for analyses."""
    return make_analysis


@pytest.fixture
def issue_factory():
    """Factory for fingerprinted issues."""
    return make_issue
