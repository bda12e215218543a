"""Data models for analyses, issues and leak period settings.

This module contains the Pydantic models for the analysis lifecycle, the
issues attached to an analysis, issue resolutions, and the project leak
period configuration used for baseline resolution.
"""

from enum import Enum
from typing import Dict, List, Optional, Any
from datetime import datetime
from pydantic import BaseModel, Field


class AnalysisStatus(str, Enum):
    """Analysis lifecycle states."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.SUCCESS, AnalysisStatus.FAILED)


class Severity(str, Enum):
    """Issue severity, ordered INFO < MINOR < MAJOR < CRITICAL < BLOCKER."""

    INFO = "INFO"
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"
    BLOCKER = "BLOCKER"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_ORDER = [
    Severity.INFO,
    Severity.MINOR,
    Severity.MAJOR,
    Severity.CRITICAL,
    Severity.BLOCKER,
]


class IssueType(str, Enum):
    """Issue categories."""

    BUG = "BUG"
    CODE_SMELL = "CODE_SMELL"
    VULNERABILITY = "VULNERABILITY"


class IssueStatus(str, Enum):
    """Issue resolution status."""

    OPEN = "OPEN"
    FALSE_POSITIVE = "FALSE_POSITIVE"
    ACCEPTED_RISK = "ACCEPTED_RISK"
    RESOLVED = "RESOLVED"


class LeakPeriodType(str, Enum):
    """How the baseline analysis for new-issue detection is chosen."""

    LAST_ANALYSIS = "LAST_ANALYSIS"
    DATE = "DATE"
    BASE_BRANCH = "BASE_BRANCH"


class PullRequestRef(BaseModel):
    """Pull/merge request an analysis was submitted for."""

    provider: str = Field(description="VCS provider (github, gitlab, ...)")
    repo: str = Field(description="Repository identifier")
    number: int = Field(ge=1, description="Pull request number")
    source_branch: str = Field(description="Branch being merged")
    target_branch: str = Field(description="Branch merged into")


class Analysis(BaseModel):
    """One execution of the pipeline for a project branch or pull request."""

    id: str = Field(description="Analysis identifier")
    project_id: str = Field(description="Owning project")
    branch: Optional[str] = Field(default=None, description="Branch name")
    pull_request: Optional[PullRequestRef] = Field(default=None)
    commit_sha: str = Field(description="Analyzed commit")

    status: AnalysisStatus = Field(default=AnalysisStatus.PENDING)
    submitted_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = Field(default=None)
    finished_at: Optional[datetime] = Field(default=None)

    baseline_analysis_id: Optional[str] = Field(
        default=None,
        description="Analysis used to classify new issues",
    )

    # Results recorded when the analysis completes
    gate_status: Optional[str] = Field(default=None, description="PASS or FAIL")
    debt_ratio: Optional[float] = Field(default=None)
    remediation_cost: Optional[int] = Field(default=None, description="Minutes")
    maintainability_rating: Optional[str] = Field(default=None)
    failure_reason: Optional[str] = Field(default=None)

    @property
    def effective_branch(self) -> Optional[str]:
        """Branch the analysis belongs to for baseline purposes."""
        if self.pull_request is not None:
            return self.pull_request.source_branch
        return self.branch


class Issue(BaseModel):
    """One defect finding attached to an analysis."""

    id: str = Field(description="Issue identifier")
    analysis_id: str = Field(description="Owning analysis")
    analyzer_key: str = Field(description="Analyzer that reported the issue")
    rule_key: str = Field(description="Rule identifier")
    severity: Severity
    type: IssueType
    file_path: str
    line: Optional[int] = Field(default=None, ge=0)
    end_line: Optional[int] = Field(default=None, ge=0)
    message: str
    fingerprint: str = Field(description="Stable identity hash")
    status: IssueStatus = Field(default=IssueStatus.OPEN)
    is_new: bool = Field(default=False, description="Computed at diff time")
    rule_name: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)


class IssueResolution(BaseModel):
    """Audit record of a human or automated resolution action."""

    issue_id: str
    status: IssueStatus
    comment: Optional[str] = Field(default=None)
    author: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)


class ProjectSettings(BaseModel):
    """Leak period configuration of a project."""

    project_id: str
    leak_period_type: LeakPeriodType = Field(default=LeakPeriodType.LAST_ANALYSIS)
    leak_period_value: Optional[str] = Field(
        default=None,
        description="ISO date for DATE, branch name for BASE_BRANCH",
    )


class AnalyzerSpec(BaseModel):
    """Analyzer enabled for an analysis run."""

    key: str = Field(description="Analyzer identifier")
    image: Optional[str] = Field(default=None, description="Runner image reference")
    config: Dict[str, Any] = Field(default_factory=dict)


class SubmissionReceipt(BaseModel):
    """Returned immediately when a submission is accepted."""

    analysis_id: str
    status: AnalysisStatus
    status_url: str
    quality_gate_url: str
    baseline_analysis_id: Optional[str] = Field(default=None)


class AnalysisSubmission(BaseModel):
    """Submission request for a branch or pull request analysis."""

    project_id: str
    commit_sha: str
    branch: Optional[str] = Field(default=None)
    pull_request: Optional[PullRequestRef] = Field(default=None)
    analyzers: List[AnalyzerSpec] = Field(default_factory=list)

    # Exactly one of snapshot or report carries the work
    source_snapshot: Optional[bytes] = Field(default=None)
    report: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Pre-computed analyzer report",
    )
