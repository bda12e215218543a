"""Data models for the analysis pipeline."""

from .analysis_models import (
    Analysis,
    AnalysisStatus,
    AnalysisSubmission,
    AnalyzerSpec,
    Issue,
    IssueResolution,
    IssueStatus,
    IssueType,
    LeakPeriodType,
    ProjectSettings,
    PullRequestRef,
    Severity,
    SubmissionReceipt,
)
from .coverage_models import CoverageFormat, CoverageReport, FileCoverage, ParsedCoverage
from .job_models import Job, JobHandle, JobKind, JobState
from .quality_models import (
    ConditionResult,
    GateEvaluation,
    GateStatus,
    MetricScope,
    Operator,
    QualityGate,
    QualityGateCondition,
    TechnicalDebtResult,
)

__all__ = [
    "Analysis",
    "AnalysisStatus",
    "AnalysisSubmission",
    "AnalyzerSpec",
    "Issue",
    "IssueResolution",
    "IssueStatus",
    "IssueType",
    "LeakPeriodType",
    "ProjectSettings",
    "PullRequestRef",
    "Severity",
    "SubmissionReceipt",
    "CoverageFormat",
    "CoverageReport",
    "FileCoverage",
    "ParsedCoverage",
    "Job",
    "JobHandle",
    "JobKind",
    "JobState",
    "ConditionResult",
    "GateEvaluation",
    "GateStatus",
    "MetricScope",
    "Operator",
    "QualityGate",
    "QualityGateCondition",
    "TechnicalDebtResult",
]
