"""Analyzer execution and remediation interfaces."""

from .base import AnalyzerRunner, IssueRemediator, RemediationResult
from .command_runner import CommandAnalyzerRunner

__all__ = [
    "AnalyzerRunner",
    "IssueRemediator",
    "RemediationResult",
    "CommandAnalyzerRunner",
]
