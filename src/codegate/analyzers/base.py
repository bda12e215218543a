"""Interfaces to analyzer execution and automated remediation."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..models.analysis_models import Analysis, AnalyzerSpec, Issue


class AnalyzerRunner(ABC):
    """Runs one analyzer over a source snapshot."""

    @abstractmethod
    async def run(
        self, analyzer: AnalyzerSpec, snapshot: bytes, analysis: Analysis
    ) -> Dict[str, Any]:
        """
        Execute an analyzer.

        Args:
            analyzer: Analyzer to run
            snapshot: Source archive (zip)
            analysis: Analysis the run belongs to

        Returns:
            Raw analyzer report, validated by the caller

        Raises:
            AnalyzerExecutionError: If the analyzer fails or emits no report
        """
        pass


class RemediationResult(BaseModel):
    """Outcome of an automated fix attempt."""

    fixed: bool
    comment: Optional[str] = Field(default=None)
    patch: Optional[str] = Field(default=None, description="Proposed change, if any")


class IssueRemediator(ABC):
    """Automated (LLM-backed) issue fixer."""

    @abstractmethod
    async def remediate(self, issue: Issue, context: Dict[str, Any]) -> RemediationResult:
        """
        Attempt to fix an issue.

        Args:
            issue: Issue to fix
            context: Job payload (analysis, requester, ...)

        Returns:
            Whether the issue was fixed
        """
        pass
