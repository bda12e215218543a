"""Analyzer report contract and validation."""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import InvalidReportError
from ..models.analysis_models import IssueType, Severity

logger = logging.getLogger(__name__)


class AnalyzerInfo(BaseModel):
    """Analyzer identity carried in every report."""

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)


class ReportedIssue(BaseModel):
    """One issue as emitted by an analyzer."""

    model_config = ConfigDict(populate_by_name=True)

    rule_key: str = Field(alias="ruleKey", min_length=1)
    severity: Severity
    type: IssueType
    file_path: str = Field(alias="filePath", min_length=1)
    message: str = Field(min_length=1)
    line: Optional[int] = Field(default=None, ge=0)
    end_line: Optional[int] = Field(default=None, alias="endLine", ge=0)
    rule_name: Optional[str] = Field(default=None, alias="ruleName")
    rule_description: Optional[str] = Field(default=None, alias="ruleDescription")
    fingerprint: Optional[str] = Field(
        default=None,
        description="Analyzer-side fingerprint; not used for matching",
    )


class ReportedRule(BaseModel):
    """Rule metadata an analyzer may publish alongside its issues."""

    key: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    severity: Severity
    type: IssueType


class AnalyzerReport(BaseModel):
    """Minimal report contract shared by all analyzers."""

    analyzer: AnalyzerInfo
    issues: List[ReportedIssue] = Field(default_factory=list)
    rules: List[ReportedRule] = Field(default_factory=list)
    measures: Dict[str, float] = Field(
        default_factory=dict,
        description="Numeric measures such as ncloc",
    )

    @property
    def analyzer_key(self) -> str:
        return self.analyzer.name


def parse_report(data: Union[Dict[str, Any], str, bytes]) -> AnalyzerReport:
    """
    Validate raw analyzer output.

    Args:
        data: Decoded report, or its JSON text

    Returns:
        Validated report

    Raises:
        InvalidReportError: If the report violates the contract
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise InvalidReportError(f"Analyzer report is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidReportError("Analyzer report must be a JSON object")

    if "issues" not in data:
        raise InvalidReportError("Invalid issues array: missing")

    # measures may arrive wrapped as {"metrics": {...}}
    measures = data.get("measures")
    if isinstance(measures, dict) and isinstance(measures.get("metrics"), dict):
        data = {**data, "measures": measures["metrics"]}

    try:
        report = AnalyzerReport.model_validate(data)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
            for err in e.errors()
        ]
        first = errors[0] if errors else {"field": "", "error": "invalid"}
        raise InvalidReportError(
            f"Invalid analyzer report: {first['field']}: {first['error']}",
            details={"errors": errors},
        ) from e

    logger.debug(
        f"Validated report from {report.analyzer.name} {report.analyzer.version} "
        f"with {len(report.issues)} issues"
    )
    return report
