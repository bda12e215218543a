"""Issue fingerprinting and baseline diff."""

from .report import AnalyzerReport, ReportedIssue, parse_report
from .fingerprint import compute_fingerprint, normalize_path
from .baseline import BaselineResolver
from .diff import IssueDiffer

__all__ = [
    "AnalyzerReport",
    "ReportedIssue",
    "parse_report",
    "compute_fingerprint",
    "normalize_path",
    "BaselineResolver",
    "IssueDiffer",
]
