"""Exception hierarchy for the analysis pipeline.

Errors fall into four families:
- input errors (malformed payloads, unknown formats): surfaced synchronously, never retried
- transient infrastructure errors (queue or store unavailable): surfaced to the caller
- job execution failures (analyzer crash, timeout): retried by the job queue
- state errors (illegal lifecycle transitions, conflicts)
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    http_status = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for API consumers."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "status": self.http_status,
            "details": self.details,
        }


class InputError(PipelineError):
    """Raised when caller-supplied input is malformed."""

    http_status = 400


class CoverageParseError(InputError):
    """Raised when a coverage report cannot be parsed."""

    pass


class UnsupportedFormatError(InputError):
    """Raised when a coverage format has no registered parser."""

    pass


class InvalidReportError(InputError):
    """Raised when an analyzer report does not match the report contract."""

    pass


class InvalidSubmissionError(InputError):
    """Raised when a submission lacks a target or payload."""

    pass


class NotFoundError(PipelineError):
    """Raised when a referenced record does not exist."""

    http_status = 404


class ConflictError(PipelineError):
    """Raised when a write-once record already exists."""

    http_status = 409


class QueueUnavailableError(PipelineError):
    """Raised when the job queue backend cannot be reached."""

    http_status = 503


class JobStalledError(PipelineError):
    """Raised for a job whose worker stopped before finishing an attempt."""

    pass


class StoreUnavailableError(PipelineError):
    """Raised when the system of record cannot be reached."""

    http_status = 503


class AnalyzerExecutionError(PipelineError):
    """Raised when an analyzer run fails or returns no report."""

    pass


class InvalidTransitionError(PipelineError):
    """Raised on an analysis state transition the lifecycle does not allow."""

    http_status = 409


class ConfigError(PipelineError):
    """Raised when gate or pipeline configuration is invalid."""

    pass
