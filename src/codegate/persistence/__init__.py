"""System of record for analyses, issues, coverage and metrics."""

from .base import AnalysisStore
from .memory_store import InMemoryAnalysisStore
from .sqlite_store import SqliteAnalysisStore

__all__ = ["AnalysisStore", "InMemoryAnalysisStore", "SqliteAnalysisStore"]
