"""Data models for canonical coverage reports."""

from enum import Enum
from typing import Dict, List
from datetime import datetime
from pydantic import BaseModel, Field


class CoverageFormat(str, Enum):
    """Supported coverage report formats."""

    LCOV = "LCOV"
    COBERTURA = "COBERTURA"
    JACOCO = "JACOCO"


class FileCoverage(BaseModel):
    """Coverage of a single source file."""

    file_path: str = Field(description="Path as reported by the tool")
    lines: int = Field(ge=0, description="Instrumented lines")
    covered_lines: int = Field(ge=0)
    branches: int = Field(default=0, ge=0)
    covered_branches: int = Field(default=0, ge=0)
    line_hits: Dict[str, int] = Field(
        default_factory=dict,
        description="Line number -> hit count",
    )


class ParsedCoverage(BaseModel):
    """Canonical shape every coverage parser produces."""

    total_lines: int = Field(ge=0)
    covered_lines: int = Field(ge=0)
    total_branches: int = Field(ge=0)
    covered_branches: int = Field(ge=0)
    coverage_percent: float = Field(
        ge=0,
        le=100,
        description="Rounded once at ingestion; authoritative downstream",
    )
    files: List[FileCoverage] = Field(default_factory=list)


class CoverageReport(ParsedCoverage):
    """Coverage snapshot stored for an analysis."""

    analysis_id: str
    format: CoverageFormat
    created_at: datetime = Field(default_factory=datetime.now)
