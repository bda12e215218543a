"""Coverage ingestion: parsers, registry and ingestion service."""

from .base import CoverageParser, round_percent
from .lcov_parser import LcovParser
from .cobertura_parser import CoberturaParser
from .jacoco_parser import JacocoParser
from .registry import CoverageParserRegistry, resolve_format
from .ingestion import CoverageIngestionService

__all__ = [
    "CoverageParser",
    "round_percent",
    "LcovParser",
    "CoberturaParser",
    "JacocoParser",
    "CoverageParserRegistry",
    "resolve_format",
    "CoverageIngestionService",
]
