"""Coverage parser lookup by report format."""

import logging
from typing import Dict, Iterable, List, Optional, Union

from ..exceptions import UnsupportedFormatError
from ..models.coverage_models import CoverageFormat, ParsedCoverage
from .base import CoverageParser, RawReport
from .cobertura_parser import CoberturaParser
from .jacoco_parser import JacocoParser
from .lcov_parser import LcovParser

logger = logging.getLogger(__name__)

# Names used by upload clients for each format
FORMAT_ALIASES = {
    "LCOV": CoverageFormat.LCOV,
    "LINE_COVERAGE": CoverageFormat.LCOV,
    "COBERTURA": CoverageFormat.COBERTURA,
    "COBERTURA_XML": CoverageFormat.COBERTURA,
    "JACOCO": CoverageFormat.JACOCO,
    "JACOCO_XML": CoverageFormat.JACOCO,
}


def resolve_format(value: Union[CoverageFormat, str]) -> CoverageFormat:
    """
    Map a format name to CoverageFormat.

    Raises:
        UnsupportedFormatError: If the name is unknown
    """
    if isinstance(value, CoverageFormat):
        return value
    key = str(value).strip().upper()
    if key not in FORMAT_ALIASES:
        raise UnsupportedFormatError(
            f"Unsupported coverage format: {value}",
            details={"supported": sorted(FORMAT_ALIASES)},
        )
    return FORMAT_ALIASES[key]


class CoverageParserRegistry:
    """Lookup table of parsers, built once at construction."""

    def __init__(self, parsers: Optional[Iterable[CoverageParser]] = None):
        if parsers is None:
            parsers = [LcovParser(), CoberturaParser(), JacocoParser()]
        self._parsers: Dict[CoverageFormat, CoverageParser] = {
            parser.format: parser for parser in parsers
        }

    @property
    def formats(self) -> List[CoverageFormat]:
        return list(self._parsers)

    def get(self, format: Union[CoverageFormat, str]) -> CoverageParser:
        coverage_format = resolve_format(format)
        parser = self._parsers.get(coverage_format)
        if parser is None:
            raise UnsupportedFormatError(
                f"No parser registered for {coverage_format.value}",
                details={"supported": [f.value for f in self._parsers]},
            )
        return parser

    def parse(self, format: Union[CoverageFormat, str], raw: RawReport) -> ParsedCoverage:
        return self.get(format).parse(raw)
