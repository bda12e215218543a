"""Shared pieces of the coverage parsers."""

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Union

from ..exceptions import CoverageParseError
from ..models.coverage_models import CoverageFormat, FileCoverage, ParsedCoverage

RawReport = Union[str, bytes]


def round_percent(numerator: float, denominator: float) -> float:
    """
    Percentage rounded half-up to two decimals.

    Args:
        numerator: Covered count
        denominator: Total count

    Returns:
        100 * numerator / denominator, or 0.0 when denominator is 0
    """
    if not denominator:
        return 0.0
    value = Decimal(str(numerator)) * Decimal(100) / Decimal(str(denominator))
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def aggregate(files: List[FileCoverage]) -> ParsedCoverage:
    """
    Build the canonical report from per-file counts.

    Aggregate counts are sums of the per-file counts and the percentage is
    computed here, once.
    """
    total_lines = sum(f.lines for f in files)
    covered_lines = sum(f.covered_lines for f in files)
    return ParsedCoverage(
        total_lines=total_lines,
        covered_lines=covered_lines,
        total_branches=sum(f.branches for f in files),
        covered_branches=sum(f.covered_branches for f in files),
        coverage_percent=round_percent(covered_lines, total_lines),
        files=files,
    )


class CoverageParser(ABC):
    """Parser turning one report format into ParsedCoverage."""

    format: CoverageFormat

    @abstractmethod
    def parse(self, raw: RawReport) -> ParsedCoverage:
        """
        Parse a raw coverage report.

        Args:
            raw: Report content, text or UTF-8 bytes

        Returns:
            Canonical coverage

        Raises:
            CoverageParseError: If the report is empty or malformed
        """
        pass

    def _decode(self, raw: RawReport) -> str:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CoverageParseError(
                    f"{self.format.value} report is not valid UTF-8",
                    details={"position": e.start},
                ) from e
        if not raw or not raw.strip():
            raise CoverageParseError(f"Empty {self.format.value} report")
        return raw

    def _parse_xml(self, raw: RawReport, root_tag: str) -> ET.Element:
        text = self._decode(raw)
        try:
            root = ET.fromstring(text.strip())
        except ET.ParseError as e:
            raise CoverageParseError(
                f"Failed to parse {self.format.value} XML: {e}",
                details={"position": getattr(e, "position", None)},
            ) from e
        if root.tag != root_tag:
            raise CoverageParseError(
                f"Invalid {self.format.value} XML format: expected <{root_tag}> root, "
                f"got <{root.tag}>"
            )
        return root
