"""Cobertura XML parser."""

import logging
import re
import xml.etree.ElementTree as ET
from typing import List

from ..exceptions import CoverageParseError
from ..models.coverage_models import CoverageFormat, FileCoverage, ParsedCoverage
from .base import CoverageParser, RawReport, aggregate

logger = logging.getLogger(__name__)

# condition-coverage="50% (1/2)"
CONDITION_PATTERN = re.compile(r"\((\d+)/(\d+)\)")


class CoberturaParser(CoverageParser):
    """
    Parse Cobertura XML reports.

    GOTCHA: Each branch="true" line adds exactly one branch to the total, while
        covered branches come from the condition-coverage numerator. The
        per-file covered count is clamped to the total.
    """

    format = CoverageFormat.COBERTURA

    def parse(self, raw: RawReport) -> ParsedCoverage:
        root = self._parse_xml(raw, "coverage")
        files: List[FileCoverage] = []

        for cls in root.findall("./packages/package/classes/class"):
            files.append(self._parse_class(cls))

        logger.debug(f"Parsed Cobertura report with {len(files)} files")
        return aggregate(files)

    def _parse_class(self, cls: ET.Element) -> FileCoverage:
        filename = cls.get("filename") or cls.get("name") or "unknown"
        line_hits = {}
        lines = 0
        covered_lines = 0
        branches = 0
        covered_branches = 0

        for line in cls.findall("./lines/line"):
            number = line.get("number")
            try:
                hits = int(line.get("hits") or "0")
            except ValueError as e:
                raise CoverageParseError(
                    f"Failed to parse Cobertura XML: invalid hits on line {number} of {filename}"
                ) from e
            if number is None:
                raise CoverageParseError(
                    f"Failed to parse Cobertura XML: line without number in {filename}"
                )

            line_hits[number] = hits
            lines += 1
            if hits > 0:
                covered_lines += 1

            if line.get("branch") == "true":
                branches += 1
                condition = line.get("condition-coverage")
                if condition:
                    match = CONDITION_PATTERN.search(condition)
                    if match:
                        covered_branches += int(match.group(1))
                elif hits > 0:
                    covered_branches += 1

        return FileCoverage(
            file_path=filename,
            lines=lines,
            covered_lines=covered_lines,
            branches=branches,
            covered_branches=min(covered_branches, branches),
            line_hits=line_hits,
        )
