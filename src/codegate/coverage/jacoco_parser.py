"""JaCoCo XML parser."""

import logging
import xml.etree.ElementTree as ET
from typing import List

from ..exceptions import CoverageParseError
from ..models.coverage_models import CoverageFormat, FileCoverage, ParsedCoverage
from .base import CoverageParser, RawReport, aggregate

logger = logging.getLogger(__name__)


class JacocoParser(CoverageParser):
    """Parse JaCoCo XML reports. A line is covered when ci > 0."""

    format = CoverageFormat.JACOCO

    def parse(self, raw: RawReport) -> ParsedCoverage:
        root = self._parse_xml(raw, "report")
        files: List[FileCoverage] = []

        for package in root.findall("./package"):
            package_name = package.get("name") or ""
            for sourcefile in package.findall("./sourcefile"):
                files.append(self._parse_sourcefile(package_name, sourcefile))

        logger.debug(f"Parsed JaCoCo report with {len(files)} files")
        return aggregate(files)

    def _parse_sourcefile(self, package_name: str, sourcefile: ET.Element) -> FileCoverage:
        filename = sourcefile.get("name") or "unknown"
        path = f"{package_name}/{filename}" if package_name else filename
        line_hits = {}
        lines = 0
        covered_lines = 0
        branches = 0
        covered_branches = 0

        for line in sourcefile.findall("./line"):
            number = line.get("nr")
            try:
                ci = int(line.get("ci") or "0")
                cb = int(line.get("cb") or "0")
                mb = int(line.get("mb") or "0")
            except ValueError as e:
                raise CoverageParseError(
                    f"Failed to parse JaCoCo XML: invalid counters on line {number} of {path}"
                ) from e
            if number is None:
                raise CoverageParseError(
                    f"Failed to parse JaCoCo XML: line without nr in {path}"
                )
            if ci < 0 or cb < 0 or mb < 0:
                raise CoverageParseError(
                    f"Failed to parse JaCoCo XML: negative counters on line {number} of {path}"
                )

            is_covered = ci > 0
            line_hits[number] = 1 if is_covered else 0
            lines += 1
            if is_covered:
                covered_lines += 1

            branches += cb + mb
            covered_branches += cb

        return FileCoverage(
            file_path=path,
            lines=lines,
            covered_lines=covered_lines,
            branches=branches,
            covered_branches=covered_branches,
            line_hits=line_hits,
        )
