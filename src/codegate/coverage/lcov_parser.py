"""LCOV tracefile parser."""

import logging
from typing import Dict, List, Optional

from ..exceptions import CoverageParseError
from ..models.coverage_models import CoverageFormat, FileCoverage, ParsedCoverage
from .base import CoverageParser, RawReport, aggregate

logger = logging.getLogger(__name__)


class _Record:
    def __init__(self, path: str):
        self.path = path
        self.line_hits: Dict[str, int] = {}
        self.lines = 0
        self.covered_lines = 0
        self.branches = 0
        self.covered_branches = 0

    def to_file(self) -> FileCoverage:
        if self.branches < 0 or self.covered_branches < 0:
            raise CoverageParseError(
                f"Failed to parse LCOV file: negative branch count for {self.path}"
            )
        return FileCoverage(
            file_path=self.path or "unknown",
            lines=self.lines,
            covered_lines=self.covered_lines,
            branches=self.branches,
            covered_branches=min(self.covered_branches, self.branches),
            line_hits=self.line_hits,
        )


class LcovParser(CoverageParser):
    """
    Parse LCOV tracefiles.

    Only SF, DA, BRF, BRH and end_of_record are read. Branch totals come from
    BRF/BRH, never from BRDA or line data.
    """

    format = CoverageFormat.LCOV

    def parse(self, raw: RawReport) -> ParsedCoverage:
        text = self._decode(raw)
        files: List[FileCoverage] = []
        record: Optional[_Record] = None

        for number, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue

            if line == "end_of_record":
                if record is not None:
                    files.append(record.to_file())
                record = None
                continue

            tag, sep, value = line.partition(":")
            if not sep:
                continue

            if tag == "SF":
                if record is not None:
                    files.append(record.to_file())
                record = _Record(value.strip())
                continue

            if record is None:
                # TN and other header lines outside a file record
                continue

            try:
                if tag == "DA":
                    parts = value.split(",")
                    line_no = int(parts[0])
                    hits = int(parts[1])
                    record.line_hits[str(line_no)] = hits
                    record.lines += 1
                    if hits > 0:
                        record.covered_lines += 1
                elif tag == "BRF":
                    record.branches = int(value)
                elif tag == "BRH":
                    record.covered_branches = int(value)
            except (ValueError, IndexError) as e:
                raise CoverageParseError(
                    f"Failed to parse LCOV file: malformed {tag} entry on line {number}",
                    details={"line": number, "content": line},
                ) from e

        if record is not None:
            files.append(record.to_file())

        if not files:
            raise CoverageParseError("Empty or invalid LCOV file: no file records")

        logger.debug(f"Parsed LCOV report with {len(files)} files")
        return aggregate(files)
