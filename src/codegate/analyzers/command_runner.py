"""Analyzer runner executing a local command over an extracted snapshot.

PATTERN: Tools run in subprocess, JSON report on stdout
CRITICAL: The process is killed when the caller's timeout cancels the run
GOTCHA: No isolation; development use only
"""

import asyncio
import io
import json
import logging
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Dict, List

from ..exceptions import AnalyzerExecutionError
from ..models.analysis_models import Analysis, AnalyzerSpec
from .base import AnalyzerRunner

logger = logging.getLogger(__name__)


class CommandAnalyzerRunner(AnalyzerRunner):
    """
    Runs analyzer.config["command"] with "{source}" replaced by the
    extracted snapshot directory.
    """

    def __init__(self):
        self.logger = logger

    def _extract(self, snapshot: bytes, target: Path) -> None:
        root = target.resolve()
        try:
            with zipfile.ZipFile(io.BytesIO(snapshot)) as archive:
                for member in archive.namelist():
                    destination = (root / member).resolve()
                    if root not in destination.parents and destination != root:
                        raise AnalyzerExecutionError(f"Snapshot entry escapes archive: {member}")
                archive.extractall(target)
        except zipfile.BadZipFile as e:
            raise AnalyzerExecutionError(f"Source snapshot is not a zip archive: {e}") from e

    def _command(self, analyzer: AnalyzerSpec, source: Path) -> List[str]:
        command = analyzer.config.get("command")
        if not command or not isinstance(command, list):
            raise AnalyzerExecutionError(
                f"Analyzer {analyzer.key} has no command configured"
            )
        return [str(part).replace("{source}", str(source)) for part in command]

    async def run(
        self, analyzer: AnalyzerSpec, snapshot: bytes, analysis: Analysis
    ) -> Dict[str, Any]:
        with tempfile.TemporaryDirectory(prefix=f"codegate-{analysis.id}-") as workdir:
            source = Path(workdir)
            self._extract(snapshot, source)
            cmd = self._command(analyzer, source)

            self.logger.info(f"Running analyzer {analyzer.key} for analysis {analysis.id}")
            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=workdir,
                )
            except FileNotFoundError as e:
                raise AnalyzerExecutionError(
                    f"Analyzer {analyzer.key} executable not found: {cmd[0]}"
                ) from e

            try:
                stdout, stderr = await process.communicate()
            except asyncio.CancelledError:
                process.kill()
                await process.wait()
                raise

        if process.returncode != 0:
            raise AnalyzerExecutionError(
                f"Analyzer {analyzer.key} exited with code {process.returncode}",
                details={"stderr": stderr.decode(errors="replace")[-2000:]},
            )
        if not stdout.strip():
            raise AnalyzerExecutionError(f"Analyzer {analyzer.key} produced no report")

        try:
            return json.loads(stdout.decode())
        except json.JSONDecodeError as e:
            raise AnalyzerExecutionError(
                f"Analyzer {analyzer.key} report is not valid JSON: {e}"
            ) from e
