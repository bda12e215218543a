"""SQLite-backed system of record."""

import asyncio
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from ..exceptions import ConflictError, InputError, NotFoundError, StoreUnavailableError
from ..models.analysis_models import (
    Analysis,
    AnalysisStatus,
    Issue,
    IssueResolution,
    IssueStatus,
    ProjectSettings,
)
from ..models.coverage_models import CoverageReport
from ..models.quality_models import MetricScope, QualityGate
from .base import AnalysisStore

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS analyses (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        branch TEXT,
        status TEXT NOT NULL,
        submitted_at TEXT NOT NULL,
        data_json TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_analyses_project
    ON analyses(project_id, status, submitted_at DESC)
    """,
    """
    CREATE TABLE IF NOT EXISTS issues (
        id TEXT PRIMARY KEY,
        analysis_id TEXT NOT NULL,
        status TEXT NOT NULL,
        is_new INTEGER NOT NULL,
        data_json TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_issues_analysis
    ON issues(analysis_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS issue_resolutions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        issue_id TEXT NOT NULL,
        data_json TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS coverage_reports (
        analysis_id TEXT PRIMARY KEY,
        data_json TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS metrics (
        analysis_id TEXT NOT NULL,
        scope TEXT NOT NULL,
        metric_key TEXT NOT NULL,
        value REAL NOT NULL,
        PRIMARY KEY (analysis_id, scope, metric_key)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS project_settings (
        project_id TEXT PRIMARY KEY,
        data_json TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quality_gates (
        project_id TEXT PRIMARY KEY,
        data_json TEXT NOT NULL
    )
    """,
)


class SqliteAnalysisStore(AnalysisStore):
    """
    Store using SQLite for persistence.

    Records are kept as JSON documents next to the columns queries filter on.

    PATTERN: Blocking queries run in the default executor
    GOTCHA: Opens and closes a connection per call
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize store.

        Args:
            db_path: SQLite database file
        """
        self.db_path = Path(db_path)
        self._ensure_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _ensure_db(self) -> None:
        """Ensure database and tables exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with closing(self._connect()) as conn, conn:
                for statement in SCHEMA:
                    conn.execute(statement)
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database {self.db_path}: {e}")
            raise StoreUnavailableError(
                "Analysis store unavailable", details={"error": str(e)}
            ) from e

    def _write(self, sql: str, rows: List[tuple]) -> int:
        with closing(self._connect()) as conn, conn:
            if len(rows) == 1:
                return conn.execute(sql, rows[0]).rowcount
            return conn.executemany(sql, rows).rowcount

    def _read(self, sql: str, params: tuple) -> List[tuple]:
        with closing(self._connect()) as conn:
            return conn.execute(sql, params).fetchall()

    async def _run(self, func: Callable, *args):
        # Blocking sqlite calls stay off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def _execute(self, sql: str, params: tuple = ()) -> int:
        return await self._execute_many(sql, [params])

    async def _execute_many(self, sql: str, rows: List[tuple]) -> int:
        try:
            return await self._run(self._write, sql, rows)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            logger.error(f"Database write failed: {e}")
            raise StoreUnavailableError(
                "Analysis store unavailable", details={"error": str(e)}
            ) from e

    async def _query(self, sql: str, params: tuple = ()) -> List[tuple]:
        try:
            return await self._run(self._read, sql, params)
        except sqlite3.Error as e:
            logger.error(f"Database read failed: {e}")
            raise StoreUnavailableError(
                "Analysis store unavailable", details={"error": str(e)}
            ) from e

    # Analyses

    def _analysis_params(self, analysis: Analysis) -> tuple:
        return (
            analysis.project_id,
            analysis.effective_branch,
            analysis.status.value,
            analysis.submitted_at.isoformat(),
            analysis.model_dump_json(),
        )

    async def create_analysis(self, analysis: Analysis) -> Analysis:
        try:
            await self._execute(
                """
                INSERT INTO analyses (project_id, branch, status, submitted_at, data_json, id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                self._analysis_params(analysis) + (analysis.id,),
            )
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"Analysis {analysis.id} already exists") from e
        return analysis

    async def get_analysis(self, analysis_id: str) -> Optional[Analysis]:
        rows = await self._query("SELECT data_json FROM analyses WHERE id = ?", (analysis_id,))
        return Analysis.model_validate_json(rows[0][0]) if rows else None

    async def update_analysis(self, analysis: Analysis) -> Analysis:
        updated = await self._execute(
            """
            UPDATE analyses
            SET project_id = ?, branch = ?, status = ?, submitted_at = ?, data_json = ?
            WHERE id = ?
            """,
            self._analysis_params(analysis) + (analysis.id,),
        )
        if updated == 0:
            raise NotFoundError(f"Analysis {analysis.id} not found")
        return analysis

    async def list_analyses(
        self,
        project_id: str,
        status: Optional[AnalysisStatus] = None,
        branch: Optional[str] = None,
    ) -> List[Analysis]:
        sql = "SELECT data_json FROM analyses WHERE project_id = ?"
        params: list = [project_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        if branch is not None:
            sql += " AND branch = ?"
            params.append(branch)
        sql += " ORDER BY submitted_at DESC"

        rows = await self._query(sql, tuple(params))
        return [Analysis.model_validate_json(row[0]) for row in rows]

    async def count_analyses(self, status: AnalysisStatus) -> int:
        rows = await self._query(
            "SELECT COUNT(*) FROM analyses WHERE status = ?", (status.value,)
        )
        return rows[0][0]

    # Project settings and gates

    async def get_project_settings(self, project_id: str) -> Optional[ProjectSettings]:
        rows = await self._query(
            "SELECT data_json FROM project_settings WHERE project_id = ?", (project_id,)
        )
        return ProjectSettings.model_validate_json(rows[0][0]) if rows else None

    async def save_project_settings(self, settings: ProjectSettings) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO project_settings (project_id, data_json) VALUES (?, ?)",
            (settings.project_id, settings.model_dump_json()),
        )

    async def get_quality_gate(self, project_id: str) -> Optional[QualityGate]:
        rows = await self._query(
            "SELECT data_json FROM quality_gates WHERE project_id = ?", (project_id,)
        )
        return QualityGate.model_validate_json(rows[0][0]) if rows else None

    async def save_quality_gate(self, gate: QualityGate) -> None:
        if gate.project_id is None:
            raise InputError("Only project gates are stored; default gates come from config")
        await self._execute(
            "INSERT OR REPLACE INTO quality_gates (project_id, data_json) VALUES (?, ?)",
            (gate.project_id, gate.model_dump_json()),
        )

    # Issues

    async def save_issues(self, issues: List[Issue]) -> None:
        if not issues:
            return
        await self._execute_many(
            """
            INSERT OR REPLACE INTO issues (id, analysis_id, status, is_new, data_json)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (
                    issue.id,
                    issue.analysis_id,
                    issue.status.value,
                    int(issue.is_new),
                    issue.model_dump_json(),
                )
                for issue in issues
            ],
        )

    async def list_issues(
        self,
        analysis_id: str,
        status: Optional[IssueStatus] = None,
        only_new: bool = False,
    ) -> List[Issue]:
        sql = "SELECT data_json FROM issues WHERE analysis_id = ?"
        params: list = [analysis_id]
        if status is not None:
            sql += " AND status = ?"
            params.append(status.value)
        if only_new:
            sql += " AND is_new = 1"
        sql += " ORDER BY rowid"

        rows = await self._query(sql, tuple(params))
        return [Issue.model_validate_json(row[0]) for row in rows]

    async def get_issue(self, issue_id: str) -> Optional[Issue]:
        rows = await self._query("SELECT data_json FROM issues WHERE id = ?", (issue_id,))
        return Issue.model_validate_json(rows[0][0]) if rows else None

    async def update_issue_status(self, issue_id: str, status: IssueStatus) -> Issue:
        issue = await self.get_issue(issue_id)
        if issue is None:
            raise NotFoundError(f"Issue {issue_id} not found")

        updated = issue.model_copy(update={"status": status})
        await self._execute(
            "UPDATE issues SET status = ?, data_json = ? WHERE id = ?",
            (status.value, updated.model_dump_json(), issue_id),
        )
        return updated

    async def add_resolution(self, resolution: IssueResolution) -> None:
        await self._execute(
            "INSERT INTO issue_resolutions (issue_id, data_json) VALUES (?, ?)",
            (resolution.issue_id, resolution.model_dump_json()),
        )

    async def list_resolutions(self, issue_id: str) -> List[IssueResolution]:
        rows = await self._query(
            "SELECT data_json FROM issue_resolutions WHERE issue_id = ? ORDER BY id",
            (issue_id,),
        )
        return [IssueResolution.model_validate_json(row[0]) for row in rows]

    # Coverage and metrics

    async def save_coverage_report(self, report: CoverageReport) -> CoverageReport:
        try:
            await self._execute(
                "INSERT INTO coverage_reports (analysis_id, data_json) VALUES (?, ?)",
                (report.analysis_id, report.model_dump_json()),
            )
        except sqlite3.IntegrityError as e:
            raise ConflictError(
                f"Coverage report already exists for analysis {report.analysis_id}"
            ) from e
        return report

    async def get_coverage_report(self, analysis_id: str) -> Optional[CoverageReport]:
        rows = await self._query(
            "SELECT data_json FROM coverage_reports WHERE analysis_id = ?", (analysis_id,)
        )
        return CoverageReport.model_validate_json(rows[0][0]) if rows else None

    async def save_metrics(
        self, analysis_id: str, scope: MetricScope, metrics: Dict[str, float]
    ) -> None:
        if not metrics:
            return
        await self._execute_many(
            """
            INSERT OR REPLACE INTO metrics (analysis_id, scope, metric_key, value)
            VALUES (?, ?, ?, ?)
            """,
            [(analysis_id, scope.value, k, float(v)) for k, v in metrics.items()],
        )

    async def get_metrics(self, analysis_id: str, scope: MetricScope) -> Dict[str, float]:
        rows = await self._query(
            "SELECT metric_key, value FROM metrics WHERE analysis_id = ? AND scope = ?",
            (analysis_id, scope.value),
        )
        return {key: value for key, value in rows}
