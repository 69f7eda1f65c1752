"""
Run metrics and resume ledger using DuckDB.

Tables:
- ingest_runs: one row per pipeline run
- ingest_regions: one row per processed region (the resume ledger: regions
  with status 'completed' are skipped by `brewery-ingest run --resume`)
"""

import duckdb
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional
import time


class MetricsCollector:
    def __init__(self, db_path: str = "data/metrics/runs.duckdb"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

        self.current_run_id: Optional[str] = None
        self.run_start_time: Optional[float] = None

    def _init_schema(self):
        with duckdb.connect(str(self.db_path)) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ingest_runs (
                    run_id VARCHAR PRIMARY KEY,
                    started_at TIMESTAMP NOT NULL,
                    finished_at TIMESTAMP,
                    status VARCHAR NOT NULL,  -- 'running', 'success', 'partial', 'failed', 'interrupted'
                    regions_discovered INTEGER,
                    regions_processed INTEGER,
                    api_requests INTEGER,
                    entity_failures INTEGER,
                    records_persisted INTEGER,
                    duration_seconds DOUBLE,
                    error_message TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS ingest_regions (
                    run_id VARCHAR NOT NULL,
                    region VARCHAR NOT NULL,
                    region_id VARCHAR,
                    status VARCHAR NOT NULL,  -- 'completed', 'partial', 'aborted'
                    entities INTEGER,
                    entity_failures INTEGER,
                    records INTEGER,
                    stored INTEGER,
                    backup_path VARCHAR,
                    duration_seconds DOUBLE,
                    error_message TEXT,
                    finished_at TIMESTAMP NOT NULL
                )
            """)

    def start_run(self, run_id: str, resume: bool = False):
        """
        Open a run. With resume=True an existing run row is reopened, so the
        region ledger and the run totals keep accumulating under the same run_id.
        """
        with duckdb.connect(str(self.db_path)) as conn:
            exists = conn.execute(
                "SELECT COUNT(*) FROM ingest_runs WHERE run_id = ?", [run_id]
            ).fetchone()[0]

            if exists and resume:
                conn.execute("""
                    UPDATE ingest_runs
                    SET status = 'running', finished_at = NULL
                    WHERE run_id = ?
                """, [run_id])
            elif exists:
                raise ValueError(f"Run {run_id} already exists (use resume=True)")
            else:
                conn.execute("""
                    INSERT INTO ingest_runs (run_id, started_at, status)
                    VALUES (?, ?, 'running')
                """, [run_id, datetime.now()])

        self.current_run_id = run_id
        self.run_start_time = time.time()

    def record_region(
        self,
        region: str,
        status: str,
        region_id: str = None,
        entities: int = 0,
        entity_failures: int = 0,
        records: int = 0,
        stored: int = 0,
        backup_path: str = None,
        duration_seconds: float = None,
        error_message: str = None,
    ):
        """Append one region outcome to the ledger."""
        if not self.current_run_id:
            raise ValueError("No active run. Call start_run() first.")

        with duckdb.connect(str(self.db_path)) as conn:
            conn.execute("""
                INSERT INTO ingest_regions (
                    run_id, region, region_id, status, entities, entity_failures,
                    records, stored, backup_path, duration_seconds, error_message,
                    finished_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                self.current_run_id,
                region,
                region_id,
                status,
                entities,
                entity_failures,
                records,
                stored,
                backup_path,
                duration_seconds,
                error_message,
                datetime.now(),
            ])

    def finish_run(
        self,
        status: str,
        regions_discovered: int = None,
        regions_processed: int = None,
        api_requests: int = None,
        entity_failures: int = None,
        records_persisted: int = None,
        error_message: str = None,
    ):
        """
        Close the active run. Counts are added to the row, so a resumed run
        ends with the totals of all its sessions.
        """
        if not self.current_run_id:
            raise ValueError("No active run. Call start_run() first.")

        duration = time.time() - self.run_start_time if self.run_start_time else None

        with duckdb.connect(str(self.db_path)) as conn:
            conn.execute("""
                UPDATE ingest_runs
                SET finished_at = ?,
                    status = ?,
                    regions_discovered = COALESCE(CAST(? AS INTEGER), regions_discovered),
                    regions_processed = COALESCE(regions_processed, 0) + COALESCE(CAST(? AS INTEGER), 0),
                    api_requests = COALESCE(api_requests, 0) + COALESCE(CAST(? AS INTEGER), 0),
                    entity_failures = COALESCE(entity_failures, 0) + COALESCE(CAST(? AS INTEGER), 0),
                    records_persisted = COALESCE(records_persisted, 0) + COALESCE(CAST(? AS INTEGER), 0),
                    duration_seconds = COALESCE(duration_seconds, 0) + COALESCE(CAST(? AS DOUBLE), 0),
                    error_message = ?
                WHERE run_id = ?
            """, [
                datetime.now(),
                status,
                regions_discovered,
                regions_processed,
                api_requests,
                entity_failures,
                records_persisted,
                duration,
                error_message,
                self.current_run_id,
            ])

        self.current_run_id = None
        self.run_start_time = None

    def completed_regions(self, run_id: str) -> set[str]:
        """Regions a previous run fully completed (skipped on resume)."""
        with duckdb.connect(str(self.db_path)) as conn:
            rows = conn.execute("""
                SELECT DISTINCT region
                FROM ingest_regions
                WHERE run_id = ? AND status = 'completed'
            """, [run_id]).fetchall()
        return {row[0] for row in rows}

    def latest_run_id(self) -> Optional[str]:
        with duckdb.connect(str(self.db_path)) as conn:
            row = conn.execute("""
                SELECT run_id FROM ingest_runs
                WHERE NOT starts_with(run_id, 'refetch_')
                ORDER BY started_at DESC, rowid DESC
                LIMIT 1
            """).fetchone()
        return row[0] if row else None

    def get_run_stats(self, days: int = 30):
        """Per-run totals for the last N days, newest first."""
        with duckdb.connect(str(self.db_path)) as conn:
            return conn.execute("""
                SELECT
                    run_id,
                    status,
                    started_at,
                    regions_processed,
                    api_requests,
                    entity_failures,
                    records_persisted,
                    duration_seconds
                FROM ingest_runs
                WHERE started_at > ?
                ORDER BY started_at DESC
            """, [datetime.now() - timedelta(days=days)]).fetchdf()
