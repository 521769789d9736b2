"""Cleanup run audit records in database."""

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..models import RunReport


class CleanupRunRecorder:
    """Persist cleanup run reports for auditing."""

    def record_run(self, conn: Connection, report: RunReport) -> int:
        """
        Insert or replace the audit record of a run.

        Returns:
            Record ID
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO cleanup_runs (
                    run_id, mode, status, started_at, finished_at,
                    deleted_count, failed_count, report_json
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (run_id) DO UPDATE SET
                    status = EXCLUDED.status,
                    finished_at = EXCLUDED.finished_at,
                    deleted_count = EXCLUDED.deleted_count,
                    failed_count = EXCLUDED.failed_count,
                    report_json = EXCLUDED.report_json
                RETURNING id
                """,
                (
                    report.run_id,
                    report.mode.value,
                    report.status.value if report.status else report.state.value,
                    report.started_at,
                    report.finished_at,
                    report.deleted_count,
                    report.failed_count,
                    Jsonb(report.model_dump(mode="json")),
                ),
            )
            record_id = cur.fetchone()["id"]

        conn.commit()
        return record_id
