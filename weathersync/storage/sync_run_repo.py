"""Repository for bulk and scheduled sync run tracking."""

from weathersync.models.common import to_iso, utc_now
from weathersync.models.sync import SyncRunSummary
from weathersync.storage.database import Database


def record_sync_run(db: Database, summary: SyncRunSummary) -> int:
    """Persist a sync run summary. Returns the row id."""
    with db.transaction() as conn:
        cursor = conn.execute(
            "INSERT INTO sync_runs "
            "(trigger, total, succeeded, failed, conflicts, duration_seconds, completed_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                summary.trigger,
                summary.total,
                summary.succeeded,
                summary.failed,
                summary.conflicts,
                summary.duration_seconds,
                to_iso(utc_now()),
            ),
        )
    assert cursor.lastrowid is not None
    return cursor.lastrowid


def get_latest_sync_run(db: Database) -> dict | None:
    with db.lock:
        row = db.conn.execute(
            "SELECT * FROM sync_runs ORDER BY completed_at DESC, id DESC LIMIT 1"
        ).fetchone()
    return None if row is None else dict(row)


def get_recent_sync_runs(db: Database, limit: int = 20) -> list[dict]:
    with db.lock:
        rows = db.conn.execute(
            "SELECT * FROM sync_runs ORDER BY completed_at DESC, id DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [dict(r) for r in rows]
