"""Ad-hoc database migrations for the offline operation store."""

from __future__ import annotations

from sqlalchemy import text


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_operation_columns(conn) -> None:
    # databases written before group-scoped operations and failure reasons
    columns = {
        "entity_id": "TEXT",
        "group_id": "TEXT",
        "error_message": "TEXT",
        "retry_count": "INTEGER NOT NULL DEFAULT 0",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, "offline_operation", name):
            conn.execute(text(f"ALTER TABLE offline_operation ADD COLUMN {name} {ddl_type}"))


def ensure_operation_indexes(conn) -> None:
    conn.execute(
        text(
            """
            CREATE INDEX IF NOT EXISTS ix_offline_operation_status_created
            ON offline_operation (status, created_at)
            """
        )
    )


def clear_stale_in_progress(conn) -> None:
    # a process that died mid-pass leaves records inProgress; they were never confirmed
    conn.execute(
        text(
            """
            UPDATE offline_operation
            SET status = 'pending'
            WHERE status = 'inProgress'
            """
        )
    )


def run_all(engine) -> None:
    with engine.begin() as conn:
        ensure_operation_columns(conn)
        ensure_operation_indexes(conn)
        clear_stale_in_progress(conn)


__all__ = ["run_all"]
