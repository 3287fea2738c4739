from __future__ import annotations

import os
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Any

from milo.core.config import settings

_conn: sqlite3.Connection | None = None
_conn_lock = threading.Lock()

_EMPTY_PURGE = {"ai_analysis_runs": 0, "resume_processing_runs": 0}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_connection() -> sqlite3.Connection:
    global _conn
    with _conn_lock:
        if _conn is not None:
            return _conn

        db_path = settings.analytics_db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        _conn = sqlite3.connect(db_path, check_same_thread=False, timeout=5, isolation_level=None)
        _conn.execute("PRAGMA journal_mode=WAL;")
        _conn.execute("PRAGMA busy_timeout=5000;")
        _conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ai_analysis_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                run_id TEXT NOT NULL,
                tool_slug TEXT NOT NULL,
                model TEXT NOT NULL,
                schema_valid INTEGER NOT NULL,
                status TEXT NOT NULL,
                error_code TEXT,
                latency_ms INTEGER
            )
            """
        )
        _conn.execute(
            """
            CREATE TABLE IF NOT EXISTS resume_processing_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                run_id TEXT NOT NULL,
                user_hash TEXT NOT NULL,
                status TEXT NOT NULL,
                error_code TEXT,
                document_format TEXT,
                size_bytes INTEGER,
                text_chars INTEGER,
                readability REAL,
                truncated INTEGER NOT NULL DEFAULT 0,
                fields_fallback INTEGER NOT NULL DEFAULT 0,
                summary_fallback INTEGER NOT NULL DEFAULT 0,
                persisted INTEGER NOT NULL DEFAULT 0,
                latency_ms INTEGER
            )
            """
        )
        _conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ai_analysis_runs_created_at
            ON ai_analysis_runs (created_at)
            """
        )
        _conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_resume_processing_runs_created_at
            ON resume_processing_runs (created_at)
            """
        )
        return _conn


def init_db() -> None:
    if not settings.analytics_enabled:
        return
    _get_connection()
    purge_old_records()


def log_ai_analysis_run(
    *,
    run_id: str,
    tool_slug: str,
    model: str,
    schema_valid: bool,
    status: str,
    error_code: str | None = None,
    latency_ms: int | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    conn = _get_connection()
    with _conn_lock:
        conn.execute(
            """
            INSERT INTO ai_analysis_runs (
                created_at, run_id, tool_slug, model, schema_valid, status, error_code, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (_utc_now(), run_id, tool_slug, model, 1 if schema_valid else 0, status, error_code, latency_ms),
        )


def log_resume_processing_run(
    *,
    run_id: str,
    user_hash: str,
    status: str,
    error_code: str | None = None,
    document_format: str | None = None,
    size_bytes: int | None = None,
    text_chars: int | None = None,
    readability: float | None = None,
    truncated: bool = False,
    fields_fallback: bool = False,
    summary_fallback: bool = False,
    persisted: bool = False,
    latency_ms: int | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    conn = _get_connection()
    with _conn_lock:
        conn.execute(
            """
            INSERT INTO resume_processing_runs (
                created_at, run_id, user_hash, status, error_code, document_format, size_bytes,
                text_chars, readability, truncated, fields_fallback, summary_fallback, persisted, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                run_id,
                user_hash,
                status,
                error_code,
                document_format,
                size_bytes,
                text_chars,
                readability,
                1 if truncated else 0,
                1 if fields_fallback else 0,
                1 if summary_fallback else 0,
                1 if persisted else 0,
                latency_ms,
            ),
        )


def purge_old_records() -> dict[str, int]:
    if not settings.analytics_enabled:
        return dict(_EMPTY_PURGE)

    retention = f"-{max(1, int(settings.analytics_retention_days))} days"
    deleted = dict(_EMPTY_PURGE)
    conn = _get_connection()
    with _conn_lock:
        for table in deleted:
            cur = conn.execute(f"DELETE FROM {table} WHERE created_at < datetime('now', ?)", (retention,))
            deleted[table] = int(cur.rowcount or 0)
    return deleted


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def get_resume_summary() -> dict[str, Any]:
    if not settings.analytics_enabled:
        return {"enabled": False}
    conn = _get_connection()
    with _conn_lock:
        cur = conn.execute(
            """
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END), 0) AS succeeded,
                COALESCE(SUM(CASE WHEN status = 'error' THEN 1 ELSE 0 END), 0) AS errored,
                COALESCE(SUM(fields_fallback), 0) AS fields_fallbacks,
                COALESCE(SUM(summary_fallback), 0) AS summary_fallbacks,
                COALESCE(SUM(CASE WHEN status = 'success' AND persisted = 0 THEN 1 ELSE 0 END), 0)
                    AS persistence_failures
            FROM resume_processing_runs
            """
        )
        summary = _row_to_dict(cur, cur.fetchone())
    return {"enabled": True, **summary}


def get_latest_resume_runs(limit: int = 20) -> list[dict[str, Any]]:
    if not settings.analytics_enabled:
        return []
    conn = _get_connection()
    with _conn_lock:
        cur = conn.execute(
            """
            SELECT created_at, run_id, status, error_code, document_format, size_bytes, text_chars,
                   readability, truncated, fields_fallback, summary_fallback, persisted, latency_ms
            FROM resume_processing_runs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = cur.fetchall()
        return [_row_to_dict(cur, row) for row in rows]


def get_latest_ai_runs(limit: int = 20) -> list[dict[str, Any]]:
    if not settings.analytics_enabled:
        return []
    conn = _get_connection()
    with _conn_lock:
        cur = conn.execute(
            """
            SELECT created_at, run_id, tool_slug, model, schema_valid, status, error_code, latency_ms
            FROM ai_analysis_runs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = cur.fetchall()
        return [_row_to_dict(cur, row) for row in rows]


def clear_analytics() -> None:
    if not settings.analytics_enabled:
        return
    conn = _get_connection()
    with _conn_lock:
        conn.execute("DELETE FROM ai_analysis_runs")
        conn.execute("DELETE FROM resume_processing_runs")
