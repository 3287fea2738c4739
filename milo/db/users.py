from __future__ import annotations

import json
import os
import sqlite3
import threading
from datetime import datetime, timezone

from milo.core.config import settings
from milo.schemas.resume import ResumeRecord

_conn: sqlite3.Connection | None = None
_conn_lock = threading.Lock()


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_connection() -> sqlite3.Connection:
    global _conn
    with _conn_lock:
        if _conn is not None:
            return _conn

        db_path = settings.users_db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        _conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        _conn.execute("PRAGMA journal_mode=WAL;")
        _conn.execute("PRAGMA synchronous=NORMAL;")
        _conn.execute("PRAGMA busy_timeout=5000;")
        _conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                resume_data_json TEXT,
                resume_processed_at TEXT,
                updated_at TEXT NOT NULL
            );
            """
        )
        return _conn


def init_db() -> None:
    _get_connection()


def save_resume_record(user_id: str, record: ResumeRecord) -> None:
    """Store the user's resume, replacing any earlier upload."""
    payload = json.dumps(record.to_wire(), ensure_ascii=False)
    conn = _get_connection()
    with _conn_lock:
        conn.execute(
            """
            INSERT INTO users (user_id, resume_data_json, resume_processed_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                resume_data_json = excluded.resume_data_json,
                resume_processed_at = excluded.resume_processed_at,
                updated_at = excluded.updated_at
            """,
            (user_id, payload, record.processed_at, _utc_now()),
        )


def get_resume_record(user_id: str) -> ResumeRecord | None:
    conn = _get_connection()
    with _conn_lock:
        row = conn.execute(
            "SELECT resume_data_json FROM users WHERE user_id = ?",
            (user_id,),
        ).fetchone()
    if not row or not row[0]:
        return None
    return ResumeRecord.model_validate(json.loads(row[0]))


def clear_resume_records() -> None:
    conn = _get_connection()
    with _conn_lock:
        conn.execute("DELETE FROM users")
