"""SQLite database setup and audit storage.

Table: audits
- id (integer, primary key)
- user_id (integer, nullable)
- public_id (text, unique share token)
- url (text)
- score (integer)
- result_json (text, full AuditResult in camelCase JSON)
- created_at (datetime)
"""

import json
import secrets
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from config import AUDIT_DB_PATH
from schemas import AuditResult, StoredAudit

DB_PATH: Path = AUDIT_DB_PATH


def get_connection() -> sqlite3.Connection:
    """Return a connection to the SQLite database."""
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create the audits table if it does not exist."""
    conn = get_connection()
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS audits (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER,
                public_id TEXT NOT NULL UNIQUE,
                url TEXT NOT NULL,
                score INTEGER NOT NULL,
                result_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.commit()
    finally:
        conn.close()


def _row_to_audit(row: sqlite3.Row) -> StoredAudit:
    data = json.loads(row["result_json"])
    data.update(
        {
            "id": row["id"],
            "userId": row["user_id"],
            "publicId": row["public_id"],
            "createdAt": row["created_at"],
        }
    )
    return StoredAudit.model_validate(data)


def insert_audit(result: AuditResult, user_id: int | None = None) -> StoredAudit:
    """Store an audit result and return it with its id and share token."""
    public_id = secrets.token_urlsafe(12)
    created_at = datetime.now(timezone.utc).isoformat()
    conn = get_connection()
    try:
        cursor = conn.execute(
            """
            INSERT INTO audits (user_id, public_id, url, score, result_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                public_id,
                result.url,
                result.score,
                result.model_dump_json(by_alias=True),
                created_at,
            ),
        )
        conn.commit()
        audit_id = cursor.lastrowid
    finally:
        conn.close()

    return StoredAudit(
        **result.model_dump(),
        id=audit_id,
        user_id=user_id,
        public_id=public_id,
        created_at=created_at,
    )


def get_audit(audit_id: int) -> StoredAudit | None:
    """Fetch an audit by id."""
    conn = get_connection()
    try:
        row = conn.execute("SELECT * FROM audits WHERE id = ?", (audit_id,)).fetchone()
        return _row_to_audit(row) if row is not None else None
    finally:
        conn.close()


def get_audit_by_public_id(public_id: str) -> StoredAudit | None:
    """Fetch a shared audit by its public token."""
    conn = get_connection()
    try:
        row = conn.execute("SELECT * FROM audits WHERE public_id = ?", (public_id,)).fetchone()
        return _row_to_audit(row) if row is not None else None
    finally:
        conn.close()


def list_audits(limit: int = 20, user_id: int | None = None) -> list[StoredAudit]:
    """Return recent audits, newest first, optionally for one user."""
    safe_limit = max(1, min(100, int(limit)))
    conn = get_connection()
    try:
        if user_id is None:
            rows = conn.execute(
                "SELECT * FROM audits ORDER BY id DESC LIMIT ?",
                (safe_limit,),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM audits WHERE user_id = ? ORDER BY id DESC LIMIT ?",
                (user_id, safe_limit),
            ).fetchall()
        return [_row_to_audit(row) for row in rows]
    finally:
        conn.close()
