"""
Moderation Database Module
Stores moderation records, reviewer notifications, user warnings and user roles in SQLite.
Records are written by the escalation step and later updated by reviewers/authors.
"""
import sqlite3
import logging
from datetime import datetime, UTC
from typing import Dict, List, Optional

from config import KNOWN_ROLES, MODERATION_DB_PATH

logger = logging.getLogger(__name__)

DB_PATH = MODERATION_DB_PATH


def get_db_connection():
    """Get a database connection with WAL mode and concurrent access optimizations."""
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    # Enable WAL mode for concurrent reads/writes
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA busy_timeout=5000")  # 5 second timeout for locked DB
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def _now() -> str:
    return datetime.now(UTC).isoformat()


def init_db():
    """Initialize the moderation database with required tables."""
    conn = get_db_connection()
    try:
        cursor = conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS moderation_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                author_id TEXT NOT NULL,
                content_type TEXT NOT NULL DEFAULT 'message',
                content_id TEXT,
                violation_kind TEXT NOT NULL,
                severity_level TEXT NOT NULL,
                flagged_content TEXT,
                confidence REAL,
                reviewed INTEGER DEFAULT 0,
                reviewed_by TEXT,
                reviewed_at TEXT,
                created_at TEXT NOT NULL
            )
            """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS reviewer_notifications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                recipient_id TEXT NOT NULL,
                moderation_id INTEGER REFERENCES moderation_records(id),
                message TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS user_warnings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                author_id TEXT NOT NULL,
                moderation_id INTEGER REFERENCES moderation_records(id),
                warning_type TEXT NOT NULL,
                warning_message TEXT NOT NULL,
                acknowledged INTEGER DEFAULT 0,
                acknowledged_at TEXT,
                created_at TEXT NOT NULL
            )
            """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS user_roles (
                user_id TEXT NOT NULL,
                role TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE(user_id, role)
            )
            """
        )

        # Indexes for the reviewer queue and the author's warning inbox
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_records_reviewed ON moderation_records(reviewed, created_at)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_records_author ON moderation_records(author_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_notifications_recipient ON reviewer_notifications(recipient_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_warnings_author ON user_warnings(author_id, acknowledged)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_roles_role ON user_roles(role)")

        conn.commit()
        logger.info(f"Moderation database initialized at {DB_PATH}")
    finally:
        conn.close()


# ============================================================================
# ESCALATION WRITES
# ============================================================================

def insert_moderation_record(
    author_id: str,
    violation_kind: str,
    severity_level: str,
    flagged_content: str,
    confidence: Optional[float],
    content_type: str = "message",
    content_id: Optional[str] = None,
) -> int:
    """Insert a moderation record and return its id."""
    conn = get_db_connection()
    try:
        cursor = conn.execute(
            """
            INSERT INTO moderation_records (
                author_id, content_type, content_id, violation_kind, severity_level,
                flagged_content, confidence, reviewed, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)
            """,
            (author_id, content_type, content_id, violation_kind, severity_level,
             flagged_content, confidence, _now()),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


def insert_reviewer_notifications(recipient_ids: List[str], moderation_id: Optional[int], message: str) -> int:
    """Insert one notification per recipient in a single transaction. Returns rows written."""
    if not recipient_ids:
        return 0
    created_at = _now()
    conn = get_db_connection()
    try:
        conn.executemany(
            """
            INSERT INTO reviewer_notifications (recipient_id, moderation_id, message, created_at)
            VALUES (?, ?, ?, ?)
            """,
            [(rid, moderation_id, message, created_at) for rid in recipient_ids],
        )
        conn.commit()
        return len(recipient_ids)
    finally:
        conn.close()


def insert_user_warning(author_id: str, moderation_id: Optional[int], warning_type: str, warning_message: str) -> int:
    """Insert a warning for the author and return its id."""
    conn = get_db_connection()
    try:
        cursor = conn.execute(
            """
            INSERT INTO user_warnings (author_id, moderation_id, warning_type, warning_message, acknowledged, created_at)
            VALUES (?, ?, ?, ?, 0, ?)
            """,
            (author_id, moderation_id, warning_type, warning_message, _now()),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


# ============================================================================
# ROLES
# ============================================================================

def assign_role(user_id: str, role: str) -> bool:
    """Grant a role. Returns False if the user already holds it."""
    if role not in KNOWN_ROLES:
        raise ValueError(f"Unknown role: {role}")
    conn = get_db_connection()
    try:
        cursor = conn.execute(
            "INSERT OR IGNORE INTO user_roles (user_id, role, created_at) VALUES (?, ?, ?)",
            (user_id, role, _now()),
        )
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def revoke_role(user_id: str, role: str) -> bool:
    conn = get_db_connection()
    try:
        cursor = conn.execute("DELETE FROM user_roles WHERE user_id = ? AND role = ?", (user_id, role))
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def list_users_with_role(role: str) -> List[str]:
    """Return ids of every user holding `role`, oldest grant first."""
    conn = get_db_connection()
    try:
        rows = conn.execute(
            "SELECT user_id FROM user_roles WHERE role = ? ORDER BY created_at, rowid",
            (role,),
        ).fetchall()
        return [row["user_id"] for row in rows]
    finally:
        conn.close()


# ============================================================================
# REVIEW / ACKNOWLEDGEMENT
# ============================================================================

def get_moderation_record(moderation_id: int) -> Optional[Dict]:
    conn = get_db_connection()
    try:
        row = conn.execute("SELECT * FROM moderation_records WHERE id = ?", (moderation_id,)).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def get_pending_records(limit: int = 50) -> List[Dict]:
    """Moderation records not yet reviewed, newest first."""
    conn = None
    try:
        conn = get_db_connection()
        rows = conn.execute(
            """
            SELECT * FROM moderation_records
            WHERE reviewed = 0
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
        return [dict(row) for row in rows]
    except Exception as e:
        logger.error(f"Failed to fetch pending moderation records: {e}")
        return []
    finally:
        if conn is not None:
            conn.close()


def mark_reviewed(moderation_id: int, reviewer_id: Optional[str] = None) -> bool:
    conn = get_db_connection()
    try:
        cursor = conn.execute(
            "UPDATE moderation_records SET reviewed = 1, reviewed_by = ?, reviewed_at = ? WHERE id = ?",
            (reviewer_id, _now(), moderation_id),
        )
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def get_notifications_for(recipient_id: str) -> List[Dict]:
    conn = get_db_connection()
    try:
        rows = conn.execute(
            "SELECT * FROM reviewer_notifications WHERE recipient_id = ? ORDER BY id DESC",
            (recipient_id,),
        ).fetchall()
        return [dict(row) for row in rows]
    finally:
        conn.close()


def get_unacknowledged_warnings(author_id: str) -> List[Dict]:
    """Warnings the author has not acknowledged yet, newest first."""
    conn = None
    try:
        conn = get_db_connection()
        rows = conn.execute(
            """
            SELECT * FROM user_warnings
            WHERE author_id = ? AND acknowledged = 0
            ORDER BY created_at DESC, id DESC
            """,
            (author_id,),
        ).fetchall()
        return [dict(row) for row in rows]
    except Exception as e:
        logger.error(f"Failed to fetch warnings for {author_id}: {e}")
        return []
    finally:
        if conn is not None:
            conn.close()


def acknowledge_warning(warning_id: int, author_id: str) -> bool:
    """Mark a warning acknowledged. Only the warned author may acknowledge it."""
    conn = get_db_connection()
    try:
        cursor = conn.execute(
            """
            UPDATE user_warnings SET acknowledged = 1, acknowledged_at = ?
            WHERE id = ? AND author_id = ? AND acknowledged = 0
            """,
            (_now(), warning_id, author_id),
        )
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()
