"""
scrollsense/stores/sqlite_store.py
SQLite-backed SessionStore and FeedbackStore.

SCHEMA DESIGN NOTES:
- usage_sessions is the timeline; one row per session, end_ms == start_ms
  while the session is open, closed=1 once finalized
- user_feedback holds one learned correction per package
- scrollsense_meta stores replay/run metadata and schema version
- All timestamps stored as INTEGER milliseconds (Unix epoch * 1000)

Every public call opens its own short-lived connection, so the background
writer thread and API readers never share a connection object.
sqlite3.Error is re-raised as PersistenceFailure.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from scrollsense.errors import PersistenceFailure
from scrollsense.models.record import FeedbackRecord, Session
from scrollsense.stores.base import FeedbackStore, SessionStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.0'


class _SqliteBase:

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        with self._connect() as conn:
            _create_schema(conn)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=10)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")   # Safe concurrent reads
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceFailure(str(e)) from e
        finally:
            conn.close()


# ── SCHEMA ───────────────────────────────────────────────────

def _create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS scrollsense_meta (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            run_at          TEXT    NOT NULL,
            run_label       TEXT,
            schema_version  TEXT    NOT NULL,
            event_count     INTEGER DEFAULT 0,
            session_count   INTEGER DEFAULT 0,
            notes           TEXT
        );

        CREATE TABLE IF NOT EXISTS usage_sessions (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            package_id      TEXT    NOT NULL,
            app_label       TEXT,
            screen_title    TEXT,
            category        TEXT    NOT NULL,
            subcategory     TEXT,
            confidence      REAL    DEFAULT 0.0,
            start_ms        INTEGER NOT NULL,
            end_ms          INTEGER NOT NULL,
            closed          INTEGER DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS user_feedback (
            package_id      TEXT PRIMARY KEY,
            category        TEXT    NOT NULL,
            confidence      REAL    NOT NULL,
            feedback_count  INTEGER DEFAULT 1,
            last_updated_ms INTEGER
        );

        CREATE INDEX IF NOT EXISTS idx_session_start ON usage_sessions(start_ms);
        CREATE INDEX IF NOT EXISTS idx_session_pkg   ON usage_sessions(package_id);
        CREATE INDEX IF NOT EXISTS idx_session_cat   ON usage_sessions(category);
    """)


def _row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        id           = row['id'],
        package_id   = row['package_id'],
        app_label    = row['app_label'] or '',
        screen_title = row['screen_title'] or '',
        category     = row['category'],
        subcategory  = row['subcategory'] or '',
        confidence   = row['confidence'] or 0.0,
        start_ms     = row['start_ms'],
        end_ms       = row['end_ms'],
        closed       = bool(row['closed']),
    )


# ── SESSIONS ─────────────────────────────────────────────────

class SqliteSessionStore(_SqliteBase, SessionStore):

    def insert_open(self, package_id, category, subcategory, text, start_ms,
                    app_label='', confidence=0.0) -> int:
        with self._connect() as conn:
            cur = conn.execute("""
                INSERT INTO usage_sessions
                (package_id, app_label, screen_title, category, subcategory,
                 confidence, start_ms, end_ms, closed)
                VALUES (?,?,?,?,?,?,?,?,0)
            """, (package_id, app_label or package_id, text, category,
                  subcategory, float(confidence), start_ms, start_ms))
            session_id = cur.lastrowid
        logger.debug(f"Inserted session id={session_id} for {package_id}")
        return session_id

    def extend(self, session_id: int, end_ms: int) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE usage_sessions SET end_ms = ? WHERE id = ? AND closed = 0",
                (end_ms, session_id),
            )

    def close(self, session_id: int, end_ms: int) -> None:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE usage_sessions SET end_ms = ?, closed = 1 WHERE id = ? AND closed = 0",
                (end_ms, session_id),
            )
        if cur.rowcount == 0:
            logger.debug(f"Close ignored for session id={session_id} (missing or already closed)")

    def delete(self, session_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM usage_sessions WHERE id = ?", (session_id,))

    # ── QUERIES ──────────────────────────────────────────────

    def get_session(self, session_id: int) -> Optional[Session]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM usage_sessions WHERE id = ?", (session_id,)
            ).fetchone()
        return _row_to_session(row) if row else None

    def list_sessions(
        self,
        package_id: Optional[str] = None,
        category:   Optional[str] = None,
        limit:      int = 100,
        offset:     int = 0,
    ) -> List[Session]:
        sql = "SELECT * FROM usage_sessions WHERE 1=1"
        params: list = []
        if package_id:
            sql += " AND package_id = ?"
            params.append(package_id)
        if category:
            sql += " AND category = ?"
            params.append(category.lower())
        sql += " ORDER BY start_ms ASC, id ASC LIMIT ? OFFSET ?"
        params += [int(limit), max(int(offset), 0)]
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_session(r) for r in rows]

    def totals_by_app_and_category(self, from_ms: int, to_ms: int) -> List[Dict[str, Any]]:
        """Time spent per (package, category), clipped to [from_ms, to_ms]."""
        with self._connect() as conn:
            rows = conn.execute("""
                SELECT package_id, category, SUM(
                  CASE
                    WHEN end_ms < :from_ms OR start_ms > :to_ms THEN 0
                    ELSE (MIN(end_ms, :to_ms) - MAX(start_ms, :from_ms))
                  END
                ) AS total_ms
                FROM usage_sessions
                GROUP BY package_id, category
                HAVING total_ms > 0
                ORDER BY total_ms DESC, package_id ASC
            """, {'from_ms': from_ms, 'to_ms': to_ms}).fetchall()
        return [dict(r) for r in rows]

    def write_meta(self, run_label: str, event_count: int, session_count: int, notes: str = '') -> None:
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO scrollsense_meta
                (run_at, run_label, schema_version, event_count, session_count, notes)
                VALUES (?,?,?,?,?,?)
            """, (
                datetime.now().isoformat(),
                run_label or 'scrollsense-run',
                SCHEMA_VERSION,
                event_count,
                session_count,
                notes,
            ))

    def latest_meta(self) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM scrollsense_meta ORDER BY id DESC LIMIT 1"
            ).fetchone()
        return dict(row) if row else None


# ── FEEDBACK ─────────────────────────────────────────────────

class SqliteFeedbackStore(_SqliteBase, FeedbackStore):

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> FeedbackRecord:
        return FeedbackRecord(
            package_id      = row['package_id'],
            category        = row['category'],
            confidence      = row['confidence'],
            feedback_count  = row['feedback_count'],
            last_updated_ms = row['last_updated_ms'] or 0,
        )

    def get(self, package_id: str) -> Optional[FeedbackRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_feedback WHERE package_id = ?", (package_id,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def upsert(self, record: FeedbackRecord) -> None:
        with self._connect() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO user_feedback
                (package_id, category, confidence, feedback_count, last_updated_ms)
                VALUES (?,?,?,?,?)
            """, (record.package_id, record.category, record.confidence,
                  record.feedback_count, record.last_updated_ms))

    def list_feedback(self) -> List[FeedbackRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM user_feedback ORDER BY feedback_count DESC, package_id ASC"
            ).fetchall()
        return [self._row_to_record(r) for r in rows]
