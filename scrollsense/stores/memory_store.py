"""
scrollsense/stores/memory_store.py
In-process stores for dry-run replays and tests. Same semantics as the
SQLite stores: closing twice is a no-op, extend skips closed rows.
"""

import itertools
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from scrollsense.models.record import FeedbackRecord, Session
from scrollsense.stores.base import FeedbackStore, SessionStore


class MemorySessionStore(SessionStore):

    def __init__(self):
        self._rows: Dict[int, Session] = {}
        self._ids  = itertools.count(1)
        self._lock = threading.Lock()

    def insert_open(self, package_id, category, subcategory, text, start_ms,
                    app_label='', confidence=0.0) -> int:
        with self._lock:
            session_id = next(self._ids)
            self._rows[session_id] = Session(
                id           = session_id,
                package_id   = package_id,
                app_label    = app_label or package_id,
                screen_title = text,
                category     = category,
                subcategory  = subcategory,
                confidence   = confidence,
                start_ms     = start_ms,
                end_ms       = start_ms,
            )
            return session_id

    def extend(self, session_id: int, end_ms: int) -> None:
        with self._lock:
            row = self._rows.get(session_id)
            if row is not None and not row.closed:
                row.end_ms = end_ms

    def close(self, session_id: int, end_ms: int) -> None:
        with self._lock:
            row = self._rows.get(session_id)
            if row is not None and not row.closed:
                row.end_ms = end_ms
                row.closed = True

    def delete(self, session_id: int) -> None:
        with self._lock:
            self._rows.pop(session_id, None)

    def get_session(self, session_id: int) -> Optional[Session]:
        with self._lock:
            row = self._rows.get(session_id)
            return replace(row) if row else None

    def list_sessions(self) -> List[Session]:
        with self._lock:
            return [replace(r) for r in sorted(self._rows.values(), key=lambda s: (s.start_ms, s.id))]


class MemoryFeedbackStore(FeedbackStore):

    def __init__(self):
        self._records: Dict[str, FeedbackRecord] = {}
        self._lock = threading.Lock()

    def get(self, package_id: str) -> Optional[FeedbackRecord]:
        with self._lock:
            rec = self._records.get(package_id)
            return replace(rec) if rec else None

    def upsert(self, record: FeedbackRecord) -> None:
        with self._lock:
            self._records[record.package_id] = replace(record)
