"""
scrollsense/stores/base.py
Abstract storage interfaces the pipeline depends on.
To add a new backend: subclass SessionStore / FeedbackStore and implement
every abstract method. The pipeline never knows which backend is running.
"""

from abc import ABC, abstractmethod
from typing import Optional

from scrollsense.models.record import FeedbackRecord


class SessionStore(ABC):
    """
    Append/update/delete operations on the persisted session table.
    Each call is an independent single-row operation; no cross-row
    transactions are expected from implementations.
    """

    @abstractmethod
    def insert_open(
        self,
        package_id:   str,
        category:     str,
        subcategory:  str,
        text:         str,
        start_ms:     int,
        app_label:    str   = '',
        confidence:   float = 0.0,
    ) -> int:
        """Insert an open session (end == start). Returns the new session id."""
        ...

    @abstractmethod
    def extend(self, session_id: int, end_ms: int) -> None:
        """
        Move the end time of an open session. Re-issuing the same end
        time is harmless; closed sessions are left untouched.
        """
        ...

    @abstractmethod
    def close(self, session_id: int, end_ms: int) -> None:
        """Finalize a session. Closing an already-closed session is a no-op."""
        ...

    @abstractmethod
    def delete(self, session_id: int) -> None:
        """Remove a session row. Deleting a missing row is a no-op."""
        ...


class FeedbackStore(ABC):
    """Learned package → category corrections from the user."""

    @abstractmethod
    def get(self, package_id: str) -> Optional[FeedbackRecord]:
        ...

    @abstractmethod
    def upsert(self, record: FeedbackRecord) -> None:
        ...
