"""
scrollsense/pipeline/writer.py
Executes session commands against a SessionStore off the intake path.

All writes run on one background worker, so operations are applied in the
order they were issued: open before extend, extend before close, close
before the short-session delete. A failed write is logged and counted; the
in-memory state machine stays authoritative and the next command runs
normally (the stored timeline may then be missing that row).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional

from scrollsense.session.manager import (
    CloseAndOpenSession,
    CloseSession,
    ExtendSession,
    IgnoreDetection,
    OpenSession,
    SessionCommand,
)
from scrollsense.stores.base import SessionStore

logger = logging.getLogger(__name__)


class SessionWriter:

    def __init__(self, store: SessionStore):
        self.store     = store
        self.failures  = 0
        self.written   = 0
        self._ids:     Dict[int, int] = {}      # manager key → store row id
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='scrollsense-writer')
        self._closed   = False

    def submit(self, command: SessionCommand) -> None:
        """Queue a command. IgnoreDetection is dropped without a write."""
        if isinstance(command, IgnoreDetection) or command is None:
            return
        if self._closed:
            logger.warning(f"Writer already shut down — dropping {type(command).__name__}")
            return
        self._executor.submit(self._apply, command)

    def flush(self) -> None:
        """Block until every queued command has been applied."""
        if not self._closed:
            self._executor.submit(lambda: None).result()

    def shutdown(self, wait: bool = True) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=wait)
        logger.info(f"Session writer stopped: {self.written} writes, {self.failures} failures")

    def session_id_for(self, key: int) -> Optional[int]:
        return self._ids.get(key)

    # ── WORKER SIDE ──────────────────────────────────────────

    def _apply(self, command: SessionCommand) -> None:
        if isinstance(command, CloseAndOpenSession):
            self._apply(command.close)
            self._apply(command.open)
            return

        try:
            if isinstance(command, OpenSession):
                self._open(command)
            elif isinstance(command, ExtendSession):
                self._extend(command)
            elif isinstance(command, CloseSession):
                self._close(command)
            else:
                logger.warning(f"Unknown session command: {command!r}")
                return
            self.written += 1
        except Exception as e:
            self.failures += 1
            logger.error(f"Session write failed ({type(command).__name__}, key={command.key}): {e}")

    def _open(self, cmd: OpenSession) -> None:
        session_id = self.store.insert_open(
            cmd.package_id,
            cmd.category,
            cmd.subcategory,
            cmd.screen_title,
            cmd.start_ms,
            app_label  = cmd.app_label,
            confidence = cmd.confidence,
        )
        self._ids[cmd.key] = session_id
        logger.debug(f"Start session id={session_id} pkg={cmd.package_id} cat={cmd.category}")

    def _extend(self, cmd: ExtendSession) -> None:
        session_id = self._ids.get(cmd.key)
        if session_id is None:
            logger.debug(f"Extend skipped — no stored row for key={cmd.key}")
            return
        self.store.extend(session_id, cmd.end_ms)

    def _close(self, cmd: CloseSession) -> None:
        session_id = self._ids.pop(cmd.key, None)
        if session_id is None:
            logger.debug(f"Close skipped — no stored row for key={cmd.key}")
            return
        self.store.close(session_id, cmd.end_ms)
        if cmd.discard:
            self.store.delete(session_id)
            logger.debug(f"Discarded short session id={session_id} duration={cmd.duration_ms} ms")
        else:
            logger.debug(f"End session id={session_id} duration={cmd.duration_ms} ms")
