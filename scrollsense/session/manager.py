"""
scrollsense/session/manager.py
Session state machine: stable detections + classifications → commands.

States: IDLE (no open session) and ACTIVE (exactly one open session).

  IDLE,   any detection                         → OpenSession
  ACTIVE, same package and same category        → ExtendSession
  ACTIVE, different package                     → CloseAndOpenSession
  ACTIVE, same package, new category, conf > T  → CloseAndOpenSession
  ACTIVE, same package, new category, conf ≤ T  → IgnoreDetection (noise)
  ACTIVE, end of signal                         → CloseSession, back to IDLE
  IDLE,   end of signal                         → IgnoreDetection

The manager performs no I/O. It returns an explicit command value and the
session writer executes it, so every decision is testable without storage.
Sessions closed after less than min_session_ms are flagged discard=True.
Subcategory drift never splits a session.
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union

from scrollsense.detectors.content_type import screen_title
from scrollsense.detectors.package_rules import app_label
from scrollsense.models.record import ClassificationResult, StableDetection

logger = logging.getLogger(__name__)

MIN_SESSION_MS    = 500
SWITCH_CONFIDENCE = 0.7


class SessionState(str, Enum):
    IDLE   = 'idle'
    ACTIVE = 'active'


# ── COMMANDS ─────────────────────────────────────────────────

@dataclass(frozen=True)
class OpenSession:
    key:           int
    package_id:    str
    app_label:     str
    screen_title:  str
    category:      str
    subcategory:   str
    confidence:    float
    start_ms:      int


@dataclass(frozen=True)
class ExtendSession:
    key:     int
    end_ms:  int


@dataclass(frozen=True)
class CloseSession:
    key:          int
    end_ms:       int
    duration_ms:  int
    discard:      bool        # shorter than min_session_ms


@dataclass(frozen=True)
class CloseAndOpenSession:
    close:  CloseSession
    open:   OpenSession


@dataclass(frozen=True)
class IgnoreDetection:
    reason:  str


SessionCommand = Union[OpenSession, ExtendSession, CloseSession, CloseAndOpenSession, IgnoreDetection]


@dataclass
class ActiveSession:
    key:            int
    package_id:     str
    category:       str
    subcategory:    str
    confidence:     float
    app_label:      str
    screen_title:   str
    start_ms:       int
    last_event_ms:  int


class SessionManager:
    """
    Owns the single "current open session" reference.

    Usage:
        manager = SessionManager()
        command = manager.handle(stable_detection, classification, now_ms)
        writer.submit(command)
    """

    def __init__(
        self,
        min_session_ms:    int   = MIN_SESSION_MS,
        switch_confidence: float = SWITCH_CONFIDENCE,
        labels:            Optional[Mapping[str, str]] = None,
    ):
        self.min_session_ms    = min_session_ms
        self.switch_confidence = switch_confidence
        self.labels            = dict(labels or {})
        self._active: Optional[ActiveSession] = None
        self._keys = itertools.count(1)

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self._active else SessionState.IDLE

    @property
    def active(self) -> Optional[ActiveSession]:
        return self._active

    @property
    def active_category(self) -> Optional[str]:
        return self._active.category if self._active else None

    # ── TRANSITIONS ──────────────────────────────────────────

    def handle(
        self,
        detection:      StableDetection,
        classification: ClassificationResult,
        now:            int,
    ) -> SessionCommand:
        active = self._active

        if active is None:
            return self._open(detection, classification, now)

        same_package  = detection.package_id == active.package_id
        same_category = classification.category == active.category

        if same_package and same_category:
            end_ms = max(now, active.last_event_ms)
            active.last_event_ms = end_ms
            return ExtendSession(key=active.key, end_ms=end_ms)

        if not same_package or classification.confidence > self.switch_confidence:
            close = self._close(now)
            opened = self._open(detection, classification, now)
            logger.info(
                f"Session switch {active.package_id}/{active.category} → "
                f"{detection.package_id}/{classification.category} "
                f"({classification.method}, {classification.confidence:.2f})"
            )
            return CloseAndOpenSession(close=close, open=opened)

        logger.debug(
            f"Ignoring low-confidence category change {active.category} → "
            f"{classification.category} ({classification.confidence:.2f})"
        )
        return IgnoreDetection(reason='low-confidence-switch')

    def end_of_signal(self, now: int) -> SessionCommand:
        """Source window gone or observer interrupted: finalize the open session."""
        if self._active is None:
            return IgnoreDetection(reason='idle')
        return self._close(now)

    # ── INTERNAL ─────────────────────────────────────────────

    def _open(self, detection: StableDetection, classification: ClassificationResult, now: int) -> OpenSession:
        key = next(self._keys)
        self._active = ActiveSession(
            key           = key,
            package_id    = detection.package_id,
            category      = classification.category,
            subcategory   = classification.subcategory,
            confidence    = classification.confidence,
            app_label     = app_label(detection.package_id, self.labels),
            screen_title  = screen_title(detection.text),
            start_ms      = now,
            last_event_ms = now,
        )
        return OpenSession(
            key          = key,
            package_id   = detection.package_id,
            app_label    = self._active.app_label,
            screen_title = self._active.screen_title,
            category     = classification.category,
            subcategory  = classification.subcategory,
            confidence   = classification.confidence,
            start_ms     = now,
        )

    def _close(self, now: int) -> CloseSession:
        active = self._active
        self._active = None
        end_ms   = max(now, active.start_ms)
        duration = end_ms - active.start_ms
        discard  = duration < self.min_session_ms
        if discard:
            logger.debug(f"Discard short session key={active.key} duration={duration} ms")
        return CloseSession(key=active.key, end_ms=end_ms, duration_ms=duration, discard=discard)
