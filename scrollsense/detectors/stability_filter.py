"""
scrollsense/detectors/stability_filter.py
Debounce for the raw accessibility event stream.

A (package, content type) pair is only passed on once it has been seen
REQUIRED_STABLE times in a row, so a transient loading screen or an
overlay never alone triggers a session change. Evaluations are throttled
to one per COOLDOWN_MS unless the event is one of the important kinds.

One filter instance per observation stream. Never touches storage.
"""

import logging
from dataclasses import replace
from typing import Optional

from scrollsense.models.record import (
    IMPORTANT_EVENT_KINDS,
    EventKind,
    StabilityState,
    StableDetection,
)

logger = logging.getLogger(__name__)

REQUIRED_STABLE = 2
COOLDOWN_MS     = 3000


class StabilityFilter:

    def __init__(self, required_stable: int = REQUIRED_STABLE, cooldown_ms: int = COOLDOWN_MS):
        self.required_stable = max(1, int(required_stable))
        self.cooldown_ms     = max(0, int(cooldown_ms))
        self._state          = StabilityState()

    @property
    def state(self) -> StabilityState:
        """Snapshot copy of the current counters."""
        return replace(self._state)

    def reset(self) -> None:
        self._state = StabilityState()

    def evaluate(
        self,
        package_id:       Optional[str],
        raw_content_type: Optional[str],
        now:              int,
        kind:             Optional[EventKind] = None,
        text:             str = '',
    ) -> Optional[StableDetection]:
        """
        Feed one observation. Returns a StableDetection once the pair has
        been seen required_stable times in a row, else None.
        Malformed input (empty package or type) leaves state untouched.
        """
        if not package_id or not package_id.strip() or not raw_content_type:
            logger.debug("Skipping malformed observation (no package/type)")
            return None

        st = self._state
        if (
            st.last_eval_ms is not None
            and now - st.last_eval_ms < self.cooldown_ms
            and kind not in IMPORTANT_EVENT_KINDS
        ):
            return None
        st.last_eval_ms = now

        if package_id == st.last_package and raw_content_type == st.last_type:
            st.count += 1
        else:
            st.last_package = package_id
            st.last_type    = raw_content_type
            st.count        = 1

        if st.count < self.required_stable:
            return None

        return StableDetection(
            package_id   = package_id,
            content_type = raw_content_type,
            text         = text or '',
            timestamp_ms = now,
            repeat_count = st.count,
        )
