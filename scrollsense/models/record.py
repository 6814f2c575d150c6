"""
scrollsense/models/record.py
Shared dataclass schema. The filter, classifier, session manager and
stores all use these types. Do not add logic here — data only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class EventKind(str, Enum):
    """Accessibility event kinds reported by the event source."""
    WINDOW_STATE_CHANGED = 'window_state_changed'
    CONTENT_CHANGED      = 'content_changed'
    SCROLLED             = 'scrolled'
    CLICKED              = 'clicked'
    VIEW_FOCUSED         = 'view_focused'
    TEXT_CHANGED         = 'text_changed'
    NOTIFICATION         = 'notification'
    OTHER                = 'other'


# Kinds that bypass the evaluation cooldown
IMPORTANT_EVENT_KINDS = frozenset({
    EventKind.WINDOW_STATE_CHANGED,
    EventKind.CONTENT_CHANGED,
    EventKind.SCROLLED,
    EventKind.CLICKED,
})


@dataclass
class UIEvent:
    """One raw observation from the event source."""
    package_id:    str
    timestamp_ms:  int
    text:          Optional[str]
    kind:          EventKind       = EventKind.OTHER
    node_classes:  Tuple[str, ...] = ()     # class names of on-screen nodes


@dataclass
class Detection:
    """A single evaluated (package, content type) observation. Never persisted."""
    package_id:    str
    content_type:  str
    text:          str
    timestamp_ms:  int


@dataclass
class StableDetection:
    """A detection confirmed by consecutive repetition."""
    package_id:    str
    content_type:  str
    text:          str
    timestamp_ms:  int
    repeat_count:  int = 0


@dataclass(frozen=True)
class ClassificationResult:
    """Output of ContentClassifier for one screen."""
    category:     str
    subcategory:  str
    confidence:   float        # 0.0 - 1.0
    method:       str          # adult-veto / package-based / user-learned / ...


@dataclass
class Session:
    """Persisted usage session row."""
    id:            int
    package_id:    str
    app_label:     str
    screen_title:  str
    category:      str
    subcategory:   str
    confidence:    float
    start_ms:      int
    end_ms:        int          # == start_ms while open
    closed:        bool = False

    @property
    def duration_ms(self) -> int:
        return max(0, self.end_ms - self.start_ms)


@dataclass
class FeedbackRecord:
    """User correction for a package, owned by the feedback store."""
    package_id:       str
    category:         str
    confidence:       float
    feedback_count:   int = 1
    last_updated_ms:  int = 0


@dataclass
class StabilityState:
    """Debounce counters for one observation stream."""
    last_package:  Optional[str] = None
    last_type:     Optional[str] = None
    count:         int           = 0
    last_eval_ms:  Optional[int] = None
