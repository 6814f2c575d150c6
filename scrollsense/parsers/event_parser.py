"""
scrollsense/parsers/event_parser.py
Parses recorded accessibility event logs (JSON lines, one event per line).

Line format:
  {"package": "com.instagram.android", "ts": 1700000000000,
   "text": "reel video", "kind": "window_state_changed",
   "classes": ["android.widget.FrameLayout", "androidx.media3.ui.PlayerView"]}

Alternate keys package_id / timestamp_ms / event_kind / node_classes are
accepted. Unknown kinds map to EventKind.OTHER. Malformed lines are logged
and skipped. Files with a UTF-8 BOM are read correctly.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from scrollsense.models.record import EventKind, UIEvent

logger = logging.getLogger(__name__)

_KIND_ALIASES = {
    'type_window_state_changed':   EventKind.WINDOW_STATE_CHANGED,
    'type_window_content_changed': EventKind.CONTENT_CHANGED,
    'window_content_changed':      EventKind.CONTENT_CHANGED,
    'type_view_scrolled':          EventKind.SCROLLED,
    'view_scrolled':               EventKind.SCROLLED,
    'type_view_clicked':           EventKind.CLICKED,
    'view_clicked':                EventKind.CLICKED,
    'type_view_focused':           EventKind.VIEW_FOCUSED,
    'type_view_text_changed':      EventKind.TEXT_CHANGED,
    'view_text_changed':           EventKind.TEXT_CHANGED,
    'type_notification_state_changed': EventKind.NOTIFICATION,
}


def parse_kind(value: Any) -> EventKind:
    if isinstance(value, EventKind):
        return value
    name = str(value or '').strip().lower().replace('-', '_').replace(' ', '_')
    try:
        return EventKind(name)
    except ValueError:
        return _KIND_ALIASES.get(name, EventKind.OTHER)


def parse_event(data: Dict[str, Any]) -> Optional[UIEvent]:
    """Build a UIEvent from one decoded line, or None if required fields are missing."""
    if not isinstance(data, dict):
        return None
    package = data.get('package', data.get('package_id'))
    ts      = data.get('ts', data.get('timestamp_ms'))
    if not package or ts is None:
        return None
    try:
        ts = int(ts)
    except (TypeError, ValueError):
        return None

    text = data.get('text')
    classes = data.get('classes', data.get('node_classes')) or ()
    if isinstance(classes, str):
        classes = (classes,)

    return UIEvent(
        package_id   = str(package).strip(),
        timestamp_ms = ts,
        text         = str(text) if text is not None else None,
        kind         = parse_kind(data.get('kind', data.get('event_kind'))),
        node_classes = tuple(str(c) for c in classes),
    )


def parse_event_lines(lines: Iterable[str], source: str = '<stream>') -> List[UIEvent]:
    events: List[UIEvent] = []
    skipped = 0
    for lineno, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        try:
            event = parse_event(json.loads(line))
        except json.JSONDecodeError as e:
            logger.debug(f"{source}:{lineno}: bad JSON ({e})")
            event = None
        if event is None:
            skipped += 1
            continue
        events.append(event)

    if skipped:
        logger.warning(f"{source}: skipped {skipped} malformed event line(s)")
    events.sort(key=lambda e: e.timestamp_ms)
    return events


def parse_event_file(path: Path) -> List[UIEvent]:
    """Parse one .jsonl event log. Returns an empty list if the file cannot be read."""
    path = Path(path)
    try:
        content = path.read_text(encoding='utf-8-sig', errors='replace')
    except OSError as e:
        logger.error(f"File read error {path.name}: {e}")
        return []

    events = parse_event_lines(content.splitlines(), source=path.name)
    logger.info(f"Parsed {len(events)} events from {path.name}")
    return events


def parse_event_directory(directory: Path) -> List[UIEvent]:
    """Parse every *.jsonl file in a directory, merged in timestamp order."""
    files = sorted(Path(directory).glob('*.jsonl'))
    if not files:
        logger.warning(f"No *.jsonl event logs found in {directory}")
        return []

    events: List[UIEvent] = []
    for path in files:
        events.extend(parse_event_file(path))
    events.sort(key=lambda e: e.timestamp_ms)
    return events
