"""
scrollsense/cli.py
Command-line interface for scrollsense.
Replays recorded accessibility event logs through the session pipeline.

USAGE:
  python -m scrollsense.cli --events ./events.jsonl --output ./scrollsense.db
  python -m scrollsense.cli --events ./logs/ --dry-run
  python -m scrollsense.cli --correct com.android.chrome news

EXAMPLES:
  # Replay a day of events into the default database
  scrollsense --events day-2024-05-01.jsonl

  # Check how a log would be sessionized without writing anything
  scrollsense --events day-2024-05-01.jsonl --dry-run --verbose

  # Teach the classifier that a browser is mostly used for news
  scrollsense --correct com.android.chrome news
"""

import argparse
import logging
import sys
import time
from collections import defaultdict
from pathlib import Path

from scrollsense.classifier.content_classifier import record_user_feedback
from scrollsense.config import load_config
from scrollsense.errors import PersistenceFailure
from scrollsense.parsers.event_parser import parse_event_directory, parse_event_file
from scrollsense.pipeline.pipeline import build_pipeline
from scrollsense.stores.memory_store import MemoryFeedbackStore, MemorySessionStore
from scrollsense.stores.sqlite_store import SqliteFeedbackStore, SqliteSessionStore

logger = logging.getLogger(__name__)

GREEN  = '\033[92m'
YELLOW = '\033[93m'
RED    = '\033[91m'
CYAN   = '\033[96m'
RESET  = '\033[0m'
BOLD   = '\033[1m'


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog        = 'scrollsense',
        description = 'scrollsense — on-device app usage sessions by content category',
        formatter_class = argparse.RawDescriptionHelpFormatter,
        epilog = """
PRIVACY NOTE:
  All processing is local. Screen text is used for classification only
  and is never logged; sessions store a short title snapshot.
        """
    )

    parser.add_argument(
        '--events', '-e',
        type     = Path,
        help     = 'Event log (*.jsonl) or a directory of them to replay',
    )
    parser.add_argument(
        '--output', '-o',
        type     = Path,
        default  = None,
        help     = 'Output SQLite database path (default: db_path from config)',
    )
    parser.add_argument(
        '--config', '-c',
        type     = Path,
        default  = None,
        help     = 'Directory holding scrollsense_config.json (default: cwd)',
    )
    parser.add_argument(
        '--correct',
        nargs    = 2,
        metavar  = ('PACKAGE', 'CATEGORY'),
        help     = 'Record a user correction for a package and exit',
    )
    parser.add_argument(
        '--dry-run', '-n',
        action   = 'store_true',
        help     = 'Replay into memory only — nothing is written to disk',
    )
    parser.add_argument(
        '--run-label',
        default  = '',
        help     = 'Label for this run (stored in scrollsense_meta table)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action   = 'store_true',
        help     = 'Enable debug logging',
    )

    args = parser.parse_args(argv)

    # ── LOGGING SETUP ────────────────────────────────────────
    logging.basicConfig(
        level   = logging.DEBUG if args.verbose else logging.INFO,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )

    config  = load_config(args.config)
    db_path = args.output or Path(config['db_path'])

    # ── FEEDBACK ─────────────────────────────────────────────
    if args.correct:
        package_id, category = args.correct
        try:
            store = SqliteFeedbackStore(db_path)
        except PersistenceFailure as e:
            _print(f"{RED}Error: cannot open {db_path}: {e}{RESET}")
            return 1
        record = record_user_feedback(store, package_id, category)
        if record is None:
            _print(f"{RED}Correction not recorded.{RESET}")
            return 1
        _ok(f"{package_id} → {record.category} (corrections: {record.feedback_count})")
        return 0

    if not args.events:
        parser.error('one of --events or --correct is required')

    if not args.events.exists():
        _print(f"{RED}Error: not found: {args.events}{RESET}")
        return 1

    _banner()
    _print(f"Event source     : {CYAN}{args.events}{RESET}")
    _print(f"Output database  : {CYAN}{'(memory — dry run)' if args.dry_run else db_path}{RESET}")
    _print("")

    # ── PARSE ────────────────────────────────────────────────
    _step("Reading event log...")
    t0 = time.time()
    if args.events.is_dir():
        events = parse_event_directory(args.events)
    else:
        events = parse_event_file(args.events)
    _ok(f"{len(events)} events parsed in {_elapsed(t0)}")

    if not events:
        _print(f"\n{YELLOW}No events found in {args.events}{RESET}")
        return 1

    # ── STORES ───────────────────────────────────────────────
    if args.dry_run:
        session_store, feedback_store = MemorySessionStore(), MemoryFeedbackStore()
    else:
        try:
            session_store  = SqliteSessionStore(db_path)
            feedback_store = SqliteFeedbackStore(db_path)
        except PersistenceFailure as e:
            _print(f"{RED}Error: cannot open {db_path}: {e}{RESET}")
            return 1

    pipeline = build_pipeline(config, session_store, feedback_store)
    if pipeline.safety_degraded:
        _print(f"  {YELLOW}⚠ Adult veto list unavailable — sensitive content will not be flagged.{RESET}")

    # ── REPLAY ───────────────────────────────────────────────
    _step("Replaying events...")
    t0 = time.time()
    for event in events:
        pipeline.process(event)
    pipeline.close(events[-1].timestamp_ms)
    _ok(f"Replay finished in {_elapsed(t0)}")

    # ── SUMMARY ──────────────────────────────────────────────
    if args.dry_run:
        sessions = session_store.list_sessions()
    else:
        sessions = session_store.list_sessions(limit=1_000_000)
        session_store.write_meta(
            run_label     = args.run_label or str(args.events),
            event_count   = len(events),
            session_count = len(sessions),
            notes         = f"write_failures={pipeline.writer.failures}",
        )

    _print(f"\n{BOLD}{GREEN}✓ Complete{RESET}")
    _print(f"  Events     : {len(events):,}")
    _print(f"  Sessions   : {len(sessions):,}")
    if pipeline.writer.failures:
        _print(f"  {YELLOW}Write failures: {pipeline.writer.failures}{RESET}")
    if not args.dry_run:
        _print(f"  Database   : {db_path.resolve()}")

    if sessions:
        by_category = defaultdict(int)
        for s in sessions:
            by_category[s.category] += s.duration_ms
        _print(f"\n  Time by category:")
        for category, total in sorted(by_category.items(), key=lambda kv: (-kv[1], kv[0])):
            _print(f"    {category:<14}: {_duration(total)}")
    _print("")
    return 0


# ── PRINT HELPERS ────────────────────────────────────────────

def _banner():
    _print(f"""
{BOLD}{CYAN}
  ┌─┐┌─┐┬─┐┌─┐┬  ┬  ┌─┐┌─┐┌┐┌┌─┐┌─┐
  └─┐│  ├┬┘│ ││  │  └─┐├┤ │││└─┐├┤
  └─┘└─┘┴└─└─┘┴─┘┴─┘└─┘└─┘┘└┘└─┘└─┘
  Usage sessions by content category
{RESET}""")

def _step(msg):  _print(f"  {CYAN}→{RESET} {msg}")
def _ok(msg):    _print(f"  {GREEN}✓{RESET} {msg}")
def _print(msg): print(msg)

def _elapsed(t0: float) -> str:
    s = time.time() - t0
    return f"{s:.1f}s" if s < 60 else f"{int(s//60)}m {int(s%60)}s"

def _duration(ms: int) -> str:
    s = ms // 1000
    if s < 60:
        return f"{s}s"
    if s < 3600:
        return f"{s // 60}m {s % 60}s"
    return f"{s // 3600}h {(s % 3600) // 60}m"


if __name__ == '__main__':
    sys.exit(main())
