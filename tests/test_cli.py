"""
tests/test_cli.py
scrollsense.cli.main — replay into SQLite, dry run, and --correct.
"""

import pytest

from scrollsense.cli import main
from scrollsense.stores.sqlite_store import SqliteFeedbackStore, SqliteSessionStore

EVENTS = """\
{"package": "com.instagram.android", "ts": 0, "text": "reel video", "kind": "window_state_changed"}
{"package": "com.instagram.android", "ts": 0, "text": "reel video", "kind": "window_state_changed"}
{"package": "com.whatsapp", "ts": 5000, "text": "chat message", "kind": "window_state_changed"}
{"package": "com.whatsapp", "ts": 5000, "text": "chat message", "kind": "window_state_changed"}
{"package": "com.whatsapp", "ts": 9000, "text": "chat message", "kind": "scrolled"}
"""


@pytest.fixture
def events_file(tmp_path):
    path = tmp_path / 'events.jsonl'
    path.write_text(EVENTS, encoding='utf-8')
    return path


def test_replay_writes_sessions(events_file, tmp_path):
    db = tmp_path / 'out.db'
    assert main(['--events', str(events_file), '--output', str(db), '--config', str(tmp_path)]) == 0

    sessions = SqliteSessionStore(db).list_sessions()
    assert [(s.package_id, s.start_ms, s.end_ms) for s in sessions] == [
        ('com.instagram.android', 0, 5000),
        ('com.whatsapp', 5000, 9000),
    ]
    assert all(s.closed for s in sessions)
    meta = SqliteSessionStore(db).latest_meta()
    assert meta['event_count'] == 5
    assert meta['session_count'] == 2


def test_dry_run_writes_nothing(events_file, tmp_path, capsys):
    db = tmp_path / 'out.db'
    assert main(['--events', str(events_file), '--output', str(db), '--dry-run',
                 '--config', str(tmp_path)]) == 0
    assert not db.exists()
    assert 'Sessions   : 2' in capsys.readouterr().out


def test_correct_records_feedback(tmp_path):
    db = tmp_path / 'out.db'
    assert main(['--correct', 'com.android.chrome', 'News', '--output', str(db),
                 '--config', str(tmp_path)]) == 0
    rec = SqliteFeedbackStore(db).get('com.android.chrome')
    assert rec.category == 'news'


def test_missing_events_file(tmp_path):
    assert main(['--events', str(tmp_path / 'none.jsonl'), '--config', str(tmp_path)]) == 1


def test_requires_events_or_correct(tmp_path):
    with pytest.raises(SystemExit):
        main(['--config', str(tmp_path)])
