"""
tests/test_stores.py
SQLite and in-memory stores. Each test gets its own temporary database.
"""

import pytest

from scrollsense.errors import PersistenceFailure
from scrollsense.models.record import FeedbackRecord
from scrollsense.stores.memory_store import MemoryFeedbackStore, MemorySessionStore
from scrollsense.stores.sqlite_store import SqliteFeedbackStore, SqliteSessionStore


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / 'scrollsense.db'


@pytest.fixture(params=['sqlite', 'memory'])
def session_store(request, db_path):
    if request.param == 'sqlite':
        return SqliteSessionStore(db_path)
    return MemorySessionStore()


# ── SESSION STORE CONTRACT ───────────────────────────────────

class TestSessionStore:

    def test_insert_open(self, session_store):
        sid = session_store.insert_open('com.whatsapp', 'social', 'messaging', 'Chats', 1000,
                                        app_label='WhatsApp', confidence=0.95)
        s = session_store.get_session(sid)
        assert s.start_ms == s.end_ms == 1000
        assert s.app_label == 'WhatsApp'
        assert s.screen_title == 'Chats'
        assert not s.closed

    def test_extend_and_close(self, session_store):
        sid = session_store.insert_open('com.whatsapp', 'social', '', 'Chats', 1000)
        session_store.extend(sid, 3000)
        session_store.extend(sid, 3000)
        session_store.close(sid, 4000)
        s = session_store.get_session(sid)
        assert s.closed
        assert s.duration_ms == 3000

    def test_close_twice_is_noop(self, session_store):
        sid = session_store.insert_open('com.whatsapp', 'social', '', 'Chats', 1000)
        session_store.close(sid, 4000)
        session_store.close(sid, 9000)
        session_store.extend(sid, 9000)
        assert session_store.get_session(sid).end_ms == 4000

    def test_delete(self, session_store):
        sid = session_store.insert_open('com.whatsapp', 'social', '', 'Chats', 1000)
        session_store.delete(sid)
        session_store.delete(sid)
        assert session_store.get_session(sid) is None

    def test_missing_app_label_defaults_to_package(self, session_store):
        sid = session_store.insert_open('com.whatsapp', 'social', '', 'Chats', 1000)
        assert session_store.get_session(sid).app_label == 'com.whatsapp'


# ── SQLITE QUERIES ───────────────────────────────────────────

class TestSqliteQueries:

    @pytest.fixture
    def populated(self, db_path):
        store = SqliteSessionStore(db_path)
        a = store.insert_open('com.instagram.android', 'social', '', 'Feed', 1000)
        store.close(a, 5000)
        b = store.insert_open('com.king.candycrushsaga', 'games', '', 'Level 12', 4000)
        store.close(b, 9000)
        c = store.insert_open('com.instagram.android', 'social', '', 'Reels', 20000)
        store.close(c, 21000)
        return store

    def test_list_sessions_ordered(self, populated):
        rows = populated.list_sessions()
        assert [r.start_ms for r in rows] == [1000, 4000, 20000]

    def test_list_sessions_filters(self, populated):
        assert len(populated.list_sessions(package_id='com.instagram.android')) == 2
        assert len(populated.list_sessions(category='GAMES')) == 1
        assert len(populated.list_sessions(limit=1, offset=1)) == 1

    def test_totals_clipped_to_window(self, populated):
        totals = populated.totals_by_app_and_category(2000, 6000)
        assert totals == [
            {'package_id': 'com.instagram.android', 'category': 'social', 'total_ms': 3000},
            {'package_id': 'com.king.candycrushsaga', 'category': 'games', 'total_ms': 2000},
        ]

    def test_totals_empty_window(self, populated):
        assert populated.totals_by_app_and_category(50000, 60000) == []

    def test_meta(self, populated):
        assert populated.latest_meta() is None
        populated.write_meta('replay', event_count=10, session_count=3)
        meta = populated.latest_meta()
        assert meta['run_label'] == 'replay'
        assert meta['session_count'] == 3

    def test_unopenable_path_raises_persistence_failure(self, tmp_path):
        with pytest.raises(PersistenceFailure):
            SqliteSessionStore(tmp_path)


# ── FEEDBACK STORE ───────────────────────────────────────────

@pytest.fixture(params=['sqlite', 'memory'])
def feedback_store(request, db_path):
    if request.param == 'sqlite':
        return SqliteFeedbackStore(db_path)
    return MemoryFeedbackStore()


class TestFeedbackStore:

    def test_get_missing(self, feedback_store):
        assert feedback_store.get('com.android.chrome') is None

    def test_upsert_replaces(self, feedback_store):
        feedback_store.upsert(FeedbackRecord('com.android.chrome', 'news', 0.9, 1, 100))
        feedback_store.upsert(FeedbackRecord('com.android.chrome', 'education', 0.9, 2, 200))
        rec = feedback_store.get('com.android.chrome')
        assert rec == FeedbackRecord('com.android.chrome', 'education', 0.9, 2, 200)

    def test_list_feedback(self, db_path):
        store = SqliteFeedbackStore(db_path)
        store.upsert(FeedbackRecord('a.pkg', 'news', 0.9, 1, 1))
        store.upsert(FeedbackRecord('b.pkg', 'games', 0.9, 3, 1))
        assert [r.package_id for r in store.list_feedback()] == ['b.pkg', 'a.pkg']

    def test_shared_file_with_sessions(self, db_path):
        SqliteSessionStore(db_path).insert_open('a.pkg', 'news', '', '', 0)
        SqliteFeedbackStore(db_path).upsert(FeedbackRecord('a.pkg', 'news', 0.9))
        assert len(SqliteSessionStore(db_path).list_sessions()) == 1
