"""
tests/test_session_manager.py
SessionManager transitions. Pure decision logic, no store involved.
"""

import pytest

from scrollsense.models.record import ClassificationResult, StableDetection
from scrollsense.session.manager import (
    CloseAndOpenSession,
    CloseSession,
    ExtendSession,
    IgnoreDetection,
    OpenSession,
    SessionManager,
    SessionState,
)


def det(pkg, t, text='screen'):
    return StableDetection(package_id=pkg, content_type='other', text=text, timestamp_ms=t, repeat_count=2)


def cls(category, confidence=0.95, sub='', method='package-based'):
    return ClassificationResult(category, sub, confidence, method)


@pytest.fixture
def manager():
    return SessionManager(labels={'com.whatsapp': 'WhatsApp'})


class TestOpenAndExtend:

    def test_idle_opens(self, manager):
        cmd = manager.handle(det('com.whatsapp', 1000, 'Chats'), cls('social'), 1000)
        assert isinstance(cmd, OpenSession)
        assert cmd.start_ms == 1000
        assert cmd.app_label == 'WhatsApp'
        assert cmd.screen_title == 'Chats'
        assert manager.state == SessionState.ACTIVE
        assert manager.active_category == 'social'

    def test_active_session_keeps_label_and_title(self, manager):
        manager.handle(det('com.whatsapp', 1000, 'Chats'), cls('social'), 1000)
        manager.handle(det('com.whatsapp', 2000, 'Archived'), cls('social'), 2000)
        assert manager.active.app_label == 'WhatsApp'
        assert manager.active.screen_title == 'Chats'

    def test_same_package_same_category_extends(self, manager):
        opened = manager.handle(det('com.whatsapp', 0), cls('social'), 0)
        cmd = manager.handle(det('com.whatsapp', 2000), cls('social'), 2000)
        assert cmd == ExtendSession(key=opened.key, end_ms=2000)

    def test_extend_never_moves_backwards(self, manager):
        opened = manager.handle(det('com.whatsapp', 0), cls('social'), 0)
        manager.handle(det('com.whatsapp', 2000), cls('social'), 2000)
        cmd = manager.handle(det('com.whatsapp', 1500), cls('social'), 1500)
        assert cmd == ExtendSession(key=opened.key, end_ms=2000)

    def test_subcategory_drift_does_not_split(self, manager):
        manager.handle(det('com.whatsapp', 0), cls('social', sub='messaging'), 0)
        cmd = manager.handle(det('com.whatsapp', 900), cls('social', sub='voice_calls'), 900)
        assert isinstance(cmd, ExtendSession)

    def test_keys_are_unique(self, manager):
        first = manager.handle(det('a.pkg', 0), cls('social'), 0)
        switch = manager.handle(det('b.pkg', 1000), cls('games'), 1000)
        assert switch.open.key != first.key


class TestSwitching:

    def test_package_switch_closes_and_opens(self, manager):
        opened = manager.handle(det('com.instagram.android', 0), cls('social'), 0)
        cmd = manager.handle(det('com.whatsapp', 5000), cls('social'), 5000)
        assert isinstance(cmd, CloseAndOpenSession)
        assert cmd.close == CloseSession(key=opened.key, end_ms=5000, duration_ms=5000, discard=False)
        assert cmd.open.package_id == 'com.whatsapp'
        assert cmd.open.start_ms == 5000

    def test_package_switch_ignores_confidence(self, manager):
        manager.handle(det('a.pkg', 0), cls('social'), 0)
        cmd = manager.handle(det('b.pkg', 1000), cls('other', 0.2, method='context-unknown'), 1000)
        assert isinstance(cmd, CloseAndOpenSession)

    @pytest.mark.parametrize('confidence', [0.5, 0.7])
    def test_low_confidence_category_change_suppressed(self, manager, confidence):
        manager.handle(det('com.android.chrome', 0), cls('news', 0.85), 0)
        cmd = manager.handle(det('com.android.chrome', 1000), cls('games', confidence), 1000)
        assert isinstance(cmd, IgnoreDetection)
        assert manager.active_category == 'news'

    def test_confident_category_change_switches(self, manager):
        manager.handle(det('com.android.chrome', 0), cls('news', 0.85), 0)
        cmd = manager.handle(det('com.android.chrome', 1000), cls('adult', 0.98), 1000)
        assert isinstance(cmd, CloseAndOpenSession)
        assert cmd.open.category == 'adult'
        assert manager.active_category == 'adult'


class TestEndOfSignal:

    def test_short_session_discarded(self, manager):
        manager.handle(det('com.whatsapp', 0), cls('social'), 0)
        cmd = manager.end_of_signal(400)
        assert isinstance(cmd, CloseSession)
        assert cmd.discard
        assert cmd.duration_ms == 400
        assert manager.state == SessionState.IDLE

    def test_session_at_minimum_kept(self, manager):
        manager.handle(det('com.whatsapp', 0), cls('social'), 0)
        assert not manager.end_of_signal(500).discard

    def test_idle_end_of_signal_ignored(self, manager):
        assert isinstance(manager.end_of_signal(1000), IgnoreDetection)

    def test_end_before_start_clamped(self, manager):
        manager.handle(det('com.whatsapp', 1000), cls('social'), 1000)
        cmd = manager.end_of_signal(900)
        assert cmd.end_ms == 1000
        assert cmd.duration_ms == 0
