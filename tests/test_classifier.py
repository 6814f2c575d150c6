"""
tests/test_classifier.py
ContentClassifier cascade: veto precedence, package rules, learned
feedback, weighted keywords, contextual fallbacks and feedback recording.
"""

from unittest.mock import MagicMock

import pytest

from scrollsense.classifier.content_classifier import ContentClassifier, record_user_feedback
from scrollsense.detectors.keyword_store import KeywordStore, load_keyword_store
from scrollsense.detectors.package_rules import PackageRuleTable
from scrollsense.errors import PersistenceFailure
from scrollsense.models.record import FeedbackRecord
from scrollsense.stores.memory_store import MemoryFeedbackStore

CHROME = 'com.android.chrome'


@pytest.fixture(scope='module')
def keywords():
    return load_keyword_store()


@pytest.fixture
def classifier(keywords):
    return ContentClassifier(keywords, PackageRuleTable(), MemoryFeedbackStore())


# ── ADULT VETO ───────────────────────────────────────────────

class TestAdultVeto:

    def test_veto_in_browser(self, classifier):
        r = classifier.classify('Checkout onlyfans premium content', CHROME, None)
        assert r.category == 'adult'
        assert r.confidence == pytest.approx(0.98)
        assert r.method == 'adult-veto'

    def test_veto_other_browser(self, classifier):
        r = classifier.classify('watch xvideos now', 'org.chromium.chrome', None)
        assert r.category == 'adult'
        assert r.subcategory == 'videos'

    def test_veto_beats_package_rule(self, classifier):
        r = classifier.classify('new link: pornhub', 'com.whatsapp', 'social')
        assert r.category == 'adult'
        assert r.method == 'adult-veto'

    def test_veto_beats_user_feedback(self, keywords):
        store = MemoryFeedbackStore()
        store.upsert(FeedbackRecord(CHROME, 'news', 0.95))
        r = ContentClassifier(keywords, feedback_store=store).classify('nsfw thread', CHROME)
        assert r.category == 'adult'

    def test_without_veto_list_no_forced_adult(self):
        c = ContentClassifier(KeywordStore())
        assert not c.veto_available
        r = c.classify('onlyfans', CHROME)
        assert r.category != 'adult'


# ── PACKAGE RULES ────────────────────────────────────────────

class TestPackageRule:

    def test_known_package(self, classifier):
        r = classifier.classify('chat message', 'com.whatsapp', None)
        assert (r.category, r.method) == ('social', 'package-based')
        assert r.confidence == pytest.approx(0.95)
        assert r.subcategory == 'messaging'

    def test_package_beats_keywords(self, classifier):
        r = classifier.classify('breaking news headline', 'com.spotify.music', None)
        assert r.category == 'entertainment'


# ── USER FEEDBACK ────────────────────────────────────────────

class TestUserFeedback:

    def test_learned_category_used(self, keywords):
        store = MemoryFeedbackStore()
        record_user_feedback(store, CHROME, 'News', now_ms=1000)
        r = ContentClassifier(keywords, feedback_store=store).classify('hello', CHROME)
        assert r.category == 'news'
        assert r.method == 'user-learned'
        assert r.confidence == pytest.approx(0.81)

    def test_low_confidence_feedback_ignored(self, keywords):
        store = MemoryFeedbackStore()
        store.upsert(FeedbackRecord(CHROME, 'news', 0.8))
        r = ContentClassifier(keywords, feedback_store=store).classify('hello', CHROME)
        assert r.method != 'user-learned'

    def test_feedback_count_increments(self):
        store = MemoryFeedbackStore()
        first  = record_user_feedback(store, CHROME, 'news', now_ms=1)
        second = record_user_feedback(store, CHROME, 'education', now_ms=2)
        assert first.feedback_count == 1
        assert second.feedback_count == 2
        stored = store.get(CHROME)
        assert stored.category == 'education'
        assert stored.confidence == pytest.approx(0.9)
        assert stored.last_updated_ms == 2

    def test_feedback_rejects_empty(self):
        assert record_user_feedback(MemoryFeedbackStore(), CHROME, '  ') is None

    def test_feedback_store_failure_returns_none(self):
        store = MagicMock()
        store.get.return_value = None
        store.upsert.side_effect = PersistenceFailure('disk full')
        assert record_user_feedback(store, CHROME, 'news') is None

    def test_lookup_failure_falls_through(self, keywords):
        store = MagicMock()
        store.get.side_effect = PersistenceFailure('locked')
        r = ContentClassifier(keywords, feedback_store=store).classify('hello', CHROME)
        assert r.category == 'other'

    def test_classifier_without_store(self, keywords):
        assert ContentClassifier(keywords).record_user_feedback(CHROME, 'news') is None


# ── WEIGHTED KEYWORDS ────────────────────────────────────────

class TestWeightedKeywords:

    def test_keyword_category(self, classifier):
        r = classifier.classify('breaking news headline article', CHROME, None)
        assert r.category == 'news'
        assert r.method == 'weighted-keywords'
        assert r.confidence == pytest.approx(0.85)

    def test_score_at_threshold_rejected(self):
        c = ContentClassifier(KeywordStore(weights={'news': {'alpha': 3.0}}))
        r = c.classify('alpha', 'org.example.reader')
        assert r.method == 'context-unknown'

    def test_confidence_scales_with_score(self):
        c = ContentClassifier(KeywordStore(weights={'news': {'alpha': 4.0}}))
        r = c.classify('alpha', 'org.example.reader')
        assert r.confidence == pytest.approx(0.4)

    def test_tie_goes_to_smallest_category_name(self):
        store = KeywordStore(weights={'zeta': {'alpha': 4.0}, 'beta': {'alpha': 4.0}})
        r = ContentClassifier(store).classify('alpha', 'org.example.reader')
        assert r.category == 'beta'

    def test_clothing_size_not_adult(self, classifier):
        r = classifier.classify('Buy XXXL hoodie', CHROME, None)
        assert r.category == 'shopping'
        assert r.method == 'weighted-keywords'

    def test_veto_word_inside_longer_word_not_adult(self):
        store = KeywordStore(veto_tokens=frozenset({'porn'}))
        r = ContentClassifier(store).classify('pornography pornography', 'org.example.reader')
        assert r.category != 'adult'

    def test_repeated_whole_veto_words_score_adult(self):
        store = KeywordStore(veto_tokens=frozenset({'porn'}))
        # the veto step is bypassed so the keyword step sees the text
        strategies = ContentClassifier(store).strategies[1:]
        r = ContentClassifier(store, strategies=strategies).classify('porn porn', 'org.example.reader')
        assert r.category == 'adult'
        assert r.method == 'weighted-keywords'
        assert r.confidence == pytest.approx(0.85)


# ── CONTEXTUAL FALLBACK ──────────────────────────────────────

class TestContextualFallback:

    def test_package_pattern(self, classifier):
        r = classifier.classify('', 'com.example.mygame', None)
        assert (r.category, r.method) == ('games', 'package-pattern')
        assert r.confidence == pytest.approx(0.7)

    def test_continuation_for_short_text(self, classifier):
        r = classifier.classify('ok', 'org.example.reader', 'games')
        assert (r.category, r.method) == ('games', 'context-continuation')
        assert r.confidence == pytest.approx(0.5)

    def test_no_continuation_for_long_text(self, classifier):
        r = classifier.classify('z' * 60, 'org.example.reader', 'games')
        assert (r.category, r.method) == ('other', 'context-unknown')
        assert r.confidence == pytest.approx(0.2)

    def test_empty_input(self, classifier):
        r = classifier.classify(None, None, None)
        assert r.category == 'other'


def test_cascade_order(classifier):
    names = [s.name for s in classifier.strategies]
    assert names == [
        'adult-veto', 'package-based', 'user-learned',
        'weighted-keywords', 'context', 'fallback',
    ]
