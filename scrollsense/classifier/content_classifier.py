"""
scrollsense/classifier/content_classifier.py
Assigns (category, subcategory, confidence, method) to one screen.

classify() is a pure function of its inputs plus the injected KeywordStore,
PackageRuleTable and FeedbackStore snapshot. It never writes anything;
feedback is recorded only through record_user_feedback(), which the UI
layer calls when the user corrects a category.
"""

import logging
import time
from typing import List, Optional, Sequence

from scrollsense.classifier.strategies import (
    AbsoluteFallbackStrategy,
    AdultVetoStrategy,
    ClassificationInput,
    ContextualFallbackStrategy,
    FALLBACK_CONFIDENCE,
    LearnedFeedbackStrategy,
    OTHER,
    PackageRuleStrategy,
    Strategy,
    WeightedKeywordStrategy,
)
from scrollsense.detectors.keyword_store import KeywordStore
from scrollsense.detectors.package_rules import PackageRuleTable
from scrollsense.models.record import ClassificationResult, FeedbackRecord
from scrollsense.stores.base import FeedbackStore

logger = logging.getLogger(__name__)

FEEDBACK_CONFIDENCE = 0.9


def default_strategies(
    keywords:       KeywordStore,
    package_rules:  PackageRuleTable,
    feedback_store: Optional[FeedbackStore],
) -> List[Strategy]:
    """The standard cascade, highest priority first. The adult veto is always first."""
    return [
        AdultVetoStrategy(keywords),
        PackageRuleStrategy(package_rules),
        LearnedFeedbackStrategy(feedback_store),
        WeightedKeywordStrategy(keywords),
        ContextualFallbackStrategy(package_rules),
        AbsoluteFallbackStrategy(),
    ]


class ContentClassifier:
    """
    Runs the strategy cascade; the first strategy that returns a result wins.

    Usage:
        keywords   = load_keyword_store()
        classifier = ContentClassifier(keywords, PackageRuleTable(), feedback_store)
        result     = classifier.classify(text, "com.android.chrome", previous_category=None)
    """

    def __init__(
        self,
        keywords:       KeywordStore,
        package_rules:  Optional[PackageRuleTable] = None,
        feedback_store: Optional[FeedbackStore]    = None,
        strategies:     Optional[Sequence[Strategy]] = None,
    ):
        self.keywords       = keywords
        self.package_rules  = package_rules or PackageRuleTable()
        self.feedback_store = feedback_store
        self._strategies    = tuple(
            strategies if strategies is not None
            else default_strategies(self.keywords, self.package_rules, feedback_store)
        )
        if not keywords.veto_available:
            logger.warning("ContentClassifier running without adult veto (degraded safety)")

    @property
    def strategies(self) -> tuple:
        return self._strategies

    @property
    def veto_available(self) -> bool:
        return self.keywords.veto_available

    def classify(
        self,
        screen_text:       Optional[str],
        package_id:        Optional[str],
        previous_category: Optional[str] = None,
    ) -> ClassificationResult:
        inp = ClassificationInput(
            text              = screen_text or '',
            package_id        = package_id or '',
            previous_category = previous_category,
        )
        for strategy in self._strategies:
            result = strategy.try_classify(inp)
            if result is not None:
                logger.debug(
                    f"{inp.package_id}: {result.category} "
                    f"({result.method}, {result.confidence:.2f})"
                )
                return result

        return ClassificationResult(OTHER, '', FALLBACK_CONFIDENCE, 'fallback')

    def record_user_feedback(
        self,
        package_id:         str,
        corrected_category: str,
        now_ms:             Optional[int] = None,
    ) -> Optional[FeedbackRecord]:
        if self.feedback_store is None:
            logger.warning("No feedback store configured — correction not recorded")
            return None
        return record_user_feedback(self.feedback_store, package_id, corrected_category, now_ms)


def record_user_feedback(
    store:              FeedbackStore,
    package_id:         str,
    corrected_category: str,
    now_ms:             Optional[int] = None,
) -> Optional[FeedbackRecord]:
    """
    Upsert the user's correction for a package. Each call bumps the
    feedback count and overwrites category and confidence.
    Returns the stored record, or None if the store failed.
    """
    category = (corrected_category or '').strip().lower()
    if not package_id or not category:
        logger.warning("Ignoring feedback with empty package or category")
        return None

    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    try:
        existing = store.get(package_id)
        record = FeedbackRecord(
            package_id      = package_id,
            category        = category,
            confidence      = FEEDBACK_CONFIDENCE,
            feedback_count  = (existing.feedback_count + 1) if existing else 1,
            last_updated_ms = now_ms,
        )
        store.upsert(record)
    except Exception as e:
        logger.error(f"Failed to record feedback for {package_id}: {e}")
        return None

    logger.info(f"Recorded user feedback: {package_id} -> {category} (x{record.feedback_count})")
    return record
