"""
scrollsense/classifier/strategies.py
The classification cascade as explicit strategy objects.

Each strategy implements try_classify() and returns a ClassificationResult
when it is satisfied, or None to let the next strategy run. ContentClassifier
walks default_strategies() top to bottom and returns the first result, so the
priority order is data, not nested conditionals.

  0. AdultVetoStrategy          adult-veto            0.98
  1. PackageRuleStrategy        package-based         0.95
  2. LearnedFeedbackStrategy    user-learned          stored * 0.9
  3. WeightedKeywordStrategy    weighted-keywords     min(score / 10, 0.85)
  4. ContextualFallbackStrategy package-pattern 0.7 / context-continuation 0.5 / context-unknown 0.2
  5. AbsoluteFallbackStrategy   fallback              0.3
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

from scrollsense.detectors.keyword_store import KeywordStore
from scrollsense.detectors.package_rules import PackageRuleTable
from scrollsense.models.record import ClassificationResult
from scrollsense.stores.base import FeedbackStore

logger = logging.getLogger(__name__)

ADULT = 'adult'
OTHER = 'other'

VETO_CONFIDENCE          = 0.98
PACKAGE_CONFIDENCE       = 0.95
FEEDBACK_MIN_CONFIDENCE  = 0.8
FEEDBACK_DECAY           = 0.9
KEYWORD_THRESHOLD        = 3.0
KEYWORD_DIVISOR          = 10.0
KEYWORD_MAX_CONFIDENCE   = 0.85
ADULT_TOKEN_WEIGHT       = 5.0
PATTERN_CONFIDENCE       = 0.7
CONTINUATION_CONFIDENCE  = 0.5
CONTINUATION_MAX_CHARS   = 50
UNKNOWN_CONFIDENCE       = 0.2
FALLBACK_CONFIDENCE      = 0.3


@dataclass(frozen=True)
class ClassificationInput:
    text:               str
    package_id:         str
    previous_category:  Optional[str] = None

    @property
    def lower_text(self) -> str:
        return self.text.lower()


def subcategory_for(category: str, text: str) -> str:
    """Refine a category from text hints. Empty string when nothing applies."""
    t = (text or '').lower()
    c = (category or '').lower()
    if c == ADULT:
        if 'webcam' in t:                                   return 'webcam'
        if 'video' in t:                                    return 'videos'
        if 'photo' in t or 'image' in t or 'gallery' in t:  return 'photos'
        return 'general_adult'
    if c == 'social':
        if 'call' in t:     return 'voice_calls'
        if 'video' in t:    return 'video_calls'
        if 'message' in t:  return 'messaging'
        return 'general_social'
    if c == 'entertainment':
        if 'music' in t:    return 'music'
        if 'video' in t:    return 'video'
        if 'movie' in t:    return 'movies'
        return 'general_entertainment'
    if c == 'games':
        if 'puzzle' in t:   return 'puzzle'
        if 'action' in t:   return 'action'
        if 'strategy' in t: return 'strategy'
        return 'general_games'
    if c == 'finance':
        if 'otp' in t or 'verification' in t:  return 'verification'
        if 'payment' in t or 'upi' in t:       return 'payment'
        if 'trade' in t or 'crypto' in t:      return 'trading'
        return 'general_finance'
    return ''


class Strategy(ABC):
    """One step of the cascade."""
    name = 'strategy'

    @abstractmethod
    def try_classify(self, inp: ClassificationInput) -> Optional[ClassificationResult]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class AdultVetoStrategy(Strategy):
    """Forces 'adult' whenever a veto token is on screen. Nothing can override it."""
    name = 'adult-veto'

    def __init__(self, keywords: KeywordStore):
        self.keywords = keywords

    def try_classify(self, inp):
        if not self.keywords.contains_veto(inp.text):
            return None
        return ClassificationResult(
            category    = ADULT,
            subcategory = subcategory_for(ADULT, inp.text),
            confidence  = VETO_CONFIDENCE,
            method      = self.name,
        )


class PackageRuleStrategy(Strategy):
    name = 'package-based'

    def __init__(self, rules: PackageRuleTable):
        self.rules = rules

    def try_classify(self, inp):
        category = self.rules.lookup(inp.package_id)
        if category is None:
            return None
        return ClassificationResult(
            category    = category,
            subcategory = subcategory_for(category, inp.text),
            confidence  = PACKAGE_CONFIDENCE,
            method      = self.name,
        )


class LearnedFeedbackStrategy(Strategy):
    """Uses a prior user correction for the package, decayed slightly."""
    name = 'user-learned'

    def __init__(self, store: Optional[FeedbackStore]):
        self.store = store

    def try_classify(self, inp):
        if self.store is None or not inp.package_id:
            return None
        try:
            record = self.store.get(inp.package_id)
        except Exception as e:
            logger.warning(f"Feedback lookup failed for {inp.package_id}: {e}")
            return None
        if record is None or record.confidence <= FEEDBACK_MIN_CONFIDENCE:
            return None
        category = record.category.strip().lower()
        return ClassificationResult(
            category    = category,
            subcategory = subcategory_for(category, inp.text),
            confidence  = min(1.0, record.confidence * FEEDBACK_DECAY),
            method      = self.name,
        )


class WeightedKeywordStrategy(Strategy):
    """
    Scores every category by occurrences × weight over the lower-cased text.
    Veto tokens also score 'adult' at ADULT_TOKEN_WEIGHT each, merged with max.
    Ties on the top score go to the lexicographically smallest category.
    """
    name = 'weighted-keywords'

    def __init__(self, keywords: KeywordStore):
        self.keywords = keywords

    def scores(self, text: str) -> Dict[str, float]:
        lower  = text.lower()
        scores: Dict[str, float] = {}
        for category, table in self.keywords.weights.items():
            score = 0.0
            for keyword, weight in table.items():
                hits = lower.count(keyword)
                if hits:
                    score += hits * weight
            if score > 0:
                scores[category] = score

        adult = self.keywords.veto_occurrences(lower) * ADULT_TOKEN_WEIGHT
        if adult > 0:
            scores[ADULT] = max(scores.get(ADULT, 0.0), adult)
        return scores

    def try_classify(self, inp):
        if not inp.text:
            return None
        scores = self.scores(inp.text)
        if not scores:
            return None
        category, best = min(scores.items(), key=lambda kv: (-kv[1], kv[0]))
        if best <= KEYWORD_THRESHOLD:
            return None
        return ClassificationResult(
            category    = category,
            subcategory = subcategory_for(category, inp.text),
            confidence  = min(best / KEYWORD_DIVISOR, KEYWORD_MAX_CONFIDENCE),
            method      = self.name,
        )


class ContextualFallbackStrategy(Strategy):
    """Package-name patterns, then continuation of the previous category. Always resolves."""
    name = 'context'

    def __init__(self, rules: PackageRuleTable):
        self.rules = rules

    def try_classify(self, inp):
        category = self.rules.match_pattern(inp.package_id)
        if category is not None:
            return ClassificationResult(
                category    = category,
                subcategory = subcategory_for(category, inp.text),
                confidence  = PATTERN_CONFIDENCE,
                method      = 'package-pattern',
            )

        if inp.previous_category and len(inp.text) < CONTINUATION_MAX_CHARS:
            prev = inp.previous_category.strip().lower()
            return ClassificationResult(
                category    = prev,
                subcategory = subcategory_for(prev, inp.text),
                confidence  = CONTINUATION_CONFIDENCE,
                method      = 'context-continuation',
            )

        return ClassificationResult(OTHER, '', UNKNOWN_CONFIDENCE, 'context-unknown')


class AbsoluteFallbackStrategy(Strategy):
    name = 'fallback'

    def try_classify(self, inp):
        return ClassificationResult(OTHER, '', FALLBACK_CONFIDENCE, self.name)
