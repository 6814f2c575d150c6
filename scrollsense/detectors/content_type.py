"""
scrollsense/detectors/content_type.py
Content-type detection for one screen: (package id, text blob, node classes)
→ "video" / "shopping" / "news" / "image" / "text" / "other".

Detection is an ordered rule list evaluated top to bottom; the first rule
that matches wins. Also hosts the system-noise filter and the screen title
snapshot used when a session opens.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

VIDEO_PACKAGES     = ('youtube', 'vimeo', 'netflix', 'tiktok')
MEDIA_SURFACES     = ('VideoView', 'TextureView', 'SurfaceView', 'PlayerView', 'ExoPlayerView')
COMMERCE_HINTS     = ('add to cart', 'buy now', 'price', '₹', '$', '€', '£')
NEWS_HINTS         = ('breaking', 'headline', 'news')
IMAGE_HINTS        = ('photo', 'image', 'gallery')
LONG_FORM_HINTS    = ('comment', 'read more')
LONG_FORM_LENGTH   = 200

# Platforms hosting mixed content: only video when the text says so
MIXED_VIDEO_HINTS = {
    'instagram': ('reel', 'video'),
    'facebook':  ('watch', 'reel'),
}

PACKAGE_FALLBACK = (
    ('pinterest', 'image'),
    ('amazon',    'shopping'),
    ('flipkart',  'shopping'),
)

DEFAULT_TYPE = 'other'


@dataclass(frozen=True)
class ScreenSample:
    package:  str                 # lower-cased
    text:     str                 # lower-cased blob
    classes:  Tuple[str, ...]


@dataclass(frozen=True)
class ContentTypeRule:
    name:    str
    result:  str
    match:   Callable[[ScreenSample], bool]


def _any_in(needles: Sequence[str], haystack: str) -> bool:
    return any(n in haystack for n in needles)


def _mixed_platform_video(s: ScreenSample) -> bool:
    for platform, hints in MIXED_VIDEO_HINTS.items():
        if platform in s.package and _any_in(hints, s.text):
            return True
    return False


def _has_media_surface(s: ScreenSample) -> bool:
    wanted = [c.lower() for c in MEDIA_SURFACES]
    return any(w in cls.lower() for cls in s.classes for w in wanted)


def _package_fallback(result: str) -> Callable[[ScreenSample], bool]:
    needles = tuple(p for p, r in PACKAGE_FALLBACK if r == result)
    return lambda s: _any_in(needles, s.package)


CONTENT_TYPE_RULES: Tuple[ContentTypeRule, ...] = (
    ContentTypeRule('video-package',   'video',    lambda s: _any_in(VIDEO_PACKAGES, s.package)),
    ContentTypeRule('video-app-hint',  'video',    _mixed_platform_video),
    ContentTypeRule('media-surface',   'video',    _has_media_surface),
    ContentTypeRule('commerce-hint',   'shopping', lambda s: _any_in(COMMERCE_HINTS, s.text)),
    ContentTypeRule('news-hint',       'news',     lambda s: _any_in(NEWS_HINTS, s.text)),
    ContentTypeRule('image-hint',      'image',    lambda s: _any_in(IMAGE_HINTS, s.text)),
    ContentTypeRule('long-form',       'text',
                    lambda s: _any_in(LONG_FORM_HINTS, s.text) or len(s.text) > LONG_FORM_LENGTH),
    ContentTypeRule('package-image',   'image',    _package_fallback('image')),
    ContentTypeRule('package-shop',    'shopping', _package_fallback('shopping')),
)


def detect_content_type(
    package_id:   str,
    text:         Optional[str],
    node_classes: Sequence[str] = (),
    rules:        Sequence[ContentTypeRule] = CONTENT_TYPE_RULES,
) -> str:
    """Return the content type of the first matching rule, else 'other'."""
    sample = ScreenSample(
        package = (package_id or '').lower(),
        text    = (text or '').lower(),
        classes = tuple(node_classes or ()),
    )
    for rule in rules:
        if rule.match(sample):
            return rule.result
    return DEFAULT_TYPE


# ── SYSTEM NOISE ─────────────────────────────────────────────
# Status bar, quick settings and installer overlays report events under
# the foreground package and would otherwise fragment sessions.

NOISE_PATTERNS = (
    'signal strength:', 'today:', 'this month:', '5g+',
    'double tap and hold', 'button.', 'expand', 'collapse',
    'uninstalling will remove', 'star rating:',
    'more connectivity options', 'fingerprints, face data',
)
_NOISE_SIZE = re.compile(r'^\d+(\.\d+)?\s*(mb|gb)$', re.IGNORECASE)
_NOISE_BARS = re.compile(r'^\d+ out of \d+ bars?$', re.IGNORECASE)


def is_system_noise(text: Optional[str]) -> bool:
    if not text:
        return False
    lower = text.strip().lower()
    if _any_in(NOISE_PATTERNS, lower):
        return True
    return bool(_NOISE_SIZE.match(lower) or _NOISE_BARS.match(lower))


# ── TITLE SNAPSHOT ───────────────────────────────────────────

TITLE_MAX = 100


def screen_title(text: Optional[str]) -> str:
    """Short title stored with a session when it opens."""
    title = ' '.join((text or '').split())
    if not title:
        return 'Unknown Content'
    if len(title) <= TITLE_MAX:
        return title
    return title[:TITLE_MAX - 3] + '...'
