"""
scrollsense/detectors/package_rules.py
Static app identifier → category tables.

PACKAGE_CATEGORY_MAP is the highest-confidence classification signal.
PACKAGE_PATTERNS is the weaker substring table used by the contextual
fallback when nothing else resolved. Extend both freely; categories are
lower-case canonical ids.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

# ── KNOWN PACKAGES ───────────────────────────────────────────

PACKAGE_CATEGORY_MAP: Dict[str, str] = {
    # Social
    'com.whatsapp':                          'social',
    'com.facebook.katana':                   'social',
    'com.instagram.android':                 'social',
    'com.twitter.android':                   'social',
    'com.snapchat.android':                  'social',
    'com.android.incallui':                  'social',
    'com.android.dialer':                    'social',
    'com.google.android.dialer':             'social',

    # Entertainment
    'com.google.android.youtube':            'entertainment',
    'com.netflix.mediaclient':               'entertainment',
    'com.amazon.avod.thirdpartyclient':      'entertainment',
    'com.hotstar.android':                   'entertainment',
    'com.spotify.music':                     'entertainment',

    # Games
    'com.supercell.clashofclans':            'games',
    'com.king.candycrushsaga':               'games',
    'com.pubg.imobile':                      'games',
    'com.garena.game.freefire':              'games',

    # News
    'com.google.android.apps.magazines':     'news',
    'flipboard.app':                         'news',

    # Productivity
    'com.linkedin.android':                  'productivity',
    'com.google.android.apps.docs.editors.docs': 'productivity',
    'com.microsoft.office.word':             'productivity',
    'com.google.android.gm':                 'productivity',

    # Shopping
    'com.amazon.mshop.android.shopping':     'shopping',
    'com.flipkart.android':                  'shopping',
    'com.myntra.android':                    'shopping',

    # Finance
    'zebpay.application':                    'finance',
    'com.google.android.apps.nbu.paisa.user': 'finance',
    'com.phonepe.app':                       'finance',
    'net.one97.paytm':                       'finance',

    # Education
    'com.khanacademy.android':               'education',
    'com.coursera.android':                  'education',
    'com.udemy.android':                     'education',
}

# Order matters: first matching substring wins.
# A leading '.' anchors the pattern to the start of a package segment.
PACKAGE_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ('game',    'games'),
    ('social',  'social'),
    ('news',    'news'),
    ('music',   'entertainment'),
    ('video',   'entertainment'),
    ('shop',    'shopping'),
    ('learn',   'education'),
    ('bank',    'finance'),
    ('.pay',    'finance'),
    ('trade',   'finance'),
    ('wallet',  'finance'),
    ('fitness', 'fitness'),
    ('health',  'fitness'),
)


@dataclass(frozen=True)
class PackageRuleTable:
    """Read-only package lookup, shared by reference."""
    categories:  Mapping[str, str]           = field(default_factory=lambda: dict(PACKAGE_CATEGORY_MAP))
    patterns:    Tuple[Tuple[str, str], ...] = PACKAGE_PATTERNS

    def lookup(self, package_id: str) -> Optional[str]:
        if not package_id:
            return None
        return self.categories.get(package_id) or self.categories.get(package_id.lower())

    def match_pattern(self, package_id: str) -> Optional[str]:
        if not package_id:
            return None
        lower = '.' + package_id.lower()
        for pattern, category in self.patterns:
            if pattern in lower:
                return category
        return None

    def __contains__(self, package_id: str) -> bool:
        return self.lookup(package_id) is not None


def app_label(package_id: str, labels: Optional[Mapping[str, str]] = None) -> str:
    """Display label for a package; falls back to the package id itself."""
    if labels:
        label = labels.get(package_id)
        if label:
            return label
    return package_id
