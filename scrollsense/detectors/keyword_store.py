"""
scrollsense/detectors/keyword_store.py
Category keyword weights and the adult-veto token set.

Loaded once by the bootstrap (see pipeline.build_pipeline) and handed to the
classifier by reference. The store is immutable after load, so it can be
shared across threads without locking.

KEYWORD FILE SHAPE:
  { "<category>": { "<language>": ["keyword", ...] } }     -> weight 1.0 each
  { "<category>": { "<keyword>": 4.0, ... } }              -> explicit weights
Both shapes may be mixed inside one file. Explicit weights win over 1.0.

VETO FILE SHAPE:
  { "adult_veto": ["token", ...] }

A missing or malformed file never raises to the caller. The store records
the ConfigLoadError and degrades; an empty veto set is logged as a
degraded-safety condition because it disables the adult veto strategy.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Pattern, Sequence, Tuple

from scrollsense.errors import ConfigLoadError

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / 'data'

DEFAULT_KEYWORD_FILES = (
    DATA_DIR / 'keywords_en.json',
    DATA_DIR / 'weighted_keywords.json',
)
DEFAULT_VETO_FILE = DATA_DIR / 'veto_keywords_en.json'

DEFAULT_WEIGHT = 1.0
VETO_KEY       = 'adult_veto'


def is_alnum_token(token: str) -> bool:
    return bool(token) and all(ch.isalnum() for ch in token)


def _compile_veto(tokens: Iterable[str]) -> Tuple[Tuple[str, Optional[Pattern]], ...]:
    compiled = []
    for token in sorted(tokens):
        if is_alnum_token(token):
            compiled.append((token, re.compile(r'\b' + re.escape(token) + r'\b', re.IGNORECASE)))
        else:
            compiled.append((token, None))
    return tuple(compiled)


@dataclass(frozen=True)
class KeywordStore:
    """Immutable keyword configuration snapshot."""
    weights:      Dict[str, Dict[str, float]] = field(default_factory=dict)
    veto_tokens:  FrozenSet[str]              = frozenset()
    load_errors:  Tuple[ConfigLoadError, ...] = ()
    _veto_rx:     Tuple[Tuple[str, Optional[Pattern]], ...] = field(
        default=(), init=False, repr=False, compare=False,
    )

    def __post_init__(self):
        object.__setattr__(self, '_veto_rx', _compile_veto(self.veto_tokens))

    @property
    def veto_available(self) -> bool:
        return bool(self.veto_tokens)

    @property
    def categories(self) -> List[str]:
        return list(self.weights)

    def contains_veto(self, text: str) -> bool:
        """
        True if any veto token is present. Purely alphanumeric tokens must
        match a whole word; tokens with symbols (e.g. "18+") match as substrings.
        """
        if not text or not text.strip() or not self._veto_rx:
            return False
        lower = text.lower()
        for token, rx in self._veto_rx:
            if rx is not None:
                if rx.search(lower):
                    return True
            elif token in lower:
                return True
        return False

    def veto_occurrences(self, text: str) -> int:
        """
        Whole-word occurrences of every alphanumeric veto token, plus one
        per symbol token (e.g. "18+") present anywhere in the text.
        """
        if not text:
            return 0
        lower = text.lower()
        total = 0
        for token, rx in self._veto_rx:
            if rx is not None:
                total += len(rx.findall(lower))
            elif token in lower:
                total += 1
        return total


# ── LOADING ──────────────────────────────────────────────────

def _read_json(path: Path) -> dict:
    try:
        data = json.loads(Path(path).read_text(encoding='utf-8'))
    except FileNotFoundError:
        raise ConfigLoadError(path, 'file not found')
    except OSError as e:
        raise ConfigLoadError(path, f'unreadable: {e}')
    except json.JSONDecodeError as e:
        raise ConfigLoadError(path, f'malformed JSON: {e}')
    if not isinstance(data, dict):
        raise ConfigLoadError(path, 'top-level value must be an object')
    return data


def _merge_keyword_table(
    data:      dict,
    weights:   Dict[str, Dict[str, float]],
    explicit:  Dict[str, set],
    languages: Optional[Sequence[str]],
    path:      Path,
) -> None:
    for raw_category, table in data.items():
        if not isinstance(table, dict):
            logger.warning(f"{Path(path).name}: category '{raw_category}' is not an object — skipped")
            continue
        category = str(raw_category).strip().lower()
        bucket   = weights.setdefault(category, {})
        pinned   = explicit.setdefault(category, set())

        for key, value in table.items():
            if isinstance(value, list):
                if languages and key not in languages:
                    continue
                for kw in value:
                    kw = str(kw).strip().lower()
                    if kw and kw not in pinned:
                        bucket[kw] = DEFAULT_WEIGHT
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                kw = str(key).strip().lower()
                if kw:
                    bucket[kw] = float(value)
                    pinned.add(kw)
            else:
                logger.debug(f"{Path(path).name}: ignoring {category}/{key} ({type(value).__name__})")


def load_veto_tokens(veto_path: Optional[Path] = None) -> FrozenSet[str]:
    """Read the adult_veto array. Raises ConfigLoadError if missing or malformed."""
    path = Path(veto_path) if veto_path else DEFAULT_VETO_FILE
    data = _read_json(path)
    arr  = data.get(VETO_KEY)
    if not isinstance(arr, list):
        raise ConfigLoadError(path, f"missing '{VETO_KEY}' array")
    return frozenset(t for t in (str(x).strip().lower() for x in arr) if t)


def load_keyword_store(
    keyword_paths: Optional[Sequence[Path]] = None,
    veto_path:     Optional[Path]           = None,
    languages:     Optional[Sequence[str]]  = None,
) -> KeywordStore:
    """
    Build a KeywordStore from JSON resources. Never raises.
    keyword_paths: files to merge in order (packaged defaults if None/empty).
    languages:     restrict language lists, e.g. ['en'] (all if None).
    """
    paths = [Path(p) for p in keyword_paths] if keyword_paths else list(DEFAULT_KEYWORD_FILES)

    errors:   List[ConfigLoadError]       = []
    weights:  Dict[str, Dict[str, float]] = {}
    explicit: Dict[str, set]              = {}

    for path in paths:
        try:
            data = _read_json(path)
        except ConfigLoadError as e:
            logger.warning(f"Keyword table not loaded — {e}")
            errors.append(e)
            continue
        _merge_keyword_table(data, weights, explicit, languages, path)

    weights = {c: kws for c, kws in weights.items() if kws}

    try:
        veto = load_veto_tokens(veto_path)
    except ConfigLoadError as e:
        errors.append(e)
        veto = frozenset()

    if not veto:
        logger.error(
            "Adult veto unavailable — veto token set is empty. "
            "Sensitive content will not be force-classified (degraded safety)."
        )

    store = KeywordStore(weights=weights, veto_tokens=veto, load_errors=tuple(errors))
    logger.info(
        f"Keyword store loaded: {len(weights)} categories, "
        f"{sum(len(v) for v in weights.values())} keywords, {len(veto)} veto tokens"
    )
    return store
