"""
scrollsense/config.py
JSON config persisted to scrollsense_config.json in the project root.
Missing or unreadable files fall back to DEFAULT_CONFIG.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from scrollsense.detectors.stability_filter import COOLDOWN_MS, REQUIRED_STABLE
from scrollsense.session.manager import MIN_SESSION_MS, SWITCH_CONFIDENCE

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "scrollsense_config.json"

DEFAULT_CONFIG = {
    "db_path": "scrollsense.db",
    "keyword_paths": [],                 # empty → packaged keyword tables
    "veto_path": "",                     # empty → packaged veto list
    "languages": [],                     # empty → every language in the tables
    "cooldown_ms": COOLDOWN_MS,
    "required_stable": REQUIRED_STABLE,
    "min_session_ms": MIN_SESSION_MS,
    "switch_confidence": SWITCH_CONFIDENCE,
    "ignored_packages": ["com.scrollsense.app"],
    "app_labels": {},
    "api_host": "127.0.0.1",
    "api_port": 8765,
}


def _config_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path.cwd()
    return root / CONFIG_FILENAME


def load_config(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Load config from scrollsense_config.json. Returns defaults if missing."""
    path = _config_path(project_root)
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("top level is not an object")
            return {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError, ValueError) as e:
            logger.warning(f"Config load failed: {e}")
    return dict(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any], project_root: Optional[Path] = None) -> Path:
    """Persist config to scrollsense_config.json."""
    path = _config_path(project_root)
    path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    return path


@dataclass(frozen=True)
class PipelineSettings:
    """Tuning values for one UsagePipeline."""
    cooldown_ms:        int   = COOLDOWN_MS
    required_stable:    int   = REQUIRED_STABLE
    min_session_ms:     int   = MIN_SESSION_MS
    switch_confidence:  float = SWITCH_CONFIDENCE
    ignored_packages:   Tuple[str, ...]   = ()
    app_labels:         Dict[str, str]    = field(default_factory=dict)


def _as_int(config: Dict[str, Any], key: str) -> int:
    try:
        return int(config.get(key, DEFAULT_CONFIG[key]))
    except (TypeError, ValueError):
        logger.warning(f"Config {key}={config.get(key)!r} is not a number — using default")
        return DEFAULT_CONFIG[key]


def settings_from_config(config: Dict[str, Any]) -> PipelineSettings:
    try:
        switch = float(config.get("switch_confidence", SWITCH_CONFIDENCE))
    except (TypeError, ValueError):
        logger.warning("Config switch_confidence is not a number — using default")
        switch = SWITCH_CONFIDENCE

    return PipelineSettings(
        cooldown_ms       = _as_int(config, "cooldown_ms"),
        required_stable   = _as_int(config, "required_stable"),
        min_session_ms    = _as_int(config, "min_session_ms"),
        switch_confidence = switch,
        ignored_packages  = tuple(config.get("ignored_packages") or ()),
        app_labels        = dict(config.get("app_labels") or {}),
    )


def keyword_paths(config: Dict[str, Any]) -> List[Path]:
    return [Path(p) for p in (config.get("keyword_paths") or [])]


def veto_path(config: Dict[str, Any]) -> Optional[Path]:
    value = config.get("veto_path")
    return Path(value) if value else None
