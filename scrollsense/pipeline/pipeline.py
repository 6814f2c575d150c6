"""
scrollsense/pipeline/pipeline.py
Wires the per-event path together:

  UIEvent → noise/ignore check → content type → StabilityFilter
          → ContentClassifier → SessionManager → SessionWriter

Everything up to the manager runs on the caller's thread, one event at a
time. Only the writer's store calls happen in the background.
"""

import logging
from typing import Any, Dict, Optional

from scrollsense.classifier.content_classifier import ContentClassifier
from scrollsense.config import (
    PipelineSettings,
    keyword_paths,
    settings_from_config,
    veto_path,
)
from scrollsense.detectors.content_type import detect_content_type, is_system_noise
from scrollsense.detectors.keyword_store import load_keyword_store
from scrollsense.detectors.package_rules import PackageRuleTable
from scrollsense.detectors.stability_filter import StabilityFilter
from scrollsense.models.record import Detection, UIEvent
from scrollsense.pipeline.writer import SessionWriter
from scrollsense.session.manager import IgnoreDetection, SessionCommand, SessionManager
from scrollsense.stores.base import FeedbackStore, SessionStore

logger = logging.getLogger(__name__)


class UsagePipeline:

    def __init__(
        self,
        classifier: ContentClassifier,
        settings:   PipelineSettings,
        writer:     SessionWriter,
    ):
        self.classifier = classifier
        self.settings   = settings
        self.writer     = writer
        self.filter     = StabilityFilter(settings.required_stable, settings.cooldown_ms)
        self.manager    = SessionManager(
            min_session_ms    = settings.min_session_ms,
            switch_confidence = settings.switch_confidence,
            labels            = settings.app_labels,
        )
        self._ignored   = frozenset(settings.ignored_packages)
        self.events_seen = 0

    @property
    def safety_degraded(self) -> bool:
        return not self.classifier.veto_available

    def detect(self, event: UIEvent) -> Optional[Detection]:
        """Raw (package, content type) observation, or None for ignored/noise events."""
        package_id = event.package_id
        if not package_id or package_id in self._ignored:
            return None
        if event.text is None:
            logger.debug(f"Dropping event without text from {package_id}")
            return None
        if is_system_noise(event.text):
            logger.debug(f"Skipping system noise from {package_id}")
            return None
        return Detection(
            package_id   = package_id,
            content_type = detect_content_type(package_id, event.text, event.node_classes),
            text         = event.text,
            timestamp_ms = event.timestamp_ms,
        )

    def process(self, event: UIEvent) -> Optional[SessionCommand]:
        """
        Feed one event. Returns the command handed to the writer, or None
        when the event produced no stable detection.
        """
        self.events_seen += 1
        raw = self.detect(event)
        if raw is None:
            return None

        stable = self.filter.evaluate(
            raw.package_id,
            raw.content_type,
            raw.timestamp_ms,
            kind = event.kind,
            text = raw.text,
        )
        if stable is None:
            return None

        classification = self.classifier.classify(
            stable.text,
            stable.package_id,
            previous_category = self.manager.active_category,
        )
        command = self.manager.handle(stable, classification, event.timestamp_ms)
        self.writer.submit(command)
        return command

    def end_of_signal(self, now: int) -> SessionCommand:
        """Source window disappeared or the observer was interrupted."""
        command = self.manager.end_of_signal(now)
        self.filter.reset()
        if not isinstance(command, IgnoreDetection):
            logger.info(f"End of signal at {now} — closing open session")
        self.writer.submit(command)
        return command

    def close(self, now: int) -> None:
        """Finalize any open session, then drain and stop the writer."""
        self.end_of_signal(now)
        self.writer.flush()
        self.writer.shutdown()


def build_pipeline(
    config:         Dict[str, Any],
    session_store:  SessionStore,
    feedback_store: Optional[FeedbackStore] = None,
) -> UsagePipeline:
    """Load keyword tables once and assemble a pipeline around the given stores."""
    keywords = load_keyword_store(
        keyword_paths = keyword_paths(config),
        veto_path     = veto_path(config),
        languages     = config.get("languages") or None,
    )
    classifier = ContentClassifier(keywords, PackageRuleTable(), feedback_store)
    pipeline = UsagePipeline(classifier, settings_from_config(config), SessionWriter(session_store))
    if pipeline.safety_degraded:
        logger.warning("Pipeline started with degraded safety: adult veto unavailable")
    return pipeline
