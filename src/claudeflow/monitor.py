"""Composition root — wires bus, classifier, tracker, activity log and hook reader."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable

from claudeflow.bus import EventBus
from claudeflow.classifier import DEFAULT_RULES, PatternClassifier, TextIngestor
from claudeflow.config import Config, HookLogConfig
from claudeflow.history import ActivityLog
from claudeflow.hooklog import HookLogReader
from claudeflow.models import ActivityEvent
from claudeflow.scheduler import Scheduler
from claudeflow.tracker import PermissionTracker

logger = logging.getLogger(__name__)


def build_classifier(config: Config, clock: Callable[[], float] = time.time) -> PatternClassifier:
    """Create a classifier with the default rules (if enabled) followed by configured ones."""
    rules = list(DEFAULT_RULES) if config.patterns.use_defaults else []
    classifier = PatternClassifier(rules, clock=clock)
    for rule in config.patterns.rules:
        classifier.add_rule(rule)
    return classifier


class ActivityMonitor:
    """Owns one instance of every core component and the wiring between them.

    Text from any collaborator enters through feed(); consumers subscribe on
    ``monitor.bus``.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        scheduler: Scheduler,
        base_dir: str | os.PathLike | None = None,
    ) -> None:
        self._config = config or Config()
        self._scheduler = scheduler
        self._base_dir = base_dir
        self._closed = False

        self.bus = EventBus(clock=scheduler.now)
        self.classifier = build_classifier(self._config, scheduler.now)
        self.ingestor = TextIngestor(self.bus, self.classifier)
        self.activity_log = ActivityLog(self.bus)
        self.tracker = PermissionTracker(
            self.bus,
            scheduler,
            max_history_size=self._config.tracker.max_history_size,
            sweep_interval=self._config.tracker.sweep_interval,
            timeouts=self._config.tracker.timeouts,
        )
        self.hook_reader: HookLogReader | None = self._make_hook_reader(self._config.hooks)

    @property
    def config(self) -> Config:
        return self._config

    def _make_hook_reader(self, hooks: HookLogConfig) -> HookLogReader | None:
        if not hooks.enabled or not hooks.file_path:
            return None
        return HookLogReader(
            hooks.file_path,
            self._scheduler,
            base_dir=self._base_dir,
            bus=self.bus,
            poll_interval=hooks.poll_interval,
            clock=self._scheduler.now,
        )

    def start(self) -> None:
        if self.hook_reader is not None:
            self.hook_reader.start()

    def feed(self, text: str, source: str) -> list[ActivityEvent]:
        """Classify a chunk of output and publish the resulting events."""
        return self.ingestor.feed(text, source)

    def apply_config(self, config: Config) -> None:
        """Re-apply tunables at runtime; the hook reader restarts if its settings changed."""
        self.tracker.max_history_size = config.tracker.max_history_size
        for request_type, seconds in config.tracker.timeouts.items():
            self.tracker.set_timeout(request_type, seconds)

        if config.hooks != self._config.hooks:
            if self.hook_reader is not None:
                self.hook_reader.stop()
            self.hook_reader = self._make_hook_reader(config.hooks)
            if self.hook_reader is not None:
                self.hook_reader.start()
            logger.info("Hook log settings changed, reader restarted")

        if config.patterns != self._config.patterns:
            self.classifier = build_classifier(config, self._scheduler.now)
            self.ingestor = TextIngestor(self.bus, self.classifier)

        self._config = config

    def close(self) -> None:
        """Stop all timers and detach every subscriber. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self.hook_reader is not None:
            self.hook_reader.stop()
        self.tracker.dispose()
        self.activity_log.close()
        logger.info("Activity monitor stopped")
