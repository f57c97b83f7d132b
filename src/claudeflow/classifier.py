"""Pattern classifier — turns raw assistant output into activity events."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable

from claudeflow.bus import EventBus
from claudeflow.models import ActivityEvent, ActivityKind, PatternRule

logger = logging.getLogger(__name__)

# Built-in heuristics, evaluated in order. Every matching rule fires.
DEFAULT_RULES: tuple[PatternRule, ...] = (
    # Task started
    PatternRule(
        name="assistant-thinking",
        pattern=r"^(▶|Thinking|Starting|Begin|Initializing)",
        kind=ActivityKind.TASK_STARTED,
        description="Assistant starts a new task",
    ),
    PatternRule(
        name="tool-execution",
        pattern=r"Using \w+ (tool|command)",
        kind=ActivityKind.TASK_STARTED,
        description="Assistant executes a tool",
    ),
    # Task completed
    PatternRule(
        name="task-success",
        pattern=r"(✓|✨|\bDone\b|\bCompleted\b|\bFinished\b|\bAll set\b)",
        kind=ActivityKind.TASK_COMPLETED,
        description="Assistant completes a task successfully",
    ),
    PatternRule(
        name="file-changed",
        pattern=r"\b(Created|Updated|Modified|Deleted) \S+",
        kind=ActivityKind.TASK_COMPLETED,
        description="Assistant modifies files",
    ),
    # Attention required
    PatternRule(
        name="permission-request",
        pattern=r"\b(Permission|Confirm|Allow|Proceed)\b",
        kind=ActivityKind.ATTENTION_REQUIRED,
        description="Assistant requests user permission",
    ),
    PatternRule(
        name="question-prompt",
        pattern=r"\?\s*$",
        kind=ActivityKind.ATTENTION_REQUIRED,
        description="Assistant asks a question",
        case_sensitive=True,
    ),
    PatternRule(
        name="y-n-confirmation",
        pattern=r"\b(y/n|yes/no)\b",
        kind=ActivityKind.ATTENTION_REQUIRED,
        description="Assistant requests y/n confirmation",
    ),
    PatternRule(
        name="user-input-needed",
        pattern=r"(Waiting for|Need|Please provide) (input|response|answer)",
        kind=ActivityKind.ATTENTION_REQUIRED,
        description="Assistant waits for user input",
    ),
    PatternRule(
        name="sure-confirmation",
        pattern=r"\b(are you sure|is this ok|do you want to)\b",
        kind=ActivityKind.ATTENTION_REQUIRED,
        description="Assistant asks the user to confirm",
    ),
    # Idle
    PatternRule(
        name="ready-prompt",
        pattern=r"(I'm ready|How can I help|What would you like|Ready to assist)",
        kind=ActivityKind.IDLE,
        description="Assistant is ready for the next instruction",
    ),
    PatternRule(
        name="conversation-end",
        pattern=r"(Anything else|Is there anything|Need anything else)",
        kind=ActivityKind.IDLE,
        description="Assistant finished the current exchange",
    ),
)


def source_id(channel: str, name: str) -> str:
    """Build a source identifier such as ``terminal:zsh``."""
    return f"{channel}:{name}"


class PatternClassifier:
    """Evaluates an ordered, mutable table of pattern rules against text.

    Classification is pure: events are returned, never published.
    """

    def __init__(
        self,
        rules: list[PatternRule] | tuple[PatternRule, ...] | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self._rules: list[tuple[PatternRule, re.Pattern]] = []
        for rule in DEFAULT_RULES if rules is None else rules:
            self.add_rule(rule)

    def add_rule(self, rule: PatternRule) -> bool:
        """Append a rule. Uncompilable or duplicate rules are logged and skipped."""
        if any(existing.name == rule.name for existing, _ in self._rules):
            logger.warning("Pattern rule %r already registered, skipping", rule.name)
            return False
        try:
            compiled = rule.compile()
        except re.error as e:
            logger.warning("Pattern rule %r has an invalid pattern %r: %s", rule.name, rule.pattern, e)
            return False
        self._rules.append((rule, compiled))
        return True

    def remove_rule(self, name: str) -> bool:
        for index, (rule, _) in enumerate(self._rules):
            if rule.name == name:
                del self._rules[index]
                return True
        return False

    def list_rules(self) -> list[PatternRule]:
        return [rule for rule, _ in self._rules]

    def classify(self, text: str, source: str) -> list[ActivityEvent]:
        """Return one event per rule that matches *text*, in rule order."""
        if not text:
            return []

        events: list[ActivityEvent] = []
        full_text = text.strip()
        for rule, compiled in self._rules:
            match = compiled.search(text)
            if match is None:
                continue
            events.append(
                ActivityEvent(
                    kind=rule.kind,
                    source=source,
                    timestamp=self._clock(),
                    details={
                        "pattern_name": rule.name,
                        "pattern": rule.pattern,
                        "matched_text": match.group(0),
                        "full_text": full_text,
                        "description": rule.description,
                    },
                )
            )
        return events


class TextIngestor:
    """Feeds ``(text, source)`` pairs through a classifier onto a bus."""

    def __init__(self, bus: EventBus, classifier: PatternClassifier) -> None:
        self._bus = bus
        self._classifier = classifier

    def feed(self, text: str, source: str) -> list[ActivityEvent]:
        events = self._classifier.classify(text, source)
        for event in events:
            logger.debug(
                "Classified %s from %s via %s",
                event.kind.value,
                source,
                event.details["pattern_name"],
            )
            self._bus.publish(event)
        return events
