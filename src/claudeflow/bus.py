"""Event bus — synchronous, typed pub/sub for activity events."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from claudeflow.models import ActivityEvent, ActivityKind

logger = logging.getLogger(__name__)

Listener = Callable[[ActivityEvent], None]


class EventBus:
    """Distributes activity events to listeners registered per kind.

    Dispatch is synchronous and in registration order. A listener that
    raises is logged and skipped; the remaining listeners still run and
    the publisher never sees the error.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._listeners: dict[ActivityKind, list[Listener]] = {}

    def subscribe(self, kind: ActivityKind, listener: Listener) -> None:
        self._listeners.setdefault(kind, []).append(listener)

    def unsubscribe(self, kind: ActivityKind, listener: Listener) -> bool:
        """Remove the first registration of *listener* for *kind*."""
        listeners = self._listeners.get(kind)
        if not listeners or listener not in listeners:
            return False
        listeners.remove(listener)
        return True

    def listener_count(self, kind: ActivityKind | None = None) -> int:
        if kind is not None:
            return len(self._listeners.get(kind, ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def publish(self, event: ActivityEvent) -> None:
        # Snapshot so listeners may (un)subscribe during dispatch
        for listener in list(self._listeners.get(event.kind, ())):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "Listener %r failed for %s event from %s",
                    listener,
                    event.kind.value,
                    event.source,
                )

    # ------------------------------------------------------------------
    # Convenience emitters
    # ------------------------------------------------------------------

    def emit(
        self, kind: ActivityKind, source: str, details: dict[str, Any] | None = None
    ) -> ActivityEvent:
        """Build an event stamped with the bus clock and publish it."""
        event = ActivityEvent(
            kind=kind,
            source=source,
            timestamp=self._clock(),
            details=details or {},
        )
        self.publish(event)
        return event

    def emit_task_started(self, source: str, details: dict[str, Any] | None = None) -> ActivityEvent:
        return self.emit(ActivityKind.TASK_STARTED, source, details)

    def emit_task_completed(
        self, source: str, details: dict[str, Any] | None = None
    ) -> ActivityEvent:
        return self.emit(ActivityKind.TASK_COMPLETED, source, details)

    def emit_attention_required(
        self, source: str, details: dict[str, Any] | None = None
    ) -> ActivityEvent:
        return self.emit(ActivityKind.ATTENTION_REQUIRED, source, details)

    def emit_idle(self, source: str, details: dict[str, Any] | None = None) -> ActivityEvent:
        return self.emit(ActivityKind.IDLE, source, details)
