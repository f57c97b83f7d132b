"""Bounded in-memory log of every event seen on the bus."""

from __future__ import annotations

from collections import deque

from claudeflow.bus import EventBus
from claudeflow.models import ActivityEvent, ActivityKind


class ActivityLog:
    """Records published events, evicting the oldest beyond *max_events*."""

    def __init__(self, bus: EventBus, max_events: int = 200) -> None:
        if max_events < 1:
            raise ValueError(f"max_events must be >= 1, got {max_events!r}")
        self._bus = bus
        self._events: deque[ActivityEvent] = deque(maxlen=max_events)
        self._closed = False
        for kind in ActivityKind:
            bus.subscribe(kind, self._record)

    def _record(self, event: ActivityEvent) -> None:
        self._events.append(event)

    def events(self) -> list[ActivityEvent]:
        """Recorded events, oldest first."""
        return list(self._events)

    def latest(self, kind: ActivityKind | None = None) -> ActivityEvent | None:
        for event in reversed(self._events):
            if kind is None or event.kind == kind:
                return event
        return None

    def clear(self) -> None:
        self._events.clear()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for kind in ActivityKind:
            self._bus.unsubscribe(kind, self._record)

    def __len__(self) -> int:
        return len(self._events)
