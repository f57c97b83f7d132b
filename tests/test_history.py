"""Tests for claudeflow.history — bounded activity log."""

import pytest

from claudeflow.bus import EventBus
from claudeflow.history import ActivityLog
from claudeflow.models import ActivityKind


class TestActivityLog:
    def test_records_every_kind(self):
        bus = EventBus()
        log = ActivityLog(bus)
        bus.emit_task_started("a")
        bus.emit_attention_required("a")
        bus.emit_task_completed("a")
        bus.emit_idle("a")
        assert [e.kind for e in log.events()] == list(ActivityKind)
        assert len(log) == 4

    def test_evicts_oldest(self):
        bus = EventBus()
        log = ActivityLog(bus, max_events=2)
        for source in ("a", "b", "c"):
            bus.emit_idle(source)
        assert [e.source for e in log.events()] == ["b", "c"]

    def test_latest(self):
        bus = EventBus()
        log = ActivityLog(bus)
        assert log.latest() is None
        bus.emit_task_started("a")
        bus.emit_idle("b")
        assert log.latest().source == "b"
        assert log.latest(ActivityKind.TASK_STARTED).source == "a"
        assert log.latest(ActivityKind.TASK_COMPLETED) is None

    def test_events_is_copy(self):
        bus = EventBus()
        log = ActivityLog(bus)
        bus.emit_idle("a")
        log.events().clear()
        assert len(log) == 1

    def test_clear(self):
        bus = EventBus()
        log = ActivityLog(bus)
        bus.emit_idle("a")
        log.clear()
        assert log.events() == []

    def test_close_unsubscribes(self):
        bus = EventBus()
        log = ActivityLog(bus)
        log.close()
        log.close()
        assert bus.listener_count() == 0
        bus.emit_idle("a")
        assert len(log) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            ActivityLog(EventBus(), max_events=0)
