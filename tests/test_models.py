"""Tests for claudeflow.models — shared data models."""

import re
import time

import pytest

from claudeflow.models import (
    DEFAULT_TIMEOUTS,
    ActivityEvent,
    ActivityKind,
    PatternRule,
    PermissionRequest,
    PermissionStatistics,
    RequestType,
    Resolution,
)


class TestEnums:
    def test_activity_kind_values(self):
        assert ActivityKind.TASK_STARTED.value == "task_started"
        assert ActivityKind.TASK_COMPLETED.value == "task_completed"
        assert ActivityKind.ATTENTION_REQUIRED.value == "attention_required"
        assert ActivityKind.IDLE.value == "idle"

    def test_activity_kind_from_string(self):
        assert ActivityKind("idle") is ActivityKind.IDLE

    def test_resolution_values(self):
        assert {r.value for r in Resolution} == {"approved", "denied", "timed_out"}

    def test_default_timeouts_cover_every_type(self):
        assert set(DEFAULT_TIMEOUTS) == set(RequestType)

    def test_default_timeout_values(self):
        assert DEFAULT_TIMEOUTS[RequestType.FILE_ACCESS] == 60
        assert DEFAULT_TIMEOUTS[RequestType.NETWORK_ACCESS] == 120
        assert DEFAULT_TIMEOUTS[RequestType.SYSTEM_COMMAND] == 30
        assert DEFAULT_TIMEOUTS[RequestType.USER_INPUT] == 300
        assert DEFAULT_TIMEOUTS[RequestType.CONFIRMATION] == 180
        assert DEFAULT_TIMEOUTS[RequestType.UNKNOWN] == 120


class TestActivityEvent:
    def test_construction_defaults(self):
        before = time.time()
        event = ActivityEvent(kind=ActivityKind.IDLE, source="terminal:main")
        after = time.time()
        assert before <= event.timestamp <= after
        assert event.details == {}

    def test_is_immutable(self):
        event = ActivityEvent(kind=ActivityKind.IDLE, source="terminal:main")
        with pytest.raises(AttributeError):
            event.source = "other"  # type: ignore[misc]

    def test_raw_reads_details(self):
        event = ActivityEvent(
            kind=ActivityKind.TASK_COMPLETED, source="hook:x", details={"raw": "done"}
        )
        assert event.raw == "done"

    def test_raw_defaults_to_empty(self):
        event = ActivityEvent(kind=ActivityKind.TASK_COMPLETED, source="hook:x")
        assert event.raw == ""

    def test_to_dict(self):
        event = ActivityEvent(
            kind=ActivityKind.TASK_STARTED, source="terminal:a", timestamp=5.0, details={"k": 1}
        )
        assert event.to_dict() == {
            "kind": "task_started",
            "source": "terminal:a",
            "timestamp": 5.0,
            "details": {"k": 1},
        }


class TestPatternRule:
    def test_case_insensitive_by_default(self):
        rule = PatternRule(name="r", pattern="done", kind=ActivityKind.TASK_COMPLETED)
        assert rule.compile().search("All DONE")

    def test_case_sensitive(self):
        rule = PatternRule(
            name="r", pattern="done", kind=ActivityKind.TASK_COMPLETED, case_sensitive=True
        )
        assert rule.compile().search("All DONE") is None
        assert rule.compile().search("all done")

    def test_anchors_match_per_line(self):
        rule = PatternRule(name="r", pattern=r"^Starting", kind=ActivityKind.TASK_STARTED)
        assert rule.compile().search("prelude\nStarting work")

    def test_invalid_pattern_raises(self):
        rule = PatternRule(name="r", pattern="(unclosed", kind=ActivityKind.IDLE)
        with pytest.raises(re.error):
            rule.compile()

    def test_description_default_empty(self):
        rule = PatternRule(name="r", pattern="x", kind=ActivityKind.IDLE)
        assert rule.description == ""


class TestPermissionRequest:
    def _make(self, **overrides):
        fields = {
            "request_type": RequestType.UNKNOWN,
            "source": "terminal:main",
            "description": "Attention required",
            "timestamp": 100.0,
            "timeout": 120.0,
        }
        fields.update(overrides)
        return PermissionRequest(**fields)

    def test_defaults(self):
        request = self._make()
        assert request.resolved is False
        assert request.resolution is None
        assert request.resolved_at is None
        assert request.details == {}

    def test_ids_are_unique(self):
        assert self._make().id != self._make().id

    def test_expires_at(self):
        assert self._make().expires_at == 220.0

    def test_resolution_time(self):
        request = self._make()
        assert request.resolution_time is None
        request.resolved_at = 130.0
        assert request.resolution_time == 30.0

    def test_to_dict(self):
        request = self._make()
        request.resolved = True
        request.resolution = Resolution.DENIED
        data = request.to_dict()
        assert data["request_type"] == "unknown"
        assert data["resolution"] == "denied"
        assert data["id"] == request.id


class TestPermissionStatistics:
    def test_defaults(self):
        stats = PermissionStatistics()
        assert stats.total == 0
        assert stats.by_type == {}
        assert stats.average_resolution_time is None

    def test_to_dict_uses_type_values(self):
        stats = PermissionStatistics(by_type={RequestType.FILE_ACCESS: 2})
        assert stats.to_dict()["by_type"] == {"file_access": 2}
