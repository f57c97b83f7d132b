"""Shared data models for claudeflow."""

from __future__ import annotations

import re
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActivityKind(str, Enum):
    TASK_STARTED = "task_started"
    TASK_COMPLETED = "task_completed"
    ATTENTION_REQUIRED = "attention_required"
    IDLE = "idle"


class RequestType(str, Enum):
    FILE_ACCESS = "file_access"
    NETWORK_ACCESS = "network_access"
    SYSTEM_COMMAND = "system_command"
    USER_INPUT = "user_input"
    CONFIRMATION = "confirmation"
    UNKNOWN = "unknown"


class Resolution(str, Enum):
    APPROVED = "approved"
    DENIED = "denied"
    TIMED_OUT = "timed_out"


# Seconds an unresolved request may stay active, per request type
DEFAULT_TIMEOUTS: dict[RequestType, float] = {
    RequestType.FILE_ACCESS: 60.0,
    RequestType.NETWORK_ACCESS: 120.0,
    RequestType.SYSTEM_COMMAND: 30.0,
    RequestType.USER_INPUT: 300.0,
    RequestType.CONFIRMATION: 180.0,
    RequestType.UNKNOWN: 120.0,
}


@dataclass(frozen=True)
class ActivityEvent:
    """A classified signal from the monitored assistant."""

    kind: ActivityKind
    source: str
    timestamp: float = field(default_factory=time.time)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def raw(self) -> str:
        """Raw message text carried by hook-log events, empty otherwise."""
        return self.details.get("raw", "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "source": self.source,
            "timestamp": self.timestamp,
            "details": self.details,
        }


@dataclass
class PatternRule:
    """A named regular expression that yields one event kind on match."""

    name: str
    pattern: str
    kind: ActivityKind
    description: str = ""
    case_sensitive: bool = False

    def compile(self) -> re.Pattern:
        """Compile the rule. ``^``/``$`` match at line boundaries. Raises re.error."""
        flags = re.MULTILINE
        if not self.case_sensitive:
            flags |= re.IGNORECASE
        return re.compile(self.pattern, flags)


def generate_request_id() -> str:
    return uuid.uuid4().hex


@dataclass
class PermissionRequest:
    """One outstanding-or-resolved attention episode."""

    request_type: RequestType
    source: str
    description: str
    timestamp: float
    timeout: float
    details: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=generate_request_id)
    resolved: bool = False
    resolution: Resolution | None = None
    resolved_at: float | None = None

    @property
    def expires_at(self) -> float:
        return self.timestamp + self.timeout

    @property
    def resolution_time(self) -> float | None:
        """Seconds between creation and resolution, None while active."""
        if self.resolved_at is None:
            return None
        return self.resolved_at - self.timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "request_type": self.request_type.value,
            "source": self.source,
            "description": self.description,
            "details": self.details,
            "timestamp": self.timestamp,
            "timeout": self.timeout,
            "resolved": self.resolved,
            "resolution": self.resolution.value if self.resolution else None,
            "resolved_at": self.resolved_at,
        }


@dataclass
class PermissionStatistics:
    """Aggregate counts over the request history."""

    active: int = 0
    total: int = 0
    approved: int = 0
    denied: int = 0
    timed_out: int = 0
    by_type: dict[RequestType, int] = field(default_factory=dict)
    average_resolution_time: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "total": self.total,
            "approved": self.approved,
            "denied": self.denied,
            "timed_out": self.timed_out,
            "by_type": {t.value: n for t, n in self.by_type.items()},
            "average_resolution_time": self.average_resolution_time,
        }
