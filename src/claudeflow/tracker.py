"""Permission-lifecycle tracker — outstanding attention requests and their resolution."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from claudeflow.bus import EventBus
from claudeflow.models import (
    DEFAULT_TIMEOUTS,
    ActivityEvent,
    ActivityKind,
    PermissionRequest,
    PermissionStatistics,
    RequestType,
    Resolution,
)
from claudeflow.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

# Ordered request-type table: (pattern, type, description). First match wins.
REQUEST_TYPE_RULES: tuple[tuple[re.Pattern, RequestType, str], ...] = (
    (re.compile(r"permission", re.I), RequestType.CONFIRMATION, "Permission request"),
    (re.compile(r"confirm|continue", re.I), RequestType.CONFIRMATION, "Confirmation required"),
    (
        re.compile(r"access|read|write|create|delete", re.I),
        RequestType.FILE_ACCESS,
        "File access request",
    ),
    (
        re.compile(r"network|internet|http", re.I),
        RequestType.NETWORK_ACCESS,
        "Network access request",
    ),
    (
        re.compile(r"exec|run|command|shell", re.I),
        RequestType.SYSTEM_COMMAND,
        "System command request",
    ),
    (re.compile(r"input|enter|type", re.I), RequestType.USER_INPUT, "User input required"),
)

UNKNOWN_DESCRIPTION = "Attention required"

# Per-sample cap (seconds) for the average resolution time
RESOLUTION_TIME_CAP = 60.0


def classify_request(source: str, details: dict[str, Any] | None) -> tuple[RequestType, str]:
    """Infer the request type from an attention event's details and source."""
    details_text = json.dumps(details, default=str).lower() if details else ""
    source_text = source.lower()
    for pattern, request_type, description in REQUEST_TYPE_RULES:
        if pattern.search(details_text) or pattern.search(source_text):
            return request_type, description
    return RequestType.UNKNOWN, UNKNOWN_DESCRIPTION


class PermissionTracker:
    """Tracks attention requests from the bus until they resolve.

    Requests are created on ATTENTION_REQUIRED, approved by a TASK_COMPLETED
    from the same source, resolved manually via approve_request() /
    deny_request(), or timed out by a periodic sweep.
    """

    def __init__(
        self,
        bus: EventBus,
        scheduler: Scheduler,
        *,
        max_history_size: int = 100,
        sweep_interval: float = 10.0,
        timeouts: dict[RequestType, float] | None = None,
    ) -> None:
        if max_history_size < 1:
            raise ValueError(f"max_history_size must be >= 1, got {max_history_size!r}")
        self._bus = bus
        self._scheduler = scheduler
        self._max_history_size = max_history_size
        self._timeouts: dict[RequestType, float] = dict(DEFAULT_TIMEOUTS)
        for request_type, seconds in (timeouts or {}).items():
            self.set_timeout(request_type, seconds)

        self._active: dict[str, PermissionRequest] = {}
        self._history: list[PermissionRequest] = []  # oldest first
        self._disposed = False

        bus.subscribe(ActivityKind.ATTENTION_REQUIRED, self._on_attention_required)
        bus.subscribe(ActivityKind.TASK_COMPLETED, self._on_task_completed)
        self._sweep_task: ScheduledTask | None = scheduler.schedule_repeating(
            sweep_interval, self.check_timeouts
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def max_history_size(self) -> int:
        return self._max_history_size

    @max_history_size.setter
    def max_history_size(self, size: int) -> None:
        if size < 1:
            raise ValueError(f"max_history_size must be >= 1, got {size!r}")
        self._max_history_size = size
        self._trim_history()

    def get_timeout(self, request_type: RequestType) -> float:
        return self._timeouts.get(request_type, self._timeouts[RequestType.UNKNOWN])

    def set_timeout(self, request_type: RequestType, seconds: float) -> None:
        """Change the timeout applied to requests of *request_type* created from now on."""
        if seconds <= 0:
            raise ValueError(f"timeout must be > 0, got {seconds!r}")
        self._timeouts[request_type] = float(seconds)

    # ------------------------------------------------------------------
    # Bus reactions
    # ------------------------------------------------------------------

    def _on_attention_required(self, event: ActivityEvent) -> None:
        request_type, description = classify_request(event.source, event.details)
        request = PermissionRequest(
            request_type=request_type,
            source=event.source,
            description=description,
            details=dict(event.details),
            timestamp=self._scheduler.now(),
            timeout=self.get_timeout(request_type),
        )
        self._active[request.id] = request
        self._history.append(request)
        self._trim_history()
        logger.info(
            "Permission request %s detected: %s from %s",
            request.id,
            request_type.value,
            event.source,
        )

    def _on_task_completed(self, event: ActivityEvent) -> None:
        for request in list(self._active.values()):
            if request.source == event.source and not request.resolved:
                self._resolve(request, Resolution.APPROVED)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _resolve(self, request: PermissionRequest, resolution: Resolution) -> None:
        request.resolved = True
        request.resolution = resolution
        request.resolved_at = self._scheduler.now()
        self._active.pop(request.id, None)
        self._trim_history()
        logger.info(
            "Permission request %s (%s from %s) resolved: %s",
            request.id,
            request.request_type.value,
            request.source,
            resolution.value,
        )

    def check_timeouts(self) -> int:
        """Time out every active request past its deadline. Returns how many."""
        now = self._scheduler.now()
        expired = [
            request
            for request in self._active.values()
            if not request.resolved and now - request.timestamp > request.timeout
        ]
        for request in expired:
            self._resolve(request, Resolution.TIMED_OUT)
        return len(expired)

    def _resolve_manually(self, request_id: str, resolution: Resolution) -> bool:
        request = self._active.get(request_id)
        if request is None or request.resolved:
            return False
        self._resolve(request, resolution)
        return True

    def approve_request(self, request_id: str) -> bool:
        return self._resolve_manually(request_id, Resolution.APPROVED)

    def deny_request(self, request_id: str) -> bool:
        return self._resolve_manually(request_id, Resolution.DENIED)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active_requests(self) -> list[PermissionRequest]:
        """Active requests, oldest first."""
        return sorted(self._active.values(), key=lambda r: r.timestamp)

    def get_oldest_active_request(self) -> PermissionRequest | None:
        active = self.get_active_requests()
        return active[0] if active else None

    def is_waiting_for_permission(self) -> bool:
        return bool(self._active)

    def get_request_history(self, limit: int | None = None) -> list[PermissionRequest]:
        """History, newest first, truncated to *limit* entries unless it is None."""
        newest_first = list(reversed(sorted(self._history, key=lambda r: r.timestamp)))
        return newest_first[:limit] if limit is not None else newest_first

    def get_requests_by_type(self, request_type: RequestType) -> list[PermissionRequest]:
        return [r for r in self._history if r.request_type == request_type]

    def get_requests_by_source(self, source: str) -> list[PermissionRequest]:
        return [r for r in self._history if r.source == source]

    def get_statistics(self) -> PermissionStatistics:
        stats = PermissionStatistics(active=len(self._active), total=len(self._history))
        resolution_total = 0.0
        resolved_count = 0

        for request in self._history:
            stats.by_type[request.request_type] = stats.by_type.get(request.request_type, 0) + 1
            if not request.resolved:
                continue
            if request.resolution is Resolution.APPROVED:
                stats.approved += 1
            elif request.resolution is Resolution.DENIED:
                stats.denied += 1
            elif request.resolution is Resolution.TIMED_OUT:
                stats.timed_out += 1
            if request.resolution_time is not None:
                resolution_total += min(request.resolution_time, RESOLUTION_TIME_CAP)
                resolved_count += 1

        if resolved_count:
            stats.average_resolution_time = resolution_total / resolved_count
        return stats

    def snapshot(self) -> dict[str, Any]:
        """In-memory export of the current state."""
        return {
            "active_requests": [r.to_dict() for r in self.get_active_requests()],
            "request_history": [r.to_dict() for r in self._history],
            "statistics": self.get_statistics().to_dict(),
            "exported_at": self._scheduler.now(),
        }

    # ------------------------------------------------------------------
    # History management
    # ------------------------------------------------------------------

    def _trim_history(self) -> None:
        """Drop the oldest resolved entries beyond capacity.

        Entries still in the active registry are never evicted, so history
        may exceed capacity while that many requests are outstanding; the
        bound is restored as they resolve.
        """
        excess = len(self._history) - self._max_history_size
        if excess <= 0:
            return

        by_age = sorted(self._history, key=lambda r: r.timestamp)
        evict = [r for r in by_age if r.id not in self._active][:excess]
        if not evict:
            return
        evicted_ids = {r.id for r in evict}
        self._history = [r for r in self._history if r.id not in evicted_ids]
        logger.debug("Evicted %d permission request(s) from history", len(evict))

    def clear_history(self) -> None:
        self._active.clear()
        self._history.clear()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Stop the timeout sweep and detach from the bus. Safe to call twice."""
        if self._disposed:
            return
        self._disposed = True
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            self._sweep_task = None
        self._bus.unsubscribe(ActivityKind.ATTENTION_REQUIRED, self._on_attention_required)
        self._bus.unsubscribe(ActivityKind.TASK_COMPLETED, self._on_task_completed)
