"""claudeflow: activity detection and permission tracking for terminal coding assistants."""

from claudeflow.bus import EventBus
from claudeflow.classifier import DEFAULT_RULES, PatternClassifier, TextIngestor
from claudeflow.hooklog import HookLogReader
from claudeflow.models import (
    ActivityEvent,
    ActivityKind,
    PatternRule,
    PermissionRequest,
    RequestType,
    Resolution,
)
from claudeflow.monitor import ActivityMonitor
from claudeflow.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from claudeflow.tracker import PermissionTracker

__all__ = [
    "DEFAULT_RULES",
    "ActivityEvent",
    "ActivityKind",
    "ActivityMonitor",
    "AsyncioScheduler",
    "EventBus",
    "HookLogReader",
    "ManualScheduler",
    "PatternClassifier",
    "PatternRule",
    "PermissionRequest",
    "PermissionTracker",
    "RequestType",
    "Resolution",
    "Scheduler",
    "TextIngestor",
]
