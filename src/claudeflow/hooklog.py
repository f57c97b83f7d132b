"""Hook log reader — tails a JSON-lines hook log as an alternate event source.

Each non-empty line of the watched file is a record such as::

    {"type": "task_completed", "message": "done"}

Only the last record present at each change is interpreted. Records appended
between two polls are skipped; consumers relying on every record must emit
them slower than the poll interval.
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from claudeflow.bus import EventBus
from claudeflow.models import ActivityEvent, ActivityKind
from claudeflow.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

# External record type → internal kind; anything else is ignored
HOOK_TYPE_MAP: dict[str, ActivityKind] = {
    "task_started": ActivityKind.TASK_STARTED,
    "task_completed": ActivityKind.TASK_COMPLETED,
    "attention_required": ActivityKind.ATTENTION_REQUIRED,
}

HookHandler = Callable[[ActivityEvent], None]


class MalformedRecordError(ValueError):
    """Raised when a hook log line is not a valid record."""


def parse_record(line: str) -> dict[str, Any]:
    """Parse one hook log line. Raises MalformedRecordError."""
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        raise MalformedRecordError(f"Invalid JSON: {e}") from None
    if not isinstance(record, dict):
        raise MalformedRecordError(f"Expected an object, got {type(record).__name__}")
    if not isinstance(record.get("type"), str):
        raise MalformedRecordError("Missing or non-string 'type' field")
    message = record.get("message")
    if message is not None and not isinstance(message, str):
        raise MalformedRecordError("Non-string 'message' field")
    return record


def last_record_line(content: str) -> str | None:
    """Return the last non-blank line of *content*, or None."""
    for line in reversed(content.splitlines()):
        if line.strip():
            return line.strip()
    return None


def resolve_path(file_path: str | os.PathLike, base_dir: str | os.PathLike | None = None) -> Path:
    """Resolve *file_path* against *base_dir* (default: cwd) when relative."""
    path = Path(file_path).expanduser()
    if not path.is_absolute():
        path = Path(base_dir) / path if base_dir is not None else Path.cwd() / path
    return path


class HookLogReader:
    """Polls a hook log file and turns its latest record into an event.

    The file's (mtime, size) signature is checked every *poll_interval*
    seconds on the given scheduler; a change triggers a read.
    """

    def __init__(
        self,
        file_path: str | os.PathLike,
        scheduler: Scheduler,
        *,
        base_dir: str | os.PathLike | None = None,
        bus: EventBus | None = None,
        poll_interval: float = 1.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {poll_interval!r}")
        self._base_dir = base_dir
        self._path = resolve_path(file_path, base_dir)
        self._scheduler = scheduler
        self._bus = bus
        self._poll_interval = poll_interval
        self._clock = clock
        self._handlers: list[HookHandler] = []
        self._task: ScheduledTask | None = None
        self._signature: tuple[int, int] | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def running(self) -> bool:
        return self._task is not None

    def on_event(self, handler: HookHandler) -> None:
        self._handlers.append(handler)

    def start(self) -> None:
        """Begin watching. A missing file leaves the reader idle."""
        if self._task is not None:
            return
        if not self._path.is_file():
            logger.info("Hook log %s does not exist, not watching", self._path)
            return

        self._signature = self._stat_signature()
        self._task = self._scheduler.schedule_repeating(self._poll_interval, self._poll)
        logger.info("Watching hook log %s", self._path)
        self._read()

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        self._signature = None
        logger.info("Stopped watching hook log %s", self._path)

    def restart(self, file_path: str | os.PathLike | None = None) -> None:
        """Stop, optionally point at a new file, and start again."""
        self.stop()
        if file_path is not None:
            self._path = resolve_path(file_path, self._base_dir)
        self.start()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _stat_signature(self) -> tuple[int, int] | None:
        try:
            st = self._path.stat()
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def _poll(self) -> None:
        signature = self._stat_signature()
        if signature == self._signature:
            return
        self._signature = signature
        if signature is None:
            logger.debug("Hook log %s disappeared", self._path)
            return
        self._read()

    def _read(self) -> None:
        try:
            content = self._path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Failed to read hook log %s: %s", self._path, e)
            return

        line = last_record_line(content)
        if line is None:
            return

        try:
            record = parse_record(line)
        except MalformedRecordError as e:
            logger.warning("Malformed hook record %r: %s", line, e)
            return

        kind = HOOK_TYPE_MAP.get(record["type"])
        if kind is None:
            logger.debug("Ignoring hook record of type %r", record["type"])
            return

        event = ActivityEvent(
            kind=kind,
            source=f"hook:{self._path}",
            timestamp=self._clock(),
            details={
                "raw": record.get("message") or "",
                "path": str(self._path),
            },
        )
        self._dispatch(event)

    def _dispatch(self, event: ActivityEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Hook event handler %r failed", handler)
        if self._bus is not None:
            self._bus.publish(event)
